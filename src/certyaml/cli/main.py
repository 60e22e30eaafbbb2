"""certyaml command-line entry point.

Usage::

    certyaml                         # reads ./certs.yaml, writes to .
    certyaml -d out certs.yaml
    certyaml -d out --state out/pki.state --keep-stale-state pki.yaml
    certyaml --log-format json certs.yaml
    python -m certyaml certs.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)

_DEFAULT_MANIFEST = "certs.yaml"


def _get_version() -> str:
    from certyaml import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certyaml",
        description="Generate a PKI hierarchy (certificates, keys, CRLs) from a YAML manifest.",
    )
    parser.add_argument(
        "manifest",
        nargs="?",
        default=_DEFAULT_MANIFEST,
        metavar="MANIFEST",
        help=f"Path to the YAML manifest (default: {_DEFAULT_MANIFEST}).",
    )
    parser.add_argument(
        "-d",
        "--destination",
        default=".",
        metavar="DIR",
        help="Existing directory to write certificates into (default: current directory).",
    )
    parser.add_argument(
        "--state",
        default=None,
        metavar="PATH",
        help="State file path (default: DIR/<manifest name>.state).",
    )
    parser.add_argument(
        "--keep-stale-state",
        action="store_true",
        default=False,
        help="Keep state entries for certificates no longer in the manifest.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        metavar="LEVEL",
        help="Logging level (default: INFO).",
    )
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default="text",
        help="Log output format (default: text).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"certyaml: error: {message}", file=sys.stderr)  # noqa: T201


def _settings_data(args: argparse.Namespace) -> dict:
    return {
        "generator": {
            "destination": args.destination,
            "state_file": args.state,
            "prune_stale_state": not args.keep_stale_state,
        },
        "logging": {
            "level": "DEBUG" if args.debug else args.log_level,
            "format": args.log_format,
        },
    }


def state_path_for(manifest: str | Path, destination: str | Path, suffix: str = ".state") -> Path:
    """Return the default state file: ``<destination>/<manifest stem><suffix>``."""
    return Path(destination) / f"{Path(manifest).stem}{suffix}"


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, configures logging, runs the engine."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- bootstrap logging early (basic stderr until settings are built) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    from certyaml.config import SettingsError, build_settings

    try:
        settings = build_settings(_settings_data(args))
    except SettingsError as exc:
        _print_error(str(exc))
        sys.exit(1)

    from certyaml.logging import configure_logging

    configure_logging(settings.logging)

    generator = settings.generator
    state_file = generator.state_file or state_path_for(
        args.manifest,
        generator.destination,
        generator.state_file_suffix,
    )

    from certyaml.core.errors import CertyamlError
    from certyaml.manifest.generator import generate_certificates

    try:
        generate_certificates(
            args.manifest,
            state_file,
            generator.destination,
            settings=generator,
        )
    except CertyamlError as exc:
        if args.debug:
            raise
        _print_error(exc.detail)
        sys.exit(1)

    sys.exit(0)
