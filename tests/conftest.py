"""Root conftest for the certyaml test suite."""

from __future__ import annotations

import hashlib
import logging
import sys
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)


# ---------------------------------------------------------------------------
# Manifest helpers shared by multiple test modules
# ---------------------------------------------------------------------------


@pytest.fixture()
def dest(tmp_path: Path) -> Path:
    """Return an empty destination directory."""
    d = tmp_path / "out"
    d.mkdir()
    return d


@pytest.fixture()
def write_manifest(tmp_path: Path):
    """Return a callable that writes documents to a manifest file."""

    def _write(documents: list[dict], name: str = "certs.yaml") -> Path:
        path = tmp_path / name
        path.write_text(
            yaml.safe_dump_all(documents, default_flow_style=False, sort_keys=False),
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture()
def root_leaf_documents() -> list[dict]:
    """Self-signed root plus one leaf with a DNS SAN."""
    return [
        {"subject": "cn=root"},
        {
            "subject": "cn=leaf",
            "issuer": "cn=root",
            "sans": ["DNS:leaf.example.com"],
        },
    ]


def dir_snapshot(directory: Path) -> dict[str, str]:
    """Return ``{filename: sha256}`` for every file in *directory*."""
    return {
        p.name: hashlib.sha256(p.read_bytes()).hexdigest()
        for p in sorted(directory.iterdir())
        if p.is_file()
    }


@pytest.fixture()
def snapshot():
    """Return :func:`dir_snapshot` for use inside tests."""
    return dir_snapshot


# ---------------------------------------------------------------------------
# Logger cleanup -- autouse so configure_logging() never leaks between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_logging():
    """Restore the ``certyaml`` logger to propagate-only after every test."""
    yield
    root = logging.getLogger("certyaml")
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
    root.propagate = True
