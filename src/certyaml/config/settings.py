"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.  The
CLI turns its arguments into a plain dict and hands it to
:func:`build_settings`; library callers may do the same or construct
the dataclasses directly.

Access pattern::

    from certyaml.config import build_settings

    settings = build_settings({"logging": {"level": "DEBUG"}})
    settings.generator.prune_stale_state
"""

from __future__ import annotations

from dataclasses import dataclass

_LOG_FORMATS = frozenset({"text", "json"})


class SettingsError(ValueError):
    """Raised when a settings value is out of range."""


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeneratorSettings:
    """Engine behaviour (destination, state file, stale-state policy)."""

    destination: str
    state_file: str | None
    prune_stale_state: bool
    state_file_suffix: str


def _build_generator(data: dict | None) -> GeneratorSettings:
    d = data or {}
    return GeneratorSettings(
        destination=d.get("destination", "."),
        state_file=d.get("state_file"),
        prune_stale_state=d.get("prune_stale_state", True),
        state_file_suffix=d.get("state_file_suffix", ".state"),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format)."""

    level: str
    format: str


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    fmt = d.get("format", "text")
    if fmt not in _LOG_FORMATS:
        msg = f"logging.format must be one of {sorted(_LOG_FORMATS)}, got '{fmt}'"
        raise SettingsError(msg)
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=fmt,
    )


# ---------------------------------------------------------------------------
# Root settings aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CertyamlSettings:
    generator: GeneratorSettings
    logging: LoggingSettings


def build_settings(data: dict | None = None) -> CertyamlSettings:
    """Build the full typed settings tree from raw data."""
    d = data or {}
    return CertyamlSettings(
        generator=_build_generator(d.get("generator")),
        logging=_build_logging(d.get("logging")),
    )
