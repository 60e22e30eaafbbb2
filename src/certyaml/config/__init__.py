"""Configuration subsystem for certyaml.

Public API::

    from certyaml.config import build_settings

    settings = build_settings(raw)
    settings.logging.level
"""

from certyaml.config.settings import (
    CertyamlSettings,
    GeneratorSettings,
    LoggingSettings,
    SettingsError,
    build_settings,
)

__all__ = [
    "CertyamlSettings",
    "GeneratorSettings",
    "LoggingSettings",
    "SettingsError",
    "build_settings",
]
