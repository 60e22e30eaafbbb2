"""Logging subsystem for certyaml.

Public API::

    from certyaml.logging import configure_logging

    configure_logging(settings.logging)
"""

from certyaml.logging.setup import configure_logging

__all__ = ["configure_logging"]
