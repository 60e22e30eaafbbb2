"""Persisted fingerprint state.

The state file is a flat YAML mapping of entity key (output filename)
to fingerprint.  It is read once when a run starts and rewritten
wholesale when the run succeeds.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from certyaml.core.errors import FilesystemError
from certyaml.models.state import FingerprintRecord, ManifestState

log = logging.getLogger(__name__)


class StateRepository:
    """Load and save :class:`ManifestState` at a fixed path."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ManifestState:
        """Return the stored state, or an empty state if there is none.

        Raises
        ------
        FilesystemError
            If the file exists but cannot be read or is not a mapping
            of strings.

        """
        if not self._path.exists():
            log.debug("No state file at %s; starting fresh", self._path)
            return ManifestState()

        try:
            with self._path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as exc:
            msg = f"Cannot read state file {self._path}: {exc}"
            raise FilesystemError(msg) from exc
        except yaml.YAMLError as exc:
            msg = f"Corrupt state file {self._path}: {exc}"
            raise FilesystemError(msg) from exc

        if data is None:
            return ManifestState()
        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            msg = f"Corrupt state file {self._path}: expected a mapping of strings"
            raise FilesystemError(msg)
        return ManifestState.from_records(
            [FingerprintRecord(key, fingerprint) for key, fingerprint in data.items()],
        )

    def save(self, state: ManifestState) -> None:
        """Replace the state file with *state*."""
        try:
            with self._path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(state.to_dict(), f, default_flow_style=False, sort_keys=True)
        except OSError as exc:
            msg = f"Cannot write state file {self._path}: {exc}"
            raise FilesystemError(msg) from exc
        log.debug("Saved %d fingerprint(s) to %s", len(state), self._path)
