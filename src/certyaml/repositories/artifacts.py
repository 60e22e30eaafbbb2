"""Destination directory holding generated certificates, keys and CRLs."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from certyaml.core.errors import FilesystemError

log = logging.getLogger(__name__)

CERT_SUFFIX = ".pem"
KEY_SUFFIX = "-key.pem"
CRL_SUFFIX = "-crl.pem"

_PRIVATE_MODE = 0o600


class ArtifactStore:
    """Read and write artifact files under one destination directory.

    Parameters
    ----------
    directory:
        Existing directory that receives every output file.

    Raises
    ------
    FilesystemError
        If *directory* does not exist or is not a directory.

    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)
        if not self._dir.is_dir():
            msg = f"Destination directory does not exist: {self._dir}"
            raise FilesystemError(msg)

    @property
    def directory(self) -> Path:
        return self._dir

    # -- paths --------------------------------------------------------------

    def cert_path(self, filename: str) -> Path:
        return self._dir / f"{filename}{CERT_SUFFIX}"

    def key_path(self, filename: str) -> Path:
        return self._dir / f"{filename}{KEY_SUFFIX}"

    def crl_path(self, filename: str) -> Path:
        return self._dir / f"{filename}{CRL_SUFFIX}"

    # -- I/O ----------------------------------------------------------------

    @staticmethod
    def exists(path: Path) -> bool:
        return path.is_file()

    @staticmethod
    def read_bytes(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            msg = f"Cannot read {path}: {exc}"
            raise FilesystemError(msg) from exc

    @staticmethod
    def write_bytes(path: Path, data: bytes, *, private: bool = False) -> None:
        """Write *data* to *path*, replacing any existing file.

        Private keys are created with mode 0600.
        """
        try:
            if private:
                fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _PRIVATE_MODE)
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.chmod(path, _PRIVATE_MODE)
            else:
                path.write_bytes(data)
        except OSError as exc:
            msg = f"Cannot write {path}: {exc}"
            raise FilesystemError(msg) from exc
        log.debug("Wrote %s (%d bytes)", path, len(data))
