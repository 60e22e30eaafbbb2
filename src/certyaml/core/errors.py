"""Error taxonomy for certyaml.

Every failure aborts the run.  All errors derive from
:class:`CertyamlError` so the command-line front end can report any of
them with a single ``except`` clause; callers that care about the
category catch the specific subclass.
"""

from __future__ import annotations


class CertyamlError(Exception):
    """Base class for all certyaml failures.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.

    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class ManifestError(CertyamlError):
    """Malformed manifest: bad YAML, unknown field, wrong value type."""


class UnresolvedIssuer(CertyamlError):  # noqa: N818
    """An ``issuer`` names no previously declared subject."""

    def __init__(self, subject: str, issuer: str) -> None:
        self.subject = subject
        self.issuer = issuer
        super().__init__(
            f"Issuer '{issuer}' for '{subject}' is not declared earlier in the manifest",
        )


class InvalidKeySpec(CertyamlError):  # noqa: N818
    """Unsupported key type / key size combination."""


class InvalidSAN(CertyamlError):  # noqa: N818
    """Subject alternative name that cannot be parsed."""


class FilesystemError(CertyamlError):
    """Unreadable manifest, state or key file, or unusable destination."""


class CryptoError(CertyamlError):
    """Key generation or signing failure."""


class RevocationError(CertyamlError):
    """Revocation requested for an entity without an issuing authority."""
