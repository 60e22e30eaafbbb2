"""Issuer resolution in manifest order.

Issuers must be declared before the certificates they sign, so a
single forward pass with an accumulating subject -> entry mapping is
enough; a forward reference, a typo and a cycle all surface the same
way, as an issuer that is not in the mapping yet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from certyaml.ca.keys import validate_key_spec
from certyaml.core.errors import ManifestError, RevocationError, UnresolvedIssuer

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cryptography import x509
    from cryptography.hazmat.primitives.asymmetric.types import (
        CertificateIssuerPrivateKeyTypes,
    )

    from certyaml.core.types import Action
    from certyaml.models.descriptor import CertificateDescriptor

log = logging.getLogger(__name__)


@dataclass(eq=False)
class ResolvedCertificate:
    """A descriptor bound to its issuer for the duration of one run.

    ``issuer`` is ``None`` for a self-signed entity.  ``fingerprint``
    and ``action`` are filled in by the fingerprint engine; the key
    and certificate by the builder, either freshly generated or loaded
    from the destination directory.
    """

    descriptor: CertificateDescriptor
    issuer: ResolvedCertificate | None = None
    fingerprint: str = ""
    action: Action | None = None
    private_key: CertificateIssuerPrivateKeyTypes | None = None
    certificate: x509.Certificate | None = None

    @property
    def filename(self) -> str:
        return self.descriptor.filename

    @property
    def subject(self) -> str:
        return self.descriptor.subject

    @property
    def is_self_signed(self) -> bool:
        return self.issuer is None

    @property
    def authority(self) -> ResolvedCertificate:
        """Return the entity whose key signs this certificate."""
        return self if self.issuer is None else self.issuer


class DependencyResolver:
    """Resolve issuer references against previously processed entries."""

    def __init__(self) -> None:
        self._by_subject: dict[str, ResolvedCertificate] = {}
        self._filenames: set[str] = set()

    def resolve(self, descriptor: CertificateDescriptor) -> ResolvedCertificate:
        """Resolve one descriptor and register it for later entries.

        Raises
        ------
        ManifestError
            If the filename is already used by an earlier entry.
        UnresolvedIssuer
            If the issuer is not an earlier subject.
        InvalidKeySpec
            If the key type / size is unsupported.
        RevocationError
            If a self-signed entity is marked revoked.

        """
        if descriptor.filename in self._filenames:
            msg = (
                f"Duplicate filename '{descriptor.filename}' "
                f"(subject '{descriptor.subject}'); set a unique 'filename'"
            )
            raise ManifestError(msg)

        validate_key_spec(descriptor.key_type, descriptor.key_size)

        issuer: ResolvedCertificate | None = None
        if not descriptor.is_self_signed:
            issuer = self._by_subject.get(descriptor.issuer)
            if issuer is None:
                raise UnresolvedIssuer(descriptor.subject, descriptor.issuer)
        elif descriptor.revoked:
            msg = (
                f"Cannot revoke self-signed certificate '{descriptor.subject}': "
                f"it has no issuing authority"
            )
            raise RevocationError(msg)

        resolved = ResolvedCertificate(descriptor=descriptor, issuer=issuer)
        self._by_subject[descriptor.subject] = resolved
        self._filenames.add(descriptor.filename)
        log.debug(
            "Resolved '%s' (issuer=%s)",
            descriptor.subject,
            descriptor.issuer or "self",
        )
        return resolved


def resolve_all(descriptors: Iterable[CertificateDescriptor]) -> list[ResolvedCertificate]:
    """Resolve every descriptor in manifest order."""
    resolver = DependencyResolver()
    return [resolver.resolve(d) for d in descriptors]
