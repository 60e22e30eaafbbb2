"""CRL generation.

Builds one X.509 Certificate Revocation List per issuing authority,
covering every revoked entry that authority signed, in manifest order.
An authority whose last revoked entry was reinstated gets an empty list
in place of the one written by an earlier run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.x509 import (
    CertificateRevocationListBuilder,
    RevokedCertificateBuilder,
)

from certyaml.ca.keys import signature_hash
from certyaml.core.errors import CertyamlError, CryptoError, RevocationError
from certyaml.core.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable

    from certyaml.ca.builder import CertificateBuilder
    from certyaml.manifest.resolver import ResolvedCertificate
    from certyaml.repositories.artifacts import ArtifactStore

log = logging.getLogger(__name__)

NEXT_UPDATE = timedelta(hours=8760)


@dataclass
class RevocationEntry:
    """Revoked entities grouped under one issuing authority.

    An entry with no revoked members stands for an issuer whose earlier
    CRL must be replaced by an empty one.
    """

    issuer: ResolvedCertificate
    revoked: list[ResolvedCertificate] = field(default_factory=list)

    @property
    def issuer_dn(self) -> str:
        return self.issuer.subject

    @property
    def needs_rebuild(self) -> bool:
        return self.issuer.action is Action.REGENERATE or any(
            r.action is Action.REGENERATE for r in self.revoked
        )


def group_revoked(
    entities: Iterable[ResolvedCertificate],
    *,
    published: Collection[str] = (),
) -> list[RevocationEntry]:
    """Group revoked entities by issuer, in manifest order.

    Issuers whose filename is in *published* (a CRL exists from an
    earlier run) get an entry even when none of their members is
    revoked any more.

    Raises
    ------
    RevocationError
        If a revoked entity is self-signed.

    """
    groups: dict[int, RevocationEntry] = {}
    for entity in entities:
        if entity.filename in published:
            groups.setdefault(id(entity), RevocationEntry(entity))
        if not entity.descriptor.revoked:
            continue
        if entity.issuer is None:
            msg = (
                f"Cannot revoke self-signed certificate '{entity.subject}': "
                f"it has no issuing authority"
            )
            raise RevocationError(msg)
        group = groups.setdefault(id(entity.issuer), RevocationEntry(entity.issuer))
        group.revoked.append(entity)
    return list(groups.values())


class RevocationListBuilder:
    """Sign and write CRLs for groups of revoked entities.

    Parameters
    ----------
    store:
        Destination for ``<issuer-filename>-crl.pem``.
    certificates:
        Used to load key material of entities skipped this run.
    clock:
        Returns the current time; overridable for tests.

    """

    def __init__(
        self,
        store: ArtifactStore,
        certificates: CertificateBuilder,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._certificates = certificates
        self._clock = clock or (lambda: datetime.now(UTC))

    def revoked_serials(self, entry: RevocationEntry) -> list[int]:
        """Return the serials *entry*'s CRL must list, in manifest order.

        Unpinned serials are read from the revoked certificates, loaded
        from disk when they were skipped this run.
        """
        serials = []
        for entity in entry.revoked:
            serial = entity.descriptor.serial
            if serial is None:
                self._certificates.ensure_loaded(entity)
                serial = entity.certificate.serial_number  # type: ignore[union-attr]
            serials.append(serial)
        return serials

    def is_current(self, entry: RevocationEntry) -> bool:
        """Return whether the CRL on disk lists exactly *entry*'s serials.

        A missing or unparseable CRL is never current.
        """
        path = self._store.crl_path(entry.issuer.filename)
        if not self._store.exists(path):
            return False
        try:
            crl = x509.load_pem_x509_crl(self._store.read_bytes(path))
        except ValueError:
            log.warning("Replacing unreadable CRL %s", path)
            return False
        return [r.serial_number for r in crl] == self.revoked_serials(entry)

    def build(self, entry: RevocationEntry) -> x509.CertificateRevocationList:
        """Build, sign and write the CRL for *entry*."""
        issuer = entry.issuer
        self._certificates.ensure_loaded(issuer)
        now = self._clock()

        builder = (
            CertificateRevocationListBuilder()
            .issuer_name(issuer.certificate.subject)  # type: ignore[union-attr]
            .last_update(now)
            .next_update(now + NEXT_UPDATE)
            .add_extension(
                x509.CRLNumber(int(now.timestamp())),
                critical=False,
            )
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(
                    issuer.private_key.public_key(),  # type: ignore[union-attr,arg-type]
                ),
                critical=False,
            )
        )

        for serial in self.revoked_serials(entry):
            rev_builder = (
                RevokedCertificateBuilder()
                .serial_number(serial)
                .revocation_date(now)
            )
            builder = builder.add_revoked_certificate(rev_builder.build())

        try:
            crl = builder.sign(
                issuer.private_key,  # type: ignore[arg-type]
                signature_hash(issuer.private_key),  # type: ignore[arg-type]
            )
        except CertyamlError:
            raise
        except Exception as exc:  # noqa: BLE001
            msg = f"Failed to sign CRL for '{entry.issuer_dn}': {exc}"
            raise CryptoError(msg) from exc

        self._store.write_bytes(
            self._store.crl_path(issuer.filename),
            crl.public_bytes(serialization.Encoding.PEM),
        )
        log.info(
            "CRL written: issuer=%s, %d revoked certificate(s)",
            entry.issuer_dn,
            len(entry.revoked),
        )
        return crl
