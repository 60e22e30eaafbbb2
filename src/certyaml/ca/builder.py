"""Certificate builder -- generate keys and sign X.509 certificates.

For every entity marked for regeneration a fresh key pair is created
and a certificate is built with subject, validity, basic constraints,
key usage, EKU, SAN, CRL distribution points, SKI and AKI extensions,
then signed by the issuer's key (or the entity's own key when
self-signed).  Skipped entities are loaded back from the destination
directory when a descendant or a CRL needs their key material.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from certyaml.ca.cert_utils import (
    CA_DEFAULT_KEY_USAGES,
    END_ENTITY_DEFAULT_KEY_USAGES,
    build_crl_distribution_points,
    build_eku,
    build_key_usage,
    build_san,
    parse_distinguished_name,
)
from certyaml.ca.keys import (
    generate_private_key,
    load_private_key,
    private_key_to_pem,
    signature_hash,
)
from certyaml.core.errors import CertyamlError, CryptoError, FilesystemError

if TYPE_CHECKING:
    from collections.abc import Callable

    from certyaml.manifest.resolver import ResolvedCertificate
    from certyaml.models.descriptor import CertificateDescriptor
    from certyaml.repositories.artifacts import ArtifactStore

log = logging.getLogger(__name__)

DEFAULT_VALIDITY = timedelta(hours=8760)


def random_serial_number() -> int:
    """Return a random positive serial of at most 159 bits.

    RFC 5280 sec 4.1.2.2 limits serials to 20 octets, positive.
    """
    return (int.from_bytes(secrets.token_bytes(20), "big") >> 1) or 1


def resolve_validity(
    descriptor: CertificateDescriptor,
    now: datetime,
) -> tuple[datetime, datetime]:
    """Return ``(not_before, not_after)`` for *descriptor*.

    ``not_after`` precedence: explicit value, then ``now + expires``,
    then ``now + 8760h``.
    """
    not_before = descriptor.not_before or now
    if descriptor.not_after is not None:
        not_after = descriptor.not_after
    else:
        not_after = now + (descriptor.expires or DEFAULT_VALIDITY)
    return not_before, not_after


def effective_key_usages(descriptor: CertificateDescriptor) -> tuple[str, ...]:
    if descriptor.key_usages:
        return descriptor.key_usages
    return CA_DEFAULT_KEY_USAGES if descriptor.is_ca else END_ENTITY_DEFAULT_KEY_USAGES


class CertificateBuilder:
    """Build, sign and store certificates for resolved entities.

    Parameters
    ----------
    store:
        Destination for the PEM files, and source of key material for
        entities skipped in this run.
    clock:
        Returns the current time; overridable for tests.

    """

    def __init__(
        self,
        store: ArtifactStore,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(UTC))

    def issue(self, entity: ResolvedCertificate) -> x509.Certificate:
        """Generate a key pair, sign a certificate and write both files.

        Raises
        ------
        CryptoError
            If key generation or signing fails.
        FilesystemError
            If the issuer's material cannot be loaded or output cannot
            be written.

        """
        descriptor = entity.descriptor
        key = generate_private_key(descriptor.key_type, descriptor.key_size)

        if entity.issuer is None:
            issuer_name = parse_distinguished_name(descriptor.subject)
            signing_key = key
        else:
            self.ensure_loaded(entity.issuer)
            issuer_name = entity.issuer.certificate.subject  # type: ignore[union-attr]
            signing_key = entity.issuer.private_key

        try:
            builder = self._build_cert_base(descriptor, key, issuer_name, signing_key)
            cert = builder.sign(signing_key, signature_hash(signing_key))  # type: ignore[arg-type]
        except CertyamlError:
            raise
        except Exception as exc:  # noqa: BLE001
            msg = f"Failed to build/sign certificate for '{descriptor.subject}': {exc}"
            raise CryptoError(msg) from exc

        entity.private_key = key
        entity.certificate = cert

        self._store.write_bytes(
            self._store.key_path(entity.filename),
            private_key_to_pem(key),
            private=True,
        )
        self._store.write_bytes(
            self._store.cert_path(entity.filename),
            cert.public_bytes(serialization.Encoding.PEM),
        )

        log.info(
            "Signed certificate: serial=%s, subject=%s, issuer=%s",
            format(cert.serial_number, "x"),
            descriptor.subject,
            descriptor.issuer or "self",
        )
        return cert

    def _build_cert_base(
        self,
        descriptor: CertificateDescriptor,
        key,  # noqa: ANN001
        issuer_name: x509.Name,
        signing_key,  # noqa: ANN001
    ) -> x509.CertificateBuilder:
        """Return a builder with every extension added, ready for signing."""
        not_before, not_after = resolve_validity(descriptor, self._clock())
        serial = descriptor.serial if descriptor.serial is not None else random_serial_number()

        builder = (
            x509.CertificateBuilder()
            .subject_name(parse_distinguished_name(descriptor.subject))
            .issuer_name(issuer_name)
            .public_key(key.public_key())
            .serial_number(serial)
            .not_valid_before(not_before)
            .not_valid_after(not_after)
        )

        builder = builder.add_extension(
            x509.BasicConstraints(ca=descriptor.is_ca, path_length=None),
            critical=True,
        )

        builder = builder.add_extension(
            build_key_usage(effective_key_usages(descriptor)),
            critical=True,
        )

        if descriptor.ext_key_usages:
            builder = builder.add_extension(
                build_eku(descriptor.ext_key_usages),
                critical=False,
            )

        if descriptor.sans:
            builder = builder.add_extension(
                build_san(descriptor.sans),
                critical=False,
            )

        if descriptor.crl_distribution_points:
            builder = builder.add_extension(
                build_crl_distribution_points(descriptor.crl_distribution_points),
                critical=False,
            )

        builder = builder.add_extension(
            x509.SubjectKeyIdentifier.from_public_key(key.public_key()),
            critical=False,
        )

        if signing_key is not key:
            builder = builder.add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(
                    signing_key.public_key(),
                ),
                critical=False,
            )

        return builder

    def ensure_loaded(self, entity: ResolvedCertificate) -> None:
        """Load *entity*'s certificate and key from disk if not in memory.

        Raises
        ------
        FilesystemError
            If either file is missing or cannot be parsed.

        """
        if entity.certificate is not None and entity.private_key is not None:
            return

        cert_path = self._store.cert_path(entity.filename)
        key_path = self._store.key_path(entity.filename)
        cert_pem = self._store.read_bytes(cert_path)
        key_pem = self._store.read_bytes(key_path)

        try:
            entity.certificate = x509.load_pem_x509_certificate(cert_pem)
        except ValueError as exc:
            msg = f"Cannot parse certificate {cert_path}: {exc}"
            raise FilesystemError(msg) from exc
        try:
            entity.private_key = load_private_key(key_pem)
        except CryptoError as exc:
            msg = f"Cannot parse private key {key_path}: {exc.detail}"
            raise FilesystemError(msg) from exc

        log.debug("Loaded existing material for %s", entity.filename)
