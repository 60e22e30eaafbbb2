"""Key-pair generation and signature-digest selection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from certyaml.core.errors import CryptoError, InvalidKeySpec
from certyaml.core.types import KeyType

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import (
        CertificateIssuerPrivateKeyTypes,
    )

log = logging.getLogger(__name__)

_RSA_PUBLIC_EXPONENT = 65537

_EC_CURVES: dict[int, type[ec.EllipticCurve]] = {
    256: ec.SECP256R1,
    384: ec.SECP384R1,
    521: ec.SECP521R1,
}

_RSA_SIZES = frozenset({1024, 2048, 4096})

# Digest paired with each EC curve size; RSA always uses SHA-256.
_EC_HASH_ALGORITHMS: dict[int, hashes.HashAlgorithm] = {
    256: hashes.SHA256(),
    384: hashes.SHA384(),
    521: hashes.SHA512(),
}

DEFAULT_KEY_SIZES: dict[KeyType, int] = {
    KeyType.EC: 256,
    KeyType.RSA: 2048,
    KeyType.ED25519: 0,
}


def validate_key_spec(key_type: KeyType, key_size: int) -> None:
    """Raise :class:`InvalidKeySpec` for an unsupported combination."""
    if key_type is KeyType.EC and key_size not in _EC_CURVES:
        msg = f"Unsupported EC key size {key_size}; supported: {sorted(_EC_CURVES)}"
        raise InvalidKeySpec(msg)
    if key_type is KeyType.RSA and key_size not in _RSA_SIZES:
        msg = f"Unsupported RSA key size {key_size}; supported: {sorted(_RSA_SIZES)}"
        raise InvalidKeySpec(msg)


def generate_private_key(
    key_type: KeyType,
    key_size: int,
) -> CertificateIssuerPrivateKeyTypes:
    """Generate a fresh private key for *key_type* / *key_size*.

    Raises
    ------
    InvalidKeySpec
        If the combination is not supported.
    CryptoError
        If the backend fails to generate the key.

    """
    validate_key_spec(key_type, key_size)
    try:
        if key_type is KeyType.EC:
            return ec.generate_private_key(_EC_CURVES[key_size]())
        if key_type is KeyType.RSA:
            return rsa.generate_private_key(
                public_exponent=_RSA_PUBLIC_EXPONENT,
                key_size=key_size,
            )
        return ed25519.Ed25519PrivateKey.generate()
    except Exception as exc:  # noqa: BLE001
        msg = f"Failed to generate {key_type.value} key: {exc}"
        raise CryptoError(msg) from exc


def signature_hash(
    key: CertificateIssuerPrivateKeyTypes,
) -> hashes.HashAlgorithm | None:
    """Return the digest used when signing with *key*.

    Ed25519 signs without a separate digest, so ``None`` is returned.
    """
    if isinstance(key, ed25519.Ed25519PrivateKey):
        return None
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return _EC_HASH_ALGORITHMS.get(key.curve.key_size, hashes.SHA256())
    return hashes.SHA256()


def private_key_to_pem(key: CertificateIssuerPrivateKeyTypes) -> bytes:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


def load_private_key(pem: bytes) -> CertificateIssuerPrivateKeyTypes:
    """Load an unencrypted PEM private key.

    Raises
    ------
    CryptoError
        If the data is not a usable signing key.

    """
    try:
        key = serialization.load_pem_private_key(pem, password=None)
    except Exception as exc:  # noqa: BLE001
        msg = f"Failed to load private key: {exc}"
        raise CryptoError(msg) from exc
    if not isinstance(
        key,
        ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey | ed25519.Ed25519PrivateKey,
    ):
        msg = f"Unsupported private key type {type(key).__name__}"
        raise CryptoError(msg)
    return key
