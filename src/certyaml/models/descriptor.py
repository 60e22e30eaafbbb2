"""Certificate descriptor and subject-alternative-name value objects."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from certyaml.core.errors import InvalidSAN
from certyaml.core.types import KeyType, SanType

if TYPE_CHECKING:
    from datetime import datetime, timedelta


@dataclass(frozen=True)
class SubjectAltName:
    """One typed SAN entry.

    ``value`` holds a hostname for ``DNS``, an :mod:`ipaddress` object
    for ``IP``, and the URI string as written for ``URI`` (validated to
    carry a scheme).
    """

    type: SanType
    value: str | ipaddress.IPv4Address | ipaddress.IPv6Address

    def __str__(self) -> str:
        return f"{self.type.value}:{self.value}"


def parse_san(text: str) -> SubjectAltName:
    """Parse a ``DNS:``/``IP:``/``URI:`` prefixed string.

    Raises
    ------
    InvalidSAN
        If the prefix is unknown or the value does not parse.

    """
    prefix, sep, raw = str(text).partition(":")
    if not sep:
        msg = f"SAN '{text}' has no type prefix; expected DNS:, IP: or URI:"
        raise InvalidSAN(msg)

    try:
        san_type = SanType(prefix.strip().upper())
    except ValueError:
        msg = f"SAN '{text}' has unknown type '{prefix}'; expected DNS, IP or URI"
        raise InvalidSAN(msg) from None

    raw = raw.strip()
    if not raw:
        msg = f"SAN '{text}' has an empty value"
        raise InvalidSAN(msg)

    if san_type is SanType.IP:
        try:
            return SubjectAltName(SanType.IP, ipaddress.ip_address(raw))
        except ValueError:
            msg = f"SAN '{text}' is not a valid IP address"
            raise InvalidSAN(msg) from None

    if san_type is SanType.URI:
        try:
            parts = urlsplit(raw)
        except ValueError as exc:
            msg = f"SAN '{text}' is not a valid URI: {exc}"
            raise InvalidSAN(msg) from exc
        if not parts.scheme:
            msg = f"SAN '{text}' is not a valid URI: missing scheme"
            raise InvalidSAN(msg)
        return SubjectAltName(SanType.URI, raw)

    return SubjectAltName(SanType.DNS, raw)


@dataclass(frozen=True)
class CertificateDescriptor:
    """One normalized certificate entry from the manifest.

    Attributes
    ----------
    subject:
        Distinguished name string as written in the manifest.
    filename:
        Output basename; unique across the manifest.
    issuer:
        Subject DN of the signing entry, or ``""`` when self-signed.
    key_usages:
        Key usage names; empty means the CA / end-entity defaults.
    is_ca:
        Basic-constraints CA flag, already defaulted by the loader.
    serial:
        Pinned serial number, or ``None`` for a random one.

    """

    subject: str
    filename: str
    issuer: str = ""
    sans: tuple[SubjectAltName, ...] = ()
    key_type: KeyType = KeyType.EC
    key_size: int = 256
    expires: timedelta | None = None
    not_before: datetime | None = None
    not_after: datetime | None = None
    key_usages: tuple[str, ...] = ()
    ext_key_usages: tuple[str, ...] = ()
    is_ca: bool = False
    serial: int | None = None
    revoked: bool = False
    crl_distribution_points: tuple[str, ...] = ()

    @property
    def is_self_signed(self) -> bool:
        return not self.issuer
