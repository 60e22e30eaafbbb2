"""Shared certificate-building helpers.

Provides the manifest-name mappings for key usages and extended key
usages, distinguished-name parsing, and SAN conversion used by both
the certificate and the revocation-list builders.
"""

from __future__ import annotations

import re

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from certyaml.core.errors import ManifestError
from certyaml.core.types import SanType
from certyaml.models.descriptor import SubjectAltName

# ---------------------------------------------------------------------------
# Key usage / EKU mappings
# ---------------------------------------------------------------------------

KEY_USAGES = {
    "DigitalSignature": "digital_signature",
    "ContentCommitment": "content_commitment",
    "KeyEncipherment": "key_encipherment",
    "DataEncipherment": "data_encipherment",
    "KeyAgreement": "key_agreement",
    "CertSign": "key_cert_sign",
    "CRLSign": "crl_sign",
    "EncipherOnly": "encipher_only",
    "DecipherOnly": "decipher_only",
}

CA_DEFAULT_KEY_USAGES = ("CertSign", "CRLSign")
END_ENTITY_DEFAULT_KEY_USAGES = ("KeyEncipherment", "DigitalSignature")

EXT_KEY_USAGES = {
    "Any": ExtendedKeyUsageOID.ANY_EXTENDED_KEY_USAGE,
    "ServerAuth": ExtendedKeyUsageOID.SERVER_AUTH,
    "ClientAuth": ExtendedKeyUsageOID.CLIENT_AUTH,
    "CodeSigning": ExtendedKeyUsageOID.CODE_SIGNING,
    "EmailProtection": ExtendedKeyUsageOID.EMAIL_PROTECTION,
    "IPSECEndSystem": x509.ObjectIdentifier("1.3.6.1.5.5.7.3.5"),
    "IPSECTunnel": x509.ObjectIdentifier("1.3.6.1.5.5.7.3.6"),
    "IPSECUser": x509.ObjectIdentifier("1.3.6.1.5.5.7.3.7"),
    "TimeStamping": ExtendedKeyUsageOID.TIME_STAMPING,
    "OCSPSigning": ExtendedKeyUsageOID.OCSP_SIGNING,
    "MicrosoftServerGatedCrypto": x509.ObjectIdentifier("1.3.6.1.4.1.311.10.3.3"),
    "NetscapeServerGatedCrypto": x509.ObjectIdentifier("2.16.840.1.113730.4.1"),
    "MicrosoftCommercialCodeSigning": x509.ObjectIdentifier("1.3.6.1.4.1.311.2.1.22"),
    "MicrosoftKernelCodeSigning": x509.ObjectIdentifier("1.3.6.1.4.1.311.61.1.1"),
}


def build_key_usage(usages: tuple[str, ...]) -> x509.KeyUsage:
    """Build an :class:`x509.KeyUsage` extension from manifest names."""
    usage_set = {KEY_USAGES[name] for name in usages}
    ka = "key_agreement" in usage_set
    return x509.KeyUsage(
        digital_signature="digital_signature" in usage_set,
        content_commitment="content_commitment" in usage_set,
        key_encipherment="key_encipherment" in usage_set,
        data_encipherment="data_encipherment" in usage_set,
        key_agreement=ka,
        key_cert_sign="key_cert_sign" in usage_set,
        crl_sign="crl_sign" in usage_set,
        encipher_only="encipher_only" in usage_set if ka else False,
        decipher_only="decipher_only" in usage_set if ka else False,
    )


def build_eku(ekus: tuple[str, ...]) -> x509.ExtendedKeyUsage:
    """Build an :class:`x509.ExtendedKeyUsage` extension, keeping manifest order."""
    return x509.ExtendedKeyUsage([EXT_KEY_USAGES[name] for name in ekus])


def build_san(sans: tuple[SubjectAltName, ...]) -> x509.SubjectAlternativeName:
    names: list[x509.GeneralName] = []
    for san in sans:
        if san.type is SanType.DNS:
            names.append(x509.DNSName(str(san.value)))
        elif san.type is SanType.IP:
            names.append(x509.IPAddress(san.value))  # type: ignore[arg-type]
        else:
            names.append(x509.UniformResourceIdentifier(str(san.value)))
    return x509.SubjectAlternativeName(names)


def build_crl_distribution_points(urls: tuple[str, ...]) -> x509.CRLDistributionPoints:
    return x509.CRLDistributionPoints(
        [
            x509.DistributionPoint(
                full_name=[x509.UniformResourceIdentifier(url)],
                relative_name=None,
                reasons=None,
                crl_issuer=None,
            )
            for url in urls
        ],
    )


# ---------------------------------------------------------------------------
# Distinguished names
# ---------------------------------------------------------------------------

# Attribute type at the start of the string or after an unescaped comma.
_ATTR_TYPE_RE = re.compile(r"(^|(?<!\\)[,+])\s*([A-Za-z][A-Za-z0-9-]*)\s*=")


def parse_distinguished_name(dn: str) -> x509.Name:
    """Parse an RFC 4514 style DN such as ``cn=leaf,O=Example``.

    Attribute type names are case-insensitive.

    Raises
    ------
    ManifestError
        If the string is not a valid distinguished name.

    """
    normalized = _ATTR_TYPE_RE.sub(
        lambda m: f"{m.group(1)}{m.group(2).upper()}=",
        dn.strip(),
    )
    try:
        name = x509.Name.from_rfc4514_string(normalized)
    except ValueError as exc:
        msg = f"Invalid distinguished name '{dn}': {exc}"
        raise ManifestError(msg) from exc
    if not list(name):
        msg = f"Invalid distinguished name '{dn}': no attributes"
        raise ManifestError(msg)
    return name


def common_name(name: x509.Name) -> str | None:
    """Return the first common name of *name*, or ``None``."""
    attrs = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return None
    value = attrs[0].value
    return value if isinstance(value, str) else value.decode("utf-8")
