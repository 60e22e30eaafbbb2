"""Key generation, certificate signing and CRL building.

Exports the certificate and revocation-list builders used by the
generation engine.
"""

from certyaml.ca.builder import CertificateBuilder
from certyaml.ca.crl import RevocationEntry, RevocationListBuilder, group_revoked

__all__ = [
    "CertificateBuilder",
    "RevocationEntry",
    "RevocationListBuilder",
    "group_revoked",
]
