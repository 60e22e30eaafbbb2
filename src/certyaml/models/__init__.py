"""Value objects flowing through the generation engine."""

from certyaml.models.descriptor import CertificateDescriptor, SubjectAltName
from certyaml.models.state import FingerprintRecord, ManifestState

__all__ = [
    "CertificateDescriptor",
    "FingerprintRecord",
    "ManifestState",
    "SubjectAltName",
]
