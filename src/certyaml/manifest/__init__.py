"""Manifest loading, issuer resolution, fingerprinting and the run engine."""

from certyaml.manifest.fingerprint import FingerprintEngine, compute_fingerprint
from certyaml.manifest.loader import load_manifest, parse_manifest
from certyaml.manifest.resolver import DependencyResolver, ResolvedCertificate

__all__ = [
    "DependencyResolver",
    "FingerprintEngine",
    "ResolvedCertificate",
    "compute_fingerprint",
    "load_manifest",
    "parse_manifest",
]
