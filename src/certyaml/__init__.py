"""certyaml -- declarative, incremental PKI generation.

Public API::

    from certyaml import generate_certificates

    state = generate_certificates("certs.yaml", "out/certs.state", "out")
"""

__version__ = "1.0.0"

from certyaml.manifest.generator import generate_certificates, run_manifest  # noqa: E402

__all__ = ["__version__", "generate_certificates", "run_manifest"]
