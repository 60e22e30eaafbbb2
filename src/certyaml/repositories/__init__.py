"""On-disk persistence: generated artifacts and fingerprint state."""

from certyaml.repositories.artifacts import ArtifactStore
from certyaml.repositories.state import StateRepository

__all__ = ["ArtifactStore", "StateRepository"]
