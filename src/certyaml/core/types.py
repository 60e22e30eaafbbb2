"""Enumerated types shared across the certyaml engine.

All enums inherit from ``StrEnum`` so their ``.value`` is the plain
string used in manifests, fingerprints, and log output.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class KeyType(StrEnum):
    EC = "EC"
    RSA = "RSA"
    ED25519 = "ED25519"


# ---------------------------------------------------------------------------
# Subject alternative names
# ---------------------------------------------------------------------------


class SanType(StrEnum):
    DNS = "DNS"
    IP = "IP"
    URI = "URI"


# ---------------------------------------------------------------------------
# Generation decisions
# ---------------------------------------------------------------------------


class Action(StrEnum):
    SKIP = "skip"
    REGENERATE = "regenerate"
