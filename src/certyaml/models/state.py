"""Fingerprint state carried between runs."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class FingerprintRecord:
    key: str
    fingerprint: str


@dataclass(frozen=True)
class ManifestState:
    """Outcome of one successful run: entity key -> fingerprint.

    Immutable.  The engine reads the previous state and returns a new
    instance; nothing mutates a state in place.
    """

    fingerprints: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "fingerprints",
            MappingProxyType(dict(self.fingerprints)),
        )

    @classmethod
    def from_records(cls, records: list[FingerprintRecord]) -> ManifestState:
        return cls({r.key: r.fingerprint for r in records})

    def fingerprint_for(self, key: str) -> str | None:
        """Return the recorded fingerprint for *key*, or ``None``."""
        return self.fingerprints.get(key)

    def records(self) -> Iterator[FingerprintRecord]:
        for key in sorted(self.fingerprints):
            yield FingerprintRecord(key, self.fingerprints[key])

    def merged_with(self, other: ManifestState) -> ManifestState:
        """Return *other*'s entries on top of this state's entries."""
        combined = dict(self.fingerprints)
        combined.update(other.fingerprints)
        return ManifestState(combined)

    def to_dict(self) -> dict[str, str]:
        return {r.key: r.fingerprint for r in self.records()}

    def __len__(self) -> int:
        return len(self.fingerprints)

    def __contains__(self, key: object) -> bool:
        return key in self.fingerprints
