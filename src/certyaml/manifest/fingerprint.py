"""Configuration fingerprints and the skip / regenerate decision.

A fingerprint is the SHA-256 of a descriptor's canonical form followed
by its issuer's fingerprint, so any change to an ancestor changes every
descendant's fingerprint.  Order-insensitive list fields are sorted
before hashing; timestamps are rendered as RFC 3339 in UTC.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import TYPE_CHECKING, Any

from certyaml.core.types import Action
from certyaml.models.state import ManifestState

if TYPE_CHECKING:
    from datetime import datetime

    from certyaml.manifest.resolver import ResolvedCertificate
    from certyaml.models.descriptor import CertificateDescriptor
    from certyaml.repositories.artifacts import ArtifactStore

log = logging.getLogger(__name__)


def _timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def canonicalize(descriptor: CertificateDescriptor) -> dict[str, Any]:
    """Return the order-independent, JSON-serialisable form of *descriptor*."""
    return {
        "subject": descriptor.subject,
        "filename": descriptor.filename,
        "issuer": descriptor.issuer,
        "sans": sorted(str(san) for san in descriptor.sans),
        "key_type": descriptor.key_type.value,
        "key_size": descriptor.key_size,
        "expires": descriptor.expires.total_seconds() if descriptor.expires else None,
        "not_before": _timestamp(descriptor.not_before),
        "not_after": _timestamp(descriptor.not_after),
        "key_usages": sorted(descriptor.key_usages),
        "ext_key_usages": sorted(descriptor.ext_key_usages),
        "ca": descriptor.is_ca,
        "serial": descriptor.serial,
        "revoked": descriptor.revoked,
        "crl_distribution_points": sorted(descriptor.crl_distribution_points),
    }


def compute_fingerprint(descriptor: CertificateDescriptor, issuer_fingerprint: str = "") -> str:
    """Hash *descriptor* chained with its issuer's fingerprint.

    Self-signed entities pass the empty string.
    """
    canonical = json.dumps(canonicalize(descriptor), sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256()
    digest.update(canonical.encode("utf-8"))
    digest.update(issuer_fingerprint.encode("ascii"))
    return digest.hexdigest()


class FingerprintEngine:
    """Decide SKIP or REGENERATE per entity and collect the next state.

    Parameters
    ----------
    previous:
        State recorded by the last successful run.
    store:
        Destination directory, checked for the expected output files.

    """

    def __init__(self, previous: ManifestState, store: ArtifactStore) -> None:
        self._previous = previous
        self._store = store
        self._next: dict[str, str] = {}

    def evaluate(self, entity: ResolvedCertificate, *, issues_crl: bool = False) -> Action:
        """Fingerprint *entity*, record it, and decide whether to rebuild.

        The issuer must have been evaluated first.  An entity is skipped
        only when its fingerprint is unchanged, its certificate, key and
        (when *issues_crl*) CRL files exist, and its issuer is not being
        regenerated.
        """
        issuer_fp = entity.issuer.fingerprint if entity.issuer is not None else ""
        entity.fingerprint = compute_fingerprint(entity.descriptor, issuer_fp)
        self._next[entity.filename] = entity.fingerprint

        expected = [
            self._store.cert_path(entity.filename),
            self._store.key_path(entity.filename),
        ]
        if issues_crl:
            expected.append(self._store.crl_path(entity.filename))

        unchanged = self._previous.fingerprint_for(entity.filename) == entity.fingerprint
        present = all(self._store.exists(p) for p in expected)
        issuer_rebuilt = entity.issuer is not None and entity.issuer.action is Action.REGENERATE

        if unchanged and present and not issuer_rebuilt:
            entity.action = Action.SKIP
            log.info(
                "Skipping: %s (no changes)",
                entity.filename,
                extra={"entity": entity.filename, "action": entity.action.value},
            )
        else:
            entity.action = Action.REGENERATE
            log.info(
                "Writing: %s",
                entity.filename,
                extra={"entity": entity.filename, "action": entity.action.value},
            )
        return entity.action

    def next_state(self, *, prune_stale_state: bool = True) -> ManifestState:
        """Return the state to persist for this run.

        With *prune_stale_state* (the default) only entries of the
        current manifest are kept; otherwise entries for certificates
        no longer in the manifest are carried over unchanged.
        """
        current = ManifestState(self._next)
        if prune_stale_state:
            stale = [k for k in self._previous.fingerprints if k not in current]
            if stale:
                log.info("Dropping stale state entries: %s", ", ".join(sorted(stale)))
            return current
        return self._previous.merged_with(current)
