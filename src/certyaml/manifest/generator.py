"""Incremental generation engine.

One run, in strict manifest order:

1. resolve every issuer reference (and validate the whole manifest),
2. fingerprint each entity and decide SKIP or REGENERATE,
3. issue certificates for regenerated entities,
4. rebuild CRLs whose issuer or revoked members changed, or whose
   listed serials no longer match the manifest,
5. return (and, via :func:`generate_certificates`, persist) the new
   fingerprint state.

Steps 1 and 2 write nothing, so configuration errors leave the
destination untouched.  Files written before a later failure stay on
disk; the state file is written only after everything succeeded.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from certyaml.ca.builder import CertificateBuilder
from certyaml.ca.crl import RevocationListBuilder, group_revoked
from certyaml.core.types import Action
from certyaml.manifest.fingerprint import FingerprintEngine
from certyaml.manifest.loader import load_manifest
from certyaml.manifest.resolver import resolve_all
from certyaml.repositories.artifacts import ArtifactStore
from certyaml.repositories.state import StateRepository

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime
    from pathlib import Path

    from certyaml.config.settings import GeneratorSettings
    from certyaml.models.descriptor import CertificateDescriptor
    from certyaml.models.state import ManifestState

log = logging.getLogger(__name__)


def run_manifest(
    descriptors: Sequence[CertificateDescriptor],
    previous: ManifestState,
    store: ArtifactStore,
    *,
    prune_stale_state: bool = True,
    clock: Callable[[], datetime] | None = None,
) -> ManifestState:
    """Bring *store* up to date with *descriptors* and return the next state.

    *previous* is never modified.

    Raises
    ------
    CertyamlError
        Any subclass; the first error aborts the run.

    """
    entities = resolve_all(descriptors)
    published = {e.filename for e in entities if store.exists(store.crl_path(e.filename))}
    revocations = group_revoked(entities, published=published)
    crl_issuers = {id(entry.issuer) for entry in revocations}

    engine = FingerprintEngine(previous, store)
    for entity in entities:
        engine.evaluate(entity, issues_crl=id(entity) in crl_issuers)

    certificates = CertificateBuilder(store, clock=clock)
    issued = 0
    for entity in entities:
        if entity.action is Action.REGENERATE:
            certificates.issue(entity)
            issued += 1

    crls = RevocationListBuilder(store, certificates, clock=clock)
    for entry in revocations:
        if entry.needs_rebuild or not crls.is_current(entry):
            crls.build(entry)

    if issued == 0:
        log.info("No changes in manifest")
    else:
        log.info("Generated %d of %d certificate(s)", issued, len(entities))

    return engine.next_state(prune_stale_state=prune_stale_state)


def generate_certificates(
    manifest_path: str | Path,
    state_path: str | Path,
    destination: str | Path,
    *,
    settings: GeneratorSettings | None = None,
) -> ManifestState:
    """Load the manifest, run the engine and persist the new state.

    Parameters
    ----------
    manifest_path:
        YAML manifest to read.
    state_path:
        Fingerprint state file; read at start, rewritten on success.
    destination:
        Existing directory for certificates, keys and CRLs.
    settings:
        Engine settings; defaults apply when omitted.

    Returns
    -------
    ManifestState
        The state that was written to *state_path*.

    """
    prune = settings.prune_stale_state if settings is not None else True

    store = ArtifactStore(destination)
    descriptors = load_manifest(manifest_path)
    repository = StateRepository(state_path)
    previous = repository.load()

    state = run_manifest(descriptors, previous, store, prune_stale_state=prune)
    repository.save(state)
    return state
