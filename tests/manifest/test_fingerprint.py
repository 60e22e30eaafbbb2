"""Tests for fingerprints and skip/regenerate decisions."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import pytest

from certyaml.core.types import Action, KeyType
from certyaml.manifest.fingerprint import FingerprintEngine, canonicalize, compute_fingerprint
from certyaml.manifest.resolver import resolve_all
from certyaml.models.descriptor import CertificateDescriptor, parse_san
from certyaml.models.state import ManifestState
from certyaml.repositories.artifacts import ArtifactStore


def _desc(subject="cn=leaf", filename="leaf", issuer="", **kwargs):
    return CertificateDescriptor(subject=subject, filename=filename, issuer=issuer, **kwargs)


def _touch_outputs(store, *filenames, crl=False):
    for name in filenames:
        store.cert_path(name).write_bytes(b"cert")
        store.key_path(name).write_bytes(b"key")
        if crl:
            store.crl_path(name).write_bytes(b"crl")


@pytest.fixture()
def store(dest):
    return ArtifactStore(dest)


# ===========================================================================
# compute_fingerprint
# ===========================================================================


class TestComputeFingerprint:
    def test_deterministic(self):
        assert compute_fingerprint(_desc()) == compute_fingerprint(_desc())

    def test_hex_sha256(self):
        fp = compute_fingerprint(_desc())
        assert len(fp) == 64
        int(fp, 16)

    def test_san_order_does_not_matter(self):
        a = _desc(sans=(parse_san("DNS:a"), parse_san("DNS:b")))
        b = _desc(sans=(parse_san("DNS:b"), parse_san("DNS:a")))
        assert compute_fingerprint(a) == compute_fingerprint(b)

    def test_usage_order_does_not_matter(self):
        a = _desc(key_usages=("CertSign", "CRLSign"), ext_key_usages=("ServerAuth", "ClientAuth"))
        b = _desc(key_usages=("CRLSign", "CertSign"), ext_key_usages=("ClientAuth", "ServerAuth"))
        assert compute_fingerprint(a) == compute_fingerprint(b)

    @pytest.mark.parametrize(
        "change",
        [
            {"subject": "cn=other"},
            {"sans": (parse_san("DNS:x"),)},
            {"key_type": KeyType.RSA, "key_size": 2048},
            {"key_size": 384},
            {"expires": timedelta(hours=1)},
            {"not_before": datetime(2020, 1, 1, tzinfo=UTC)},
            {"not_after": datetime(2030, 1, 1, tzinfo=UTC)},
            {"key_usages": ("DigitalSignature",)},
            {"ext_key_usages": ("ServerAuth",)},
            {"is_ca": True},
            {"serial": 7},
            {"revoked": True},
            {"crl_distribution_points": ("http://crl.example.com/ca.pem",)},
        ],
    )
    def test_any_field_change_changes_fingerprint(self, change):
        assert compute_fingerprint(_desc()) != compute_fingerprint(_desc(**change))

    def test_issuer_fingerprint_is_chained(self):
        d = _desc(issuer="cn=root")
        assert compute_fingerprint(d, "a" * 64) != compute_fingerprint(d, "b" * 64)

    def test_canonical_timestamps_in_utc(self):
        canonical = canonicalize(_desc(not_before=datetime(2020, 1, 1, 9, tzinfo=UTC)))
        assert canonical["not_before"] == "2020-01-01T09:00:00Z"
        assert canonical["not_after"] is None


# ===========================================================================
# FingerprintEngine
# ===========================================================================


class TestFingerprintEngine:
    def test_fresh_run_regenerates(self, store):
        (root,) = resolve_all([_desc("cn=root", "root")])
        engine = FingerprintEngine(ManifestState(), store)

        assert engine.evaluate(root) is Action.REGENERATE
        assert root.fingerprint == compute_fingerprint(root.descriptor)

    def test_unchanged_and_present_skips(self, store, caplog):
        (root,) = resolve_all([_desc("cn=root", "root")])
        previous = ManifestState({"root": compute_fingerprint(root.descriptor)})
        _touch_outputs(store, "root")

        with caplog.at_level(logging.INFO, logger="certyaml"):
            action = FingerprintEngine(previous, store).evaluate(root)

        assert action is Action.SKIP
        assert "Skipping: root (no changes)" in caplog.messages

    def test_missing_key_regenerates(self, store):
        (root,) = resolve_all([_desc("cn=root", "root")])
        previous = ManifestState({"root": compute_fingerprint(root.descriptor)})
        _touch_outputs(store, "root")
        store.key_path("root").unlink()

        assert FingerprintEngine(previous, store).evaluate(root) is Action.REGENERATE

    def test_missing_crl_regenerates_issuer(self, store):
        (root,) = resolve_all([_desc("cn=root", "root")])
        previous = ManifestState({"root": compute_fingerprint(root.descriptor)})
        _touch_outputs(store, "root")

        engine = FingerprintEngine(previous, store)
        assert engine.evaluate(root, issues_crl=True) is Action.REGENERATE

    def test_issuer_regeneration_propagates(self, store):
        root, leaf = resolve_all([_desc("cn=root", "root"), _desc("cn=leaf", "leaf", "cn=root")])
        root_fp = compute_fingerprint(root.descriptor)
        previous = ManifestState(
            {"root": root_fp, "leaf": compute_fingerprint(leaf.descriptor, root_fp)},
        )
        # Only the leaf's files survive; the root must be rebuilt.
        _touch_outputs(store, "leaf")

        engine = FingerprintEngine(previous, store)
        assert engine.evaluate(root) is Action.REGENERATE
        assert engine.evaluate(leaf) is Action.REGENERATE

    def test_issuer_change_changes_leaf_fingerprint(self, store):
        root, leaf = resolve_all([_desc("cn=root", "root"), _desc("cn=leaf", "leaf", "cn=root")])
        engine = FingerprintEngine(ManifestState(), store)
        engine.evaluate(root)
        engine.evaluate(leaf)

        root2, leaf2 = resolve_all(
            [_desc("cn=root", "root", key_size=384), _desc("cn=leaf", "leaf", "cn=root")],
        )
        engine2 = FingerprintEngine(ManifestState(), store)
        engine2.evaluate(root2)
        engine2.evaluate(leaf2)

        assert leaf.descriptor == leaf2.descriptor
        assert leaf.fingerprint != leaf2.fingerprint


class TestNextState:
    def _run(self, store, previous, prune):
        (root,) = resolve_all([_desc("cn=root", "root")])
        engine = FingerprintEngine(previous, store)
        engine.evaluate(root)
        return engine.next_state(prune_stale_state=prune), root

    def test_prunes_stale_by_default(self, store, caplog):
        previous = ManifestState({"gone": "f" * 64})
        with caplog.at_level(logging.INFO, logger="certyaml"):
            state, root = self._run(store, previous, prune=True)

        assert state.to_dict() == {"root": root.fingerprint}
        assert "Dropping stale state entries: gone" in caplog.messages

    def test_retains_stale_when_asked(self, store):
        previous = ManifestState({"gone": "f" * 64, "root": "0" * 64})
        state, root = self._run(store, previous, prune=False)

        assert state.to_dict() == {"gone": "f" * 64, "root": root.fingerprint}
