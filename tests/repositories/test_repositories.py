"""Tests for the artifact store and the state repository."""

from __future__ import annotations

import os
import stat

import pytest
import yaml

from certyaml.core.errors import FilesystemError
from certyaml.models.state import FingerprintRecord, ManifestState
from certyaml.repositories.artifacts import ArtifactStore
from certyaml.repositories.state import StateRepository

# ===========================================================================
# ArtifactStore
# ===========================================================================


class TestArtifactStore:
    def test_missing_directory(self, tmp_path):
        with pytest.raises(FilesystemError, match="does not exist"):
            ArtifactStore(tmp_path / "missing")

    def test_file_is_not_a_directory(self, tmp_path):
        path = tmp_path / "file"
        path.write_text("x")
        with pytest.raises(FilesystemError):
            ArtifactStore(path)

    def test_paths(self, dest):
        store = ArtifactStore(dest)
        assert store.directory == dest
        assert store.cert_path("ca") == dest / "ca.pem"
        assert store.key_path("ca") == dest / "ca-key.pem"
        assert store.crl_path("ca") == dest / "ca-crl.pem"

    def test_write_and_read(self, dest):
        store = ArtifactStore(dest)
        path = store.cert_path("ca")
        assert not store.exists(path)

        store.write_bytes(path, b"data")
        assert store.exists(path)
        assert store.read_bytes(path) == b"data"

    def test_private_file_mode(self, dest):
        store = ArtifactStore(dest)
        path = store.key_path("ca")
        store.write_bytes(path, b"old")
        os.chmod(path, 0o644)

        store.write_bytes(path, b"secret", private=True)

        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert path.read_bytes() == b"secret"

    def test_read_missing(self, dest):
        store = ArtifactStore(dest)
        with pytest.raises(FilesystemError, match="Cannot read"):
            store.read_bytes(store.cert_path("nope"))

    def test_write_failure(self, dest):
        store = ArtifactStore(dest)
        with pytest.raises(FilesystemError, match="Cannot write"):
            store.write_bytes(dest / "no-such-dir" / "x.pem", b"data")


# ===========================================================================
# StateRepository
# ===========================================================================


class TestStateRepository:
    def test_missing_file_is_empty_state(self, tmp_path):
        assert len(StateRepository(tmp_path / "x.state").load()) == 0

    def test_round_trip(self, tmp_path):
        repo = StateRepository(tmp_path / "x.state")
        repo.save(ManifestState({"b": "2", "a": "1"}))

        assert repo.load() == ManifestState({"a": "1", "b": "2"})
        assert yaml.safe_load(repo.path.read_text()) == {"a": "1", "b": "2"}

    def test_load_yields_records(self, tmp_path):
        path = tmp_path / "x.state"
        path.write_text("ca: abc\nleaf: def\n")

        records = list(StateRepository(path).load().records())

        assert records == [FingerprintRecord("ca", "abc"), FingerprintRecord("leaf", "def")]

    def test_keys_written_sorted(self, tmp_path):
        repo = StateRepository(tmp_path / "x.state")
        repo.save(ManifestState({"b": "2", "a": "1"}))
        assert repo.path.read_text().splitlines() == ["a: '1'", "b: '2'"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "x.state"
        path.write_text("")
        assert len(StateRepository(path).load()) == 0

    @pytest.mark.parametrize("content", ["- a\n- b\n", "a: 1\n", "a: [1, 2]\n"])
    def test_not_a_mapping_of_strings(self, tmp_path, content):
        path = tmp_path / "x.state"
        path.write_text(content)
        with pytest.raises(FilesystemError, match="Corrupt state file"):
            StateRepository(path).load()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "x.state"
        path.write_text("a: [unclosed\n")
        with pytest.raises(FilesystemError, match="Corrupt state file"):
            StateRepository(path).load()

    def test_unwritable_location(self, tmp_path):
        repo = StateRepository(tmp_path / "missing" / "x.state")
        with pytest.raises(FilesystemError, match="Cannot write"):
            repo.save(ManifestState({"a": "1"}))
