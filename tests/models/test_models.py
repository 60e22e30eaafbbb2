"""Tests for value objects in certyaml.models."""

from __future__ import annotations

import dataclasses
import ipaddress

import pytest

from certyaml.core.errors import InvalidSAN
from certyaml.core.types import SanType
from certyaml.models import CertificateDescriptor, FingerprintRecord, ManifestState
from certyaml.models.descriptor import parse_san

# ---------------------------------------------------------------------------
# parse_san
# ---------------------------------------------------------------------------


class TestParseSan:
    def test_dns(self):
        san = parse_san("DNS:host.example.com")
        assert san.type is SanType.DNS
        assert san.value == "host.example.com"
        assert str(san) == "DNS:host.example.com"

    def test_prefix_case_insensitive(self):
        assert parse_san("dns:host").type is SanType.DNS

    def test_ipv4(self):
        san = parse_san("IP:127.0.0.1")
        assert san.value == ipaddress.IPv4Address("127.0.0.1")

    def test_ipv6(self):
        san = parse_san("IP:::1")
        assert san.value == ipaddress.IPv6Address("::1")
        assert str(san) == "IP:::1"

    def test_uri_keeps_colons(self):
        san = parse_san("URI:http://localhost:8080/path")
        assert san.type is SanType.URI
        assert san.value == "http://localhost:8080/path"

    @pytest.mark.parametrize(
        "text",
        ["host.example.com", "EMAIL:a@b", "DNS:", "IP:999.1.1.1", "URI:no-scheme"],
    )
    def test_invalid(self, text):
        with pytest.raises(InvalidSAN):
            parse_san(text)


# ---------------------------------------------------------------------------
# CertificateDescriptor
# ---------------------------------------------------------------------------


class TestCertificateDescriptor:
    def test_self_signed(self):
        assert CertificateDescriptor(subject="cn=a", filename="a").is_self_signed
        assert not CertificateDescriptor(subject="cn=a", filename="a", issuer="cn=r").is_self_signed

    def test_frozen(self):
        d = CertificateDescriptor(subject="cn=a", filename="a")
        with pytest.raises(dataclasses.FrozenInstanceError):
            d.subject = "cn=b"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# ManifestState
# ---------------------------------------------------------------------------


class TestManifestState:
    def test_empty(self):
        state = ManifestState()
        assert len(state) == 0
        assert state.fingerprint_for("x") is None

    def test_lookup(self):
        state = ManifestState({"a": "1"})
        assert "a" in state
        assert state.fingerprint_for("a") == "1"

    def test_isolated_from_input(self):
        source = {"a": "1"}
        state = ManifestState(source)
        source["a"] = "2"
        assert state.fingerprint_for("a") == "1"

    def test_read_only(self):
        state = ManifestState({"a": "1"})
        with pytest.raises(TypeError):
            state.fingerprints["a"] = "2"  # type: ignore[index]

    def test_records_sorted(self):
        state = ManifestState({"b": "2", "a": "1"})
        assert list(state.records()) == [FingerprintRecord("a", "1"), FingerprintRecord("b", "2")]

    def test_from_records(self):
        state = ManifestState.from_records([FingerprintRecord("a", "1")])
        assert state.to_dict() == {"a": "1"}

    def test_merged_with(self):
        merged = ManifestState({"a": "1", "b": "1"}).merged_with(ManifestState({"b": "2"}))
        assert merged.to_dict() == {"a": "1", "b": "2"}

    def test_equality(self):
        assert ManifestState({"a": "1"}) == ManifestState({"a": "1"})
        assert ManifestState({"a": "1"}) != ManifestState({"a": "2"})
