"""Manifest loader -- YAML documents to :class:`CertificateDescriptor`.

A manifest is a YAML stream with one certificate per document::

    subject: cn=root
    ---
    subject: cn=leaf
    issuer: cn=root
    sans:
      - DNS:leaf.example.com

Every field except ``subject`` is optional.  Defaults that depend on
other fields (key size per algorithm, CA flag, filename) are applied
here so that downstream code and fingerprints see effective values.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any

import yaml

from certyaml.ca.cert_utils import (
    EXT_KEY_USAGES,
    KEY_USAGES,
    common_name,
    parse_distinguished_name,
)
from certyaml.ca.keys import DEFAULT_KEY_SIZES
from certyaml.core.errors import FilesystemError, ManifestError
from certyaml.core.types import KeyType
from certyaml.models.descriptor import CertificateDescriptor, parse_san

log = logging.getLogger(__name__)

_KNOWN_FIELDS = frozenset(
    {
        "subject",
        "sans",
        "key_type",
        "key_size",
        "expires",
        "not_before",
        "not_after",
        "key_usages",
        "ext_key_usages",
        "issuer",
        "filename",
        "ca",
        "serial",
        "revoked",
        "crl_distribution_points",
    }
)

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")

_DURATION_UNITS = {
    "ns": timedelta(microseconds=0.001),
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}


# ---------------------------------------------------------------------------
# Scalar parsers
# ---------------------------------------------------------------------------


def parse_duration(value: str) -> timedelta:
    """Parse a Go-style duration such as ``8760h``, ``1h30m`` or ``90s``.

    Raises
    ------
    ManifestError
        If *value* is empty or contains anything but number/unit pairs.

    """
    text = str(value).strip()
    if not text:
        msg = "Empty duration"
        raise ManifestError(msg)

    pos = 0
    total = timedelta()
    while pos < len(text):
        match = _DURATION_PART_RE.match(text, pos)
        if match is None:
            msg = f"Invalid duration '{value}'; expected e.g. '8760h' or '1h30m'"
            raise ManifestError(msg)
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return total


def parse_timestamp(value: Any, field: str) -> datetime:  # noqa: ANN401
    """Normalise a YAML timestamp or RFC 3339 string to an aware UTC datetime."""
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        ts = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value.strip())
        except ValueError:
            msg = f"Field '{field}' is not an RFC 3339 timestamp: '{value}'"
            raise ManifestError(msg) from None
    else:
        msg = f"Field '{field}' must be a timestamp, got {type(value).__name__}"
        raise ManifestError(msg)

    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def _string_list(value: Any, field: str) -> tuple[str, ...]:  # noqa: ANN401
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        msg = f"Field '{field}' must be a list, got {type(value).__name__}"
        raise ManifestError(msg)
    return tuple(str(item) for item in value)


def _names(value: Any, field: str, known: dict) -> tuple[str, ...]:  # noqa: ANN401
    names = _string_list(value, field)
    for name in names:
        if name not in known:
            msg = f"Unknown {field} value '{name}'; supported: {sorted(known)}"
            raise ManifestError(msg)
    return names


def _require_type(value: Any, expected: type, field: str) -> Any:  # noqa: ANN401
    # bool is an int subclass; reject it where an integer is expected.
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        msg = f"Field '{field}' must be of type {expected.__name__}, got {type(value).__name__}"
        raise ManifestError(msg)
    return value


# ---------------------------------------------------------------------------
# Descriptor builder
# ---------------------------------------------------------------------------


def build_descriptor(data: dict[str, Any]) -> CertificateDescriptor:  # noqa: C901, PLR0912
    """Build one descriptor from a raw manifest document."""
    unknown = sorted(set(data) - _KNOWN_FIELDS)
    if unknown:
        msg = f"Unknown field(s): {', '.join(unknown)}"
        raise ManifestError(msg)

    subject = data.get("subject")
    if not subject:
        msg = "Field 'subject' is required"
        raise ManifestError(msg)
    subject = str(subject)
    name = parse_distinguished_name(subject)

    issuer = str(data.get("issuer") or "")

    filename = data.get("filename")
    if filename is None:
        filename = common_name(name)
        if not filename:
            msg = f"Subject '{subject}' has no common name; set 'filename' explicitly"
            raise ManifestError(msg)
    filename = str(filename)
    if "/" in filename or filename in {".", ".."}:
        msg = f"Field 'filename' must be a plain basename, got '{filename}'"
        raise ManifestError(msg)

    try:
        key_type = KeyType(str(data.get("key_type", KeyType.EC.value)).upper())
    except ValueError:
        msg = f"Unknown key_type '{data.get('key_type')}'; supported: {[k.value for k in KeyType]}"
        raise ManifestError(msg) from None

    key_size = data.get("key_size")
    if key_size is None:
        key_size = DEFAULT_KEY_SIZES[key_type]
    _require_type(key_size, int, "key_size")

    expires = None
    if data.get("expires") is not None:
        expires = parse_duration(data["expires"])

    not_before = None
    if data.get("not_before") is not None:
        not_before = parse_timestamp(data["not_before"], "not_before")
    not_after = None
    if data.get("not_after") is not None:
        not_after = parse_timestamp(data["not_after"], "not_after")

    is_ca = data.get("ca")
    if is_ca is None:
        is_ca = not issuer
    _require_type(is_ca, bool, "ca")

    serial = data.get("serial")
    if serial is not None:
        _require_type(serial, int, "serial")
        if serial <= 0:
            msg = f"Field 'serial' must be a positive integer, got {serial}"
            raise ManifestError(msg)

    revoked = data.get("revoked", False)
    _require_type(revoked, bool, "revoked")

    return CertificateDescriptor(
        subject=subject,
        filename=filename,
        issuer=issuer,
        sans=tuple(parse_san(s) for s in _string_list(data.get("sans"), "sans")),
        key_type=key_type,
        key_size=key_size,
        expires=expires,
        not_before=not_before,
        not_after=not_after,
        key_usages=_names(data.get("key_usages"), "key_usages", KEY_USAGES),
        ext_key_usages=_names(data.get("ext_key_usages"), "ext_key_usages", EXT_KEY_USAGES),
        is_ca=is_ca,
        serial=serial,
        revoked=revoked,
        crl_distribution_points=_string_list(
            data.get("crl_distribution_points"),
            "crl_distribution_points",
        ),
    )


def parse_manifest(text: str, source: str = "<string>") -> list[CertificateDescriptor]:
    """Parse a manifest YAML stream into ordered descriptors."""
    try:
        documents = list(yaml.safe_load_all(text))
    except yaml.YAMLError as exc:
        msg = f"Invalid YAML in {source}: {exc}"
        raise ManifestError(msg) from exc

    descriptors: list[CertificateDescriptor] = []
    for index, doc in enumerate(documents):
        if doc is None:
            continue
        if not isinstance(doc, dict):
            msg = f"{source}: document {index} must be a mapping, got {type(doc).__name__}"
            raise ManifestError(msg)
        try:
            descriptors.append(build_descriptor(doc))
        except ManifestError as exc:
            msg = f"{source}: document {index}: {exc.detail}"
            raise ManifestError(msg) from exc

    log.debug("Loaded %d certificate(s) from %s", len(descriptors), source)
    return descriptors


def load_manifest(path: str | Path) -> list[CertificateDescriptor]:
    """Read and parse the manifest at *path*.

    Raises
    ------
    FilesystemError
        If the manifest cannot be read.
    ManifestError
        If its content is malformed.

    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read manifest {path}: {exc}"
        raise FilesystemError(msg) from exc
    return parse_manifest(text, source=str(path))
