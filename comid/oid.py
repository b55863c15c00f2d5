"""Object identifiers held as the BER encoding of their value."""

from __future__ import annotations

import json
import re
from typing import Any, Iterator

from .choice import ComidError, register_comid_tag

OID_TYPE = "oid"

MAX_ASN1_OID_LEN = 255
MIN_NUM_OID_ARCS = 3

_ARC_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MAX = (1 << 63) - 1
_INT32_MAX = (1 << 31) - 1


def _arcs_from_dotted(s: str) -> list[int]:
    if not isinstance(s, str):
        raise ComidError(f"OID must be a string, got {type(s).__name__}")
    if s == "":
        raise ComidError("empty OID")
    if s[0] == ".":
        raise ComidError("OID must be absolute")
    arcs = []
    for part in s.split("."):
        if not _ARC_RE.fullmatch(part):
            raise ComidError(f"invalid OID: cannot parse arc {part!r}")
        n = int(part)
        if n > _INT64_MAX:
            raise ComidError(f"invalid OID: arc {part!r} out of range")
        if n < 0:
            raise ComidError(f"invalid OID: negative arc {n} not allowed")
        arcs.append(n)
    if len(arcs) < MIN_NUM_OID_ARCS:
        raise ComidError(
            f"invalid OID: got {len(arcs)} arcs, expecting at least {MIN_NUM_OID_ARCS}"
        )
    return arcs


def _encode_base128(n: int) -> bytes:
    out = [n & 0x7F]
    n >>= 7
    while n:
        out.append(0x80 | (n & 0x7F))
        n >>= 7
    return bytes(reversed(out))


def _encode_arcs(arcs: list[int]) -> bytes:
    first, second = arcs[0], arcs[1]
    if first > 2 or (first < 2 and second >= 40):
        raise ComidError("invalid OID: invalid object identifier")
    head = _encode_base128(first * 40 + second)
    return head + b"".join(_encode_base128(arc) for arc in arcs[2:])


def _subidentifiers(value: bytes) -> Iterator[int]:
    current = 0
    count = 0
    for byte in value:
        if count == 0 and byte == 0x80:
            raise ValueError("integer is not minimally encoded")
        count += 1
        if count > 5:
            raise ValueError("base 128 integer too large")
        current = (current << 7) | (byte & 0x7F)
        if not byte & 0x80:
            if current > _INT32_MAX:
                raise ValueError("base 128 integer too large")
            yield current
            current = 0
            count = 0
    if count:
        raise ValueError("truncated base 128 integer")


def _decode_arcs(value: bytes) -> list[int]:
    if not value:
        raise ValueError("zero length object identifier")
    subids = list(_subidentifiers(value))
    head = subids[0]
    first, second = (head // 40, head % 40) if head < 80 else (2, head - 80)
    return [first, second, *subids[1:]]


class OID(bytes):
    """An absolute OID, stored as its BER-encoded value (without tag and length)."""

    @classmethod
    def from_string(cls, s: str) -> OID:
        """Build an OID from dotted-decimal notation, e.g. ``"1.2.3.4"``."""
        return cls(_encode_arcs(_arcs_from_dotted(s)))

    def __str__(self) -> str:
        if len(self) > MAX_ASN1_OID_LEN:
            return ""
        try:
            arcs = _decode_arcs(bytes(self))
        except ValueError:
            return ""
        return ".".join(str(arc) for arc in arcs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({bytes(self)!r})"

    def to_json(self) -> str:
        return json.dumps(str(self))

    @classmethod
    def from_json(cls, data: str | bytes) -> OID:
        try:
            text = json.loads(data)
        except (ValueError, TypeError) as exc:
            raise ComidError(str(exc)) from exc
        if not isinstance(text, str):
            raise ComidError(f"OID must be a JSON string, got {type(text).__name__}")
        return cls.from_string(text)


class TaggedOID(OID):
    """An OID used as a type-choice value."""

    def type(self) -> str:
        return OID_TYPE

    def valid(self) -> None:
        """Reject values too long to be carried as an OID."""
        if len(self) > MAX_ASN1_OID_LEN:
            raise ComidError(
                f"OIDs greater than {MAX_ASN1_OID_LEN} bytes are not accepted"
            )


register_comid_tag(111, TaggedOID)


def new_tagged_oid(val: Any) -> TaggedOID:
    """Create a TaggedOID from a dotted string or raw bytes.

    ``None`` and values of any other type yield an empty OID.
    """
    if isinstance(val, str):
        return TaggedOID.from_string(val)
    if isinstance(val, (bytes, bytearray, memoryview)):
        return TaggedOID(bytes(val))
    return TaggedOID()