"""RFC 4122 UUIDs as type-choice values."""

from __future__ import annotations

import json
import re
import uuid
from typing import Any

from .choice import ComidError, register_comid_tag

UUID_TYPE = "uuid"

_HEX32_RE = re.compile(r"[0-9a-fA-F]{32}")

_VARIANT_NAMES = {
    uuid.RESERVED_NCS: "Reserved",
    uuid.RFC_4122: "RFC4122",
    uuid.RESERVED_MICROSOFT: "Microsoft",
    uuid.RESERVED_FUTURE: "Future",
}


def parse_uuid(s: str) -> uuid.UUID:
    """Parse a UUID in canonical, braced, URN or plain-hex form."""
    if not isinstance(s, str):
        raise ComidError(f"UUID must be a string, got {type(s).__name__}")
    text = s
    if len(text) == 45 and text[:9].lower() == "urn:uuid:":
        text = text[9:]
    elif len(text) == 38 and text[0] == "{" and text[-1] == "}":
        text = text[1:-1]
    elif len(text) not in (32, 36):
        raise ComidError(f"invalid UUID length: {len(s)}")
    if len(text) == 36:
        if any(text[i] != "-" for i in (8, 13, 18, 23)):
            raise ComidError("invalid UUID format")
        text = text.replace("-", "")
    if not _HEX32_RE.fullmatch(text):
        raise ComidError("invalid UUID format")
    return uuid.UUID(hex=text)


def validate_uuid(value: uuid.UUID) -> None:
    """Raise ComidError unless the UUID has the RFC 4122 variant."""
    if value.variant != uuid.RFC_4122:
        name = _VARIANT_NAMES.get(value.variant, "Invalid")
        raise ComidError(f"expecting RFC4122 UUID, got {name} instead")


class TaggedUUID(uuid.UUID):
    """A UUID used as a type-choice value."""

    __slots__ = ()

    def type(self) -> str:
        return UUID_TYPE

    def valid(self) -> None:
        validate_uuid(self)

    def to_json(self) -> str:
        return json.dumps(str(self))

    @classmethod
    def from_json(cls, data: str | bytes) -> TaggedUUID:
        try:
            text = json.loads(data)
        except (ValueError, TypeError) as exc:
            raise ComidError(str(exc)) from exc
        if not isinstance(text, str):
            raise ComidError(f"UUID must be a JSON string, got {type(text).__name__}")
        try:
            parsed = parse_uuid(text)
        except ComidError as exc:
            raise ComidError(f"bad UUID: {exc}") from exc
        return cls(int=parsed.int)


register_comid_tag(37, TaggedUUID)


def new_tagged_uuid(val: Any) -> TaggedUUID:
    """Create a validated TaggedUUID; ``None`` gives the all-zero UUID unchecked."""
    if val is None:
        return TaggedUUID(int=0)
    if isinstance(val, str):
        try:
            ret = TaggedUUID(int=parse_uuid(val).int)
        except ComidError as exc:
            raise ComidError(f"bad UUID: {exc}") from exc
    elif isinstance(val, (bytes, bytearray)):
        if len(val) != 16:
            raise ComidError(
                f"unexpected size for UUID: expected 16 bytes, found {len(val)}"
            )
        ret = TaggedUUID(bytes=bytes(val))
    elif isinstance(val, uuid.UUID):
        ret = TaggedUUID(int=val.int)
    else:
        raise ComidError(f"unexpected type for UUID: {type(val).__name__}")
    ret.valid()
    return ret