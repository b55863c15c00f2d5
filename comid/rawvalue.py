"""The raw-value type choice of a measurement; only tagged bytes are supported."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any

import cbor2

from .choice import ComidError, TypeAndValue, register_comid_tag, tag_of

BYTES_TYPE = "bytes"


class TaggedBytes(bytes):
    """A byte string carried with its CBOR tag."""

    def __repr__(self) -> str:
        return f"TaggedBytes({bytes(self)!r})"


register_comid_tag(560, TaggedBytes)


@dataclass
class RawValue:
    """A $raw-value-type-choice; ``value`` is unset (None) or TaggedBytes."""

    value: Any = None

    def set_bytes(self, val: bytes) -> RawValue:
        """Store ``val`` as tagged bytes and return self."""
        if not isinstance(val, (bytes, bytearray, memoryview)):
            raise ComidError(f"unexpected type for bytes: {type(val).__name__}")
        self.value = TaggedBytes(bytes(val))
        return self

    def get_bytes(self) -> bytes:
        if self.value is None:
            raise ComidError("raw value is not set")
        if isinstance(self.value, TaggedBytes):
            return bytes(self.value)
        raise ComidError(
            f"unknown type {type(self.value).__name__} for $raw-value-type-choice"
        )

    def to_cbor(self) -> bytes:
        if isinstance(self.value, TaggedBytes):
            item: Any = cbor2.CBORTag(tag_of(TaggedBytes), bytes(self.value))
        else:
            item = self.value
        try:
            return cbor2.dumps(item)
        except (ValueError, TypeError) as exc:
            raise ComidError(f"cannot encode raw-value: {exc}") from exc

    @classmethod
    def from_cbor(cls, data: bytes) -> RawValue:
        try:
            item = cbor2.loads(data)
        except (ValueError, TypeError, EOFError):
            item = None
        if (
            isinstance(item, cbor2.CBORTag)
            and item.tag == tag_of(TaggedBytes)
            and isinstance(item.value, bytes)
        ):
            return cls(TaggedBytes(item.value))
        raise ComidError(f"unknown raw-value (CBOR: {bytes(data).hex()})")

    def to_json(self) -> str:
        if not isinstance(self.value, TaggedBytes):
            raise ComidError(
                f"unknown type {type(self.value).__name__} for raw-value-type-choice"
            )
        encoded = base64.b64encode(self.value).decode("ascii")
        return TypeAndValue(BYTES_TYPE, encoded).to_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> RawValue:
        tnv = TypeAndValue.from_json(data)
        if tnv.type != BYTES_TYPE:
            raise ComidError(f"unknown type {tnv.type} for $raw-value-type-choice")
        raw = tnv.value
        if raw is None:
            return cls(TaggedBytes())
        if not isinstance(raw, str):
            raise ComidError(
                "cannot unmarshal $raw-value-type-choice of type bytes: "
                "expected a base64 string"
            )
        try:
            decoded = base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ComidError(
                f"cannot unmarshal $raw-value-type-choice of type bytes: {exc}"
            ) from exc
        return cls(TaggedBytes(decoded))