"""Shared pieces for type-choice values: errors, type'n'value JSON and CBOR tags."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


class ComidError(ValueError):
    """Raised when a CoMID value is malformed or cannot be (de)serialized."""


@dataclass(frozen=True)
class TypeAndValue:
    """A JSON object holding a string ``type`` and a ``value`` whose shape the type defines."""

    type: str
    value: Any = None

    @classmethod
    def from_json(cls, data: str | bytes) -> TypeAndValue:
        """Parse a ``{"type": ..., "value": ...}`` JSON document."""
        try:
            obj = json.loads(data)
        except (ValueError, TypeError) as exc:
            raise ComidError(str(exc)) from exc
        if not isinstance(obj, dict):
            raise ComidError("type-and-value must be a JSON object")
        typ = obj.get("type", "")
        if not isinstance(typ, str):
            raise ComidError('"type" must be a JSON string')
        return cls(typ, obj.get("value"))

    def to_json(self) -> str:
        """Serialize to a compact JSON object."""
        return json.dumps({"type": self.type, "value": self.value}, separators=(",", ":"))


_types_by_tag: dict[int, type] = {}
_tags_by_type: dict[type, int] = {}


def _as_class(value_type: Any) -> type:
    return value_type if isinstance(value_type, type) else type(value_type)


def register_comid_tag(tag: int, value_type: Any) -> None:
    """Associate a CBOR tag number with a value class (or the class of a value)."""
    if isinstance(tag, bool) or not isinstance(tag, int) or tag < 0:
        raise ComidError(f"invalid CBOR tag: {tag!r}")
    cls = _as_class(value_type)
    if tag in _types_by_tag:
        raise ComidError(f"tag {tag} is already registered")
    if cls in _tags_by_type:
        raise ComidError(
            f"type {cls.__name__} is already registered with tag {_tags_by_type[cls]}"
        )
    _types_by_tag[tag] = cls
    _tags_by_type[cls] = tag


def tag_of(value_type: Any) -> int:
    """Return the CBOR tag registered for a class, a base class of it, or a value's class."""
    cls = _as_class(value_type)
    for klass in cls.__mro__:
        if klass in _tags_by_type:
            return _tags_by_type[klass]
    raise ComidError(f"no CBOR tag registered for {cls.__name__}")


def type_for_tag(tag: int) -> type:
    """Return the class registered under a CBOR tag."""
    try:
        return _types_by_tag[tag]
    except KeyError:
        raise ComidError(f"tag {tag} is not registered") from None