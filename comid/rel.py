"""Relations between CoMID tags (the rel of a linked tag)."""

from __future__ import annotations

import json
from typing import ClassVar

import cbor2

from .choice import ComidError

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1

_rel_names: dict[int, str] = {0: "supplements", 1: "replaces"}
_rel_values: dict[str, int] = {name: value for value, name in _rel_names.items()}
_JSON_RELS = {"supplements": 0, "replaces": 1}


class Rel(int):
    """A tag relation; ``Rel()`` is the unset relation."""

    SUPPLEMENTS: ClassVar[Rel]
    REPLACES: ClassVar[Rel]
    UNSET: ClassVar[Rel]

    def __new__(cls, value: int = -1) -> Rel:
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"Rel({int(self)})"

    def __str__(self) -> str:
        name = _rel_names.get(int(self))
        return name if name is not None else f"rel({int(self)})"

    def valid(self) -> None:
        """Raise ComidError if the relation is unset."""
        if int(self) == -1:
            raise ComidError("rel is unset")

    def to_cbor(self) -> bytes:
        self.valid()
        return cbor2.dumps(int(self))

    @classmethod
    def from_cbor(cls, data: bytes) -> Rel:
        try:
            value = cbor2.loads(data)
        except (ValueError, TypeError, EOFError) as exc:
            raise ComidError(f"cannot decode rel: {exc}") from exc
        if (
            isinstance(value, bool)
            or not isinstance(value, int)
            or not _INT64_MIN <= value <= _INT64_MAX
        ):
            raise ComidError(f"cannot decode rel: expected a 64-bit integer, got {value!r}")
        rel = cls(value)
        rel.valid()
        return rel

    def to_json(self) -> str:
        return json.dumps(str(self))

    @classmethod
    def from_json(cls, data: str | bytes) -> Rel:
        try:
            text = json.loads(data)
        except (ValueError, TypeError) as exc:
            raise ComidError(f"cannot unmarshal rel: {exc}") from exc
        if text is None:
            text = ""
        if not isinstance(text, str):
            raise ComidError(
                f"cannot unmarshal rel: expected a JSON string, got {type(text).__name__}"
            )
        if not text:
            raise ComidError("empty rel")
        try:
            return cls(_JSON_RELS[text])
        except KeyError:
            raise ComidError(f"unknown rel '{text}'") from None


Rel.SUPPLEMENTS = Rel(0)
Rel.REPLACES = Rel(1)
Rel.UNSET = Rel(-1)


def register_rel(val: int, name: str) -> None:
    """Add a named relation; both value and name must be new."""
    if val in _rel_names:
        raise ComidError(f"rel with value {val} already exists")
    if name in _rel_values:
        raise ComidError(f"rel with name {json.dumps(name)} already exists")
    _rel_names[val] = name
    _rel_values[name] = val