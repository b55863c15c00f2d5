"""Security version numbers, exact or minimum."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable

import cbor2

from .choice import ComidError, TypeAndValue, register_comid_tag, tag_of, type_for_tag

EXACT_VALUE_TYPE = "exact-value"
MIN_VALUE_TYPE = "min-value"

_UINT64_MAX = (1 << 64) - 1
_DIGITS_RE = re.compile(r"[0-9]+")


def _check_uint64(value: int) -> None:
    if value < 0:
        raise ComidError(f"SVN cannot be negative: {int(value)}")
    if value > _UINT64_MAX:
        raise ComidError(f"SVN out of range: {int(value)}")


class TaggedSVN(int):
    """An exact security version number."""

    def type(self) -> str:
        return EXACT_VALUE_TYPE

    def valid(self) -> None:
        """Check that the number fits an unsigned 64-bit integer."""
        _check_uint64(self)

    def __str__(self) -> str:
        return str(int(self))

    def __repr__(self) -> str:
        return f"TaggedSVN({int(self)})"


class TaggedMinSVN(int):
    """A minimum security version number."""

    def type(self) -> str:
        return MIN_VALUE_TYPE

    def valid(self) -> None:
        """Check that the number fits an unsigned 64-bit integer."""
        _check_uint64(self)

    def __str__(self) -> str:
        return str(int(self))

    def __repr__(self) -> str:
        return f"TaggedMinSVN({int(self)})"


register_comid_tag(552, TaggedSVN)
register_comid_tag(553, TaggedMinSVN)


@dataclass(eq=False)
class SVN:
    """A security version number holding one of the registered SVN value types."""

    value: Any = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SVN):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value

    def to_cbor(self) -> bytes:
        if self.value is None:
            raise ComidError("SVN value not set")
        try:
            return cbor2.dumps(cbor2.CBORTag(tag_of(self.value), _content(self.value)))
        except (ValueError, TypeError) as exc:
            raise ComidError(f"cannot encode SVN: {exc}") from exc

    @classmethod
    def from_cbor(cls, data: bytes) -> SVN:
        try:
            item = cbor2.loads(data)
        except (ValueError, TypeError, EOFError) as exc:
            raise ComidError(f"cannot decode SVN: {exc}") from exc
        if not isinstance(item, cbor2.CBORTag):
            raise ComidError("cannot decode SVN: expected a tagged value")
        value_cls = type_for_tag(item.tag)
        if value_cls not in _svn_classes:
            raise ComidError(f"cannot decode SVN: tag {item.tag} is not an SVN type")
        try:
            return cls(_build(value_cls, item.value, repr(item.value)))
        except ComidError as exc:
            raise ComidError(f"cannot decode SVN: {exc}") from exc

    def to_json(self) -> str:
        if self.value is None:
            raise ComidError("SVN value not set")
        return TypeAndValue(self.value.type(), _content(self.value)).to_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> SVN:
        try:
            tnv = TypeAndValue.from_json(data)
        except ComidError as exc:
            raise ComidError(f"SVN decoding failure: {exc}") from exc
        decoded = new_svn(None, tnv.type)
        try:
            value = _build(type(decoded.value), tnv.value, json.dumps(tnv.value))
            value.valid()
        except ComidError as exc:
            raise ComidError(f"invalid SVN {tnv.type}: {exc}") from exc
        return cls(value)


def _content(value: Any) -> Any:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return str(value)
    return value


def _build(value_cls: type, raw: Any, shown: str) -> Any:
    if issubclass(value_cls, int):
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ComidError(f"cannot unmarshal {shown} into {value_cls.__name__}")
        if not 0 <= raw <= _UINT64_MAX:
            raise ComidError(f"value {shown} out of range for {value_cls.__name__}")
    try:
        return value_cls(raw)
    except (TypeError, ValueError) as exc:
        raise ComidError(f"cannot unmarshal {shown} into {value_cls.__name__}: {exc}") from exc


def _parse_uint64(s: str) -> int:
    if not _DIGITS_RE.fullmatch(s):
        raise ComidError(f"parsing {json.dumps(s)}: invalid syntax")
    n = int(s)
    if n > _UINT64_MAX:
        raise ComidError(f"parsing {json.dumps(s)}: value out of range")
    return n


def _svn_number(val: Any, kind: str) -> int:
    if isinstance(val, str):
        return _parse_uint64(val)
    if isinstance(val, bool) or not isinstance(val, int):
        raise ComidError(f"unexpected type for SVN {kind}: {type(val).__name__}")
    _check_uint64(val)
    return int(val)


def new_tagged_svn(val: Any) -> SVN:
    """Create an exact-value SVN from an integer or decimal string; ``None`` gives 0."""
    if val is None:
        return SVN(TaggedSVN(0))
    return SVN(TaggedSVN(_svn_number(val, EXACT_VALUE_TYPE)))


def new_tagged_min_svn(val: Any) -> SVN:
    """Create a min-value SVN from an integer or decimal string; ``None`` gives 0."""
    if val is None:
        return SVN(TaggedMinSVN(0))
    return SVN(TaggedMinSVN(_svn_number(val, MIN_VALUE_TYPE)))


SVNFactory = Callable[[Any], SVN]

_svn_register: dict[str, SVNFactory] = {
    EXACT_VALUE_TYPE: new_tagged_svn,
    MIN_VALUE_TYPE: new_tagged_min_svn,
}
_svn_classes: set[type] = {TaggedSVN, TaggedMinSVN}


def new_svn(val: Any, typ: str) -> SVN:
    """Create an SVN of the named type ("exact-value", "min-value" or a registered one)."""
    try:
        factory = _svn_register[typ]
    except KeyError:
        raise ComidError(f"unknown SVN type: {typ}") from None
    return factory(val)


def register_svn_type(tag: int, factory: SVNFactory) -> None:
    """Register a new SVN value type, made by ``factory``, under a CBOR tag.

    The factory must accept ``None`` and return the zero value of its type.
    """
    nil_val = factory(None)
    typ = nil_val.value.type()
    if typ in _svn_register:
        raise ComidError(f"SVN type with name {json.dumps(typ)} already exists")
    register_comid_tag(tag, nil_val.value)
    _svn_register[typ] = factory
    _svn_classes.add(type(nil_val.value))