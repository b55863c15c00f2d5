"""Entity roles within a CoMID tag."""

from __future__ import annotations

import json
from typing import ClassVar, Iterable

import cbor2

from .choice import ComidError

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1

_role_names: dict[int, str] = {0: "tagCreator", 1: "creator", 2: "maintainer"}
_role_values: dict[str, int] = {name: value for value, name in _role_names.items()}


class Role(int):
    """A single entity role."""

    TAG_CREATOR: ClassVar[Role]
    CREATOR: ClassVar[Role]
    MAINTAINER: ClassVar[Role]

    def __repr__(self) -> str:
        return f"Role({int(self)})"

    def __str__(self) -> str:
        name = _role_names.get(int(self))
        return name if name is not None else f"Role({int(self)})"


Role.TAG_CREATOR = Role(0)
Role.CREATOR = Role(1)
Role.MAINTAINER = Role(2)


def register_role(val: int, name: str) -> None:
    """Add a named role; both value and name must be new."""
    if val in _role_names:
        raise ComidError(f"role with value {val} already exists")
    if name in _role_values:
        raise ComidError(f"role with name {json.dumps(name)} already exists")
    _role_names[val] = name
    _role_values[name] = val


class Roles(list):
    """An ordered list of roles."""

    def __init__(self, roles: Iterable[int] = ()) -> None:
        super().__init__(Role(r) for r in roles)

    def add(self, *args: int) -> Roles:
        """Append roles and return self for chaining."""
        self.extend(Role(r) for r in args)
        return self

    def valid(self) -> None:
        if not self:
            raise ComidError("empty roles")

    def to_cbor(self) -> bytes:
        self.valid()
        return cbor2.dumps([int(r) for r in self])

    @classmethod
    def from_cbor(cls, data: bytes) -> Roles:
        try:
            items = cbor2.loads(data)
        except (ValueError, TypeError, EOFError) as exc:
            raise ComidError(f"cannot decode roles: {exc}") from exc
        if not isinstance(items, list):
            raise ComidError(f"cannot decode roles: expected an array, got {type(items).__name__}")
        for item in items:
            if (
                isinstance(item, bool)
                or not isinstance(item, int)
                or not _INT64_MIN <= item <= _INT64_MAX
            ):
                raise ComidError(
                    f"cannot decode role: expected a 64-bit integer, got {type(item).__name__}"
                )
        roles = cls(items)
        roles.valid()
        return roles

    def to_json(self) -> str:
        names = []
        for role in self:
            name = _role_names.get(int(role))
            if name is None:
                raise ComidError(f"unknown role {int(role)}")
            names.append(name)
        return json.dumps(names, separators=(",", ":"))

    @classmethod
    def from_json(cls, data: str | bytes) -> Roles:
        try:
            names = json.loads(data)
        except (ValueError, TypeError) as exc:
            raise ComidError(str(exc)) from exc
        if names is None:
            names = []
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise ComidError("cannot unmarshal roles: expected an array of strings")
        if not names:
            raise ComidError("no roles found")
        roles = cls()
        for name in names:
            if name not in _role_values:
                raise ComidError(f"unknown role {json.dumps(name)}")
            roles.add(_role_values[name])
        return roles