"""Universal Entity IDs (RAND, EUI or IMEI formats)."""

from __future__ import annotations

import base64
import binascii
from typing import Any

from .choice import ComidError, register_comid_tag

UEID_TYPE = "ueid"

# first byte of a UEID selects its format; each format fixes the total length
_UEID_FORMATS = {
    0x01: ("RAND", (17, 25, 33)),
    0x02: ("EUI", (7, 9)),
    0x03: ("IMEI", (15,)),
}


class UEID(bytes):
    """A Universal Entity ID."""

    def empty(self) -> bool:
        return len(self) == 0

    def valid(self) -> None:
        """Raise ComidError unless the UEID is a well-formed RAND, EUI or IMEI id."""
        if not self:
            raise ComidError("UEID validation failed: empty UEID")
        fmt = _UEID_FORMATS.get(self[0])
        if fmt is None:
            raise ComidError(f"UEID validation failed: invalid UEID type {self[0]}")
        name, lengths = fmt
        if len(self) not in lengths:
            raise ComidError(
                f"UEID validation failed: invalid length {len(self)} for {name} UEID"
            )

    def __str__(self) -> str:
        return base64.b64encode(self).decode("ascii")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({bytes(self)!r})"


class TaggedUEID(UEID):
    """A UEID used as a type-choice value."""

    def type(self) -> str:
        return UEID_TYPE


register_comid_tag(550, TaggedUEID)


def new_tagged_ueid(val: Any) -> TaggedUEID:
    """Create a validated TaggedUEID from bytes or base64 text; ``None`` gives an empty one."""
    if val is None:
        return TaggedUEID()
    if isinstance(val, str):
        try:
            raw = base64.b64decode(val, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ComidError(f"bad UEID: {exc}") from exc
        ret = TaggedUEID(raw)
    elif isinstance(val, (bytes, bytearray)):
        ret = TaggedUEID(bytes(val))
    else:
        raise ComidError(f"unexpected type for UEID: {type(val).__name__}")
    ret.valid()
    return ret