"""Measurements: measurement keys, measured values and the measurement map."""

from __future__ import annotations

import base64
import ipaddress
import json
import re
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Union

import cbor2

from .choice import ComidError, TypeAndValue, register_comid_tag, tag_of, type_for_tag
from .oid import OID, OID_TYPE, TaggedOID, new_tagged_oid
from .psarefval import (
    PSA_REFVAL_ID_TYPE,
    PSARefValID,
    TaggedPSARefValID,
    new_tagged_psa_refval_id,
)
from .rawvalue import RawValue
from .svn import SVN, new_tagged_min_svn, new_tagged_svn
from .ueid import UEID
from .uuidval import UUID_TYPE, TaggedUUID, new_tagged_uuid, parse_uuid, validate_uuid

MAX_UINT64 = (1 << 64) - 1
UINT_TYPE = "uint"

VERSION_SCHEME_MULTIPART_NUMERIC = 1
VERSION_SCHEME_MULTIPART_NUMERIC_SUFFIX = 2
VERSION_SCHEME_ALPHANUMERIC = 3
VERSION_SCHEME_DECIMAL = 4
VERSION_SCHEME_SEMVER = 16384

_SCHEME_NAMES = {
    VERSION_SCHEME_MULTIPART_NUMERIC: "multipartnumeric",
    VERSION_SCHEME_MULTIPART_NUMERIC_SUFFIX: "multipartnumeric+suffix",
    VERSION_SCHEME_ALPHANUMERIC: "alphanumeric",
    VERSION_SCHEME_DECIMAL: "decimal",
    VERSION_SCHEME_SEMVER: "semver",
}

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_DIGITS_RE = re.compile(r"[0-9]+")

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _parse_uint64(s: str) -> int:
    if not _DIGITS_RE.fullmatch(s):
        raise ComidError(f"parsing {json.dumps(s)}: invalid syntax")
    n = int(s)
    if n > MAX_UINT64:
        raise ComidError(f"parsing {json.dumps(s)}: value out of range")
    return n


def _loads(data: bytes, what: str) -> Any:
    try:
        return cbor2.loads(data)
    except (ValueError, TypeError, EOFError, KeyError, IndexError) as exc:
        raise ComidError(f"cannot decode {what}: {exc}") from exc


def _dumps(item: Any, what: str) -> bytes:
    try:
        return cbor2.dumps(item)
    except (ValueError, TypeError) as exc:
        raise ComidError(f"cannot encode {what}: {exc}") from exc


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _json_kind(raw: Any) -> str:
    if isinstance(raw, bool):
        return "bool"
    if isinstance(raw, float):
        return f"number {json.dumps(raw)}"
    if isinstance(raw, str):
        return "string"
    if isinstance(raw, list):
        return "array"
    if isinstance(raw, dict):
        return "object"
    return type(raw).__name__


class UintMkey(int):
    """An unsigned integer measurement key (encoded untagged)."""

    def type(self) -> str:
        return UINT_TYPE

    def valid(self) -> None:
        return None

    def __str__(self) -> str:
        return str(int(self))

    def __repr__(self) -> str:
        return f"UintMkey({int(self)})"


def new_uint_mkey(val: Any) -> UintMkey:
    """Create a UintMkey from an integer or decimal string; ``None`` gives 0."""
    if val is None:
        return UintMkey(0)
    if isinstance(val, str):
        return UintMkey(_parse_uint64(val))
    if isinstance(val, bool) or not isinstance(val, int):
        raise ComidError(f"unexpected type for UintMkey: {type(val).__name__}")
    if not 0 <= val <= MAX_UINT64:
        raise ComidError(f"value {int(val)} out of range for UintMkey")
    return UintMkey(val)


def _cbor_content(value: Any) -> Any:
    if isinstance(value, PSARefValID):
        out: dict[int, Any] = {}
        if value.label is not None:
            out[1] = value.label
        if value.version is not None:
            out[4] = value.version
        out[5] = value.signer_id
        return out
    if isinstance(value, uuid.UUID):
        return value.bytes
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return str(value)
    return value


def _json_value(value: Any) -> Any:
    if isinstance(value, PSARefValID):
        return value.to_dict()
    if isinstance(value, (uuid.UUID, OID)):
        return str(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, (bytes, bytearray)):
        return _b64(bytes(value))
    if isinstance(value, str):
        return str(value)
    return str(value)


def _psa_from_cbor(value_cls: type, content: Any) -> PSARefValID:
    if not isinstance(content, dict):
        raise ComidError("PSA refval-id must be a CBOR map")
    label = content.get(1)
    version = content.get(4)
    signer_id = content.get(5)
    for name, item in (("label", label), ("version", version)):
        if item is not None and not isinstance(item, str):
            raise ComidError(f"PSA refval-id {name} must be a text string")
    if signer_id is not None and not isinstance(signer_id, bytes):
        raise ComidError("PSA refval-id signer-id must be a byte string")
    return value_cls(signer_id=signer_id, label=label, version=version)


def _mkey_value_from_cbor(item: Any) -> Any:
    # tag 37 is turned into a uuid.UUID by the decoder itself
    if isinstance(item, uuid.UUID):
        return TaggedUUID(int=item.int)
    if not isinstance(item, cbor2.CBORTag):
        raise ComidError("cannot decode measurement key: unsupported tagged value")
    value_cls = type_for_tag(item.tag)
    if value_cls not in _mkey_classes:
        raise ComidError(
            f"cannot decode measurement key: tag {item.tag} is not a measurement key type"
        )
    content = item.value
    try:
        if issubclass(value_cls, PSARefValID):
            return _psa_from_cbor(value_cls, content)
        if issubclass(value_cls, uuid.UUID):
            if not isinstance(content, bytes) or len(content) != 16:
                raise ComidError("UUID must be a 16-byte string")
            return value_cls(bytes=content)
        return value_cls(content)
    except (TypeError, ValueError) as exc:
        raise ComidError(f"cannot decode measurement key: {exc}") from exc


def _mkey_value_from_json(typ: str, value_cls: type, raw: Any) -> Any:
    if issubclass(value_cls, UintMkey):
        if raw is None:
            return UintMkey(0)
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ComidError(f"cannot unmarshal {_json_kind(raw)} into uint64")
        if not 0 <= raw <= MAX_UINT64:
            raise ComidError(f"value {raw} out of range for uint64")
        return UintMkey(raw)
    if issubclass(value_cls, TaggedOID):
        if not isinstance(raw, str):
            raise ComidError(f"cannot unmarshal {_json_kind(raw)} into OID")
        return TaggedOID.from_string(raw)
    if issubclass(value_cls, TaggedUUID):
        if not isinstance(raw, str):
            raise ComidError(f"cannot unmarshal {_json_kind(raw)} into UUID")
        try:
            return TaggedUUID(int=parse_uuid(raw).int)
        except ComidError as exc:
            raise ComidError(f"bad UUID: {exc}") from exc
    if issubclass(value_cls, TaggedPSARefValID):
        return TaggedPSARefValID.from_dict(raw)
    return _mkey_register[typ](raw).value


@dataclass
class Mkey:
    """A measurement key holding one of the registered key value types."""

    value: Any = None

    def type(self) -> str:
        if self.value is None:
            raise ComidError("Mkey value not set")
        return self.value.type()

    def valid(self) -> None:
        """Raise ComidError if the key is unset or its value is invalid."""
        if self.value is None:
            raise ComidError("Mkey value not set")
        try:
            self.value.valid()
        except ComidError as exc:
            raise ComidError(f"invalid {self.value.type()}: {exc}") from exc

    def get_psa_refval_id(self) -> PSARefValID:
        if self.value is None:
            raise ComidError("MKey is not set")
        if isinstance(self.value, TaggedPSARefValID):
            return PSARefValID(self.value.signer_id, self.value.label, self.value.version)
        raise ComidError(f"measurement-key type is: {type(self.value).__name__}")

    def get_key_uint(self) -> int:
        if isinstance(self.value, UintMkey):
            return int(self.value)
        raise ComidError(f"measurement-key type is: {type(self.value).__name__}")

    def _cbor_item(self) -> Any:
        if self.value is None:
            raise ComidError("Mkey value not set")
        if isinstance(self.value, UintMkey):
            return int(self.value)
        return cbor2.CBORTag(tag_of(self.value), _cbor_content(self.value))

    def to_cbor(self) -> bytes:
        return _dumps(self._cbor_item(), "measurement key")

    @classmethod
    def from_cbor(cls, data: bytes) -> Mkey:
        data = bytes(data)
        if not data:
            raise ComidError("empty input")
        item = _loads(data, "measurement key")
        if data[0] >> 5 == 6:
            return cls(_mkey_value_from_cbor(item))
        # an untagged key must be an unsigned integer
        if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= MAX_UINT64:
            raise ComidError(
                "cannot decode measurement key: expected an unsigned integer, "
                f"got {type(item).__name__}"
            )
        return cls(UintMkey(item))

    def _json_obj(self) -> dict[str, Any]:
        return {"type": self.type(), "value": _json_value(self.value)}

    def to_json(self) -> str:
        return TypeAndValue(self.type(), _json_value(self.value)).to_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> Mkey:
        """Parse a ``{"type": ..., "value": ...}`` object naming a registered key type."""
        tnv = TypeAndValue.from_json(data)
        decoded = new_mkey(None, tnv.type)
        try:
            value = _mkey_value_from_json(tnv.type, type(decoded.value), tnv.value)
            value.valid()
        except ComidError as exc:
            raise ComidError(f"invalid {tnv.type}: {exc}") from exc
        return cls(value)


MkeyFactory = Callable[[Any], Mkey]


def _new_mkey_oid(val: Any) -> Mkey:
    return Mkey(new_tagged_oid(val))


def _new_mkey_uuid(val: Any) -> Mkey:
    return Mkey(new_tagged_uuid(val))


def _new_mkey_uint(val: Any) -> Mkey:
    return Mkey(new_uint_mkey(val))


def _new_mkey_psa_refval_id(val: Any) -> Mkey:
    return Mkey(new_tagged_psa_refval_id(val))


_mkey_register: dict[str, MkeyFactory] = {
    OID_TYPE: _new_mkey_oid,
    UUID_TYPE: _new_mkey_uuid,
    UINT_TYPE: _new_mkey_uint,
    PSA_REFVAL_ID_TYPE: _new_mkey_psa_refval_id,
}
_mkey_classes: set[type] = {TaggedOID, TaggedUUID, TaggedPSARefValID}


def new_mkey(val: Any, typ: str) -> Mkey:
    """Create a measurement key of the named type from ``val``."""
    try:
        factory = _mkey_register[typ]
    except KeyError:
        raise ComidError(f"unexpected measurement key type: {json.dumps(typ)}") from None
    return factory(val)


def register_mkey_type(tag: int, factory: MkeyFactory) -> None:
    """Register a new measurement key type, made by ``factory``, under a CBOR tag.

    The factory must accept ``None`` and return the zero value of its type.
    """
    nil_val = factory(None)
    typ = nil_val.value.type()
    if typ in _mkey_register:
        raise ComidError(f"measurement key type with name {json.dumps(typ)} already exists")
    register_comid_tag(tag, nil_val.value)
    _mkey_register[typ] = factory
    _mkey_classes.add(type(nil_val.value))


@dataclass
class Version:
    """A version string together with its versioning scheme code."""

    version: str = ""
    scheme: int = 0

    def valid(self) -> None:
        if not self.version:
            raise ComidError("empty version")

    def _json_obj(self) -> dict[str, Any]:
        return {"value": self.version, "scheme": _SCHEME_NAMES.get(self.scheme, self.scheme)}

    def _cbor_map(self) -> dict[int, Any]:
        return {0: self.version, 1: self.scheme}


@dataclass
class Mval:
    """A measurement-values-map; unset entries are None."""

    ver: Version | None = None
    svn: SVN | None = None
    raw_value: RawValue | None = None
    raw_value_mask: bytes | None = None
    mac_addr: bytes | None = None
    ip_addr: IPAddress | None = None
    serial_number: str | None = None
    ueid: bytes | None = None
    uuid: uuid.UUID | None = None

    def valid(self) -> None:
        """Raise ComidError if nothing is set or a set entry is invalid."""
        if all(getattr(self, f.name) is None for f in fields(self)):
            raise ComidError("no measurement value set")
        if self.ver is not None:
            self.ver.valid()

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object form, omitting unset entries."""
        out: dict[str, Any] = {}
        if self.ver is not None:
            out["version"] = self.ver._json_obj()
        if self.svn is not None:
            out["svn"] = json.loads(self.svn.to_json())
        if self.raw_value is not None:
            out["raw-value"] = json.loads(self.raw_value.to_json())
        if self.raw_value_mask is not None:
            out["raw-value-mask"] = _b64(self.raw_value_mask)
        if self.mac_addr is not None:
            out["mac-addr"] = ":".join(f"{b:02x}" for b in self.mac_addr)
        if self.ip_addr is not None:
            out["ip-addr"] = str(self.ip_addr)
        if self.serial_number is not None:
            out["serial-number"] = self.serial_number
        if self.ueid is not None:
            out["ueid"] = _b64(bytes(self.ueid))
        if self.uuid is not None:
            out["uuid"] = str(self.uuid)
        return out

    def _cbor_map(self) -> dict[int, Any]:
        out: dict[int, Any] = {}
        if self.ver is not None:
            out[0] = self.ver._cbor_map()
        if self.svn is not None:
            out[1] = cbor2.loads(self.svn.to_cbor())
        if self.raw_value is not None:
            out[4] = cbor2.loads(self.raw_value.to_cbor())
        if self.raw_value_mask is not None:
            out[5] = bytes(self.raw_value_mask)
        if self.mac_addr is not None:
            out[6] = bytes(self.mac_addr)
        if self.ip_addr is not None:
            out[7] = self.ip_addr.packed
        if self.serial_number is not None:
            out[8] = self.serial_number
        if self.ueid is not None:
            out[9] = bytes(self.ueid)
        if self.uuid is not None:
            out[10] = self.uuid.bytes
        return out


@dataclass
class Measurement:
    """A measurement-map: an optional key and the measured values."""

    key: Mkey | None = None
    val: Mval = field(default_factory=Mval)

    def set_version(self, ver: str, scheme: int) -> Measurement:
        if not isinstance(ver, str):
            raise ComidError(f"version must be a string, got {type(ver).__name__}")
        if (
            isinstance(scheme, bool)
            or not isinstance(scheme, int)
            or not _INT64_MIN <= scheme <= _INT64_MAX
        ):
            raise ComidError(f"invalid version scheme: {scheme!r}")
        self.val.ver = Version(ver, int(scheme))
        return self

    def set_raw_value_bytes(self, raw_value: bytes, raw_value_mask: bytes) -> Measurement:
        """Set the raw value, and its mask when the mask is non-empty."""
        self.val.raw_value = RawValue().set_bytes(raw_value)
        if raw_value_mask:
            self.val.raw_value_mask = bytes(raw_value_mask)
        return self

    def set_svn(self, svn: int) -> Measurement:
        self.val.svn = new_tagged_svn(svn)
        return self

    def set_min_svn(self, svn: int) -> Measurement:
        self.val.svn = new_tagged_min_svn(svn)
        return self

    def set_ip_addr(self, addr: Any) -> Measurement:
        """Set an IPv4 or IPv6 address given as text, packed bytes or an address object."""
        if not isinstance(addr, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            try:
                addr = ipaddress.ip_address(addr)
            except ValueError as exc:
                raise ComidError(f"invalid IP address: {exc}") from exc
        self.val.ip_addr = addr
        return self

    def set_serial_number(self, sn: str) -> Measurement:
        self.val.serial_number = sn
        return self

    def set_ueid(self, ueid: bytes) -> Measurement:
        if not isinstance(ueid, (bytes, bytearray)):
            raise ComidError(f"unexpected type for UEID: {type(ueid).__name__}")
        value = UEID(bytes(ueid))
        value.valid()
        self.val.ueid = value
        return self

    def set_uuid(self, value: Any) -> Measurement:
        if isinstance(value, str):
            value = parse_uuid(value)
        if not isinstance(value, uuid.UUID):
            raise ComidError(f"unexpected type for UUID: {type(value).__name__}")
        validate_uuid(value)
        self.val.uuid = uuid.UUID(int=value.int)
        return self

    def valid(self) -> None:
        if self.key is not None and self.key.value is not None:
            self.key.valid()
        self.val.valid()

    def to_cbor(self) -> bytes:
        out: dict[int, Any] = {}
        if self.key is not None:
            out[0] = self.key._cbor_item()
        out[1] = self.val._cbor_map()
        return _dumps(out, "measurement")

    def to_json(self) -> str:
        out: dict[str, Any] = {}
        if self.key is not None:
            out["key"] = self.key._json_obj()
        out["value"] = self.val.to_dict()
        return json.dumps(out, separators=(",", ":"))


def new_measurement(val: Any, typ: str) -> Measurement:
    """Create a measurement whose key, of the named type, is built from ``val``."""
    try:
        factory = _mkey_register[typ]
    except KeyError:
        raise ComidError(f"unknown Mkey type: {typ}") from None
    try:
        key = factory(val)
        key.valid()
    except ComidError as exc:
        raise ComidError(f"invalid key: {exc}") from exc
    return Measurement(key=key)


def new_psa_measurement(key: Any) -> Measurement:
    return new_measurement(key, PSA_REFVAL_ID_TYPE)


def new_uuid_measurement(key: Any) -> Measurement:
    return new_measurement(key, UUID_TYPE)


def new_uint_measurement(key: Any) -> Measurement:
    return new_measurement(key, UINT_TYPE)


def new_oid_measurement(key: Any) -> Measurement:
    return new_measurement(key, OID_TYPE)