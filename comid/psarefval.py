"""PSA reference-value identifiers (refval-id)."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, replace
from typing import Any

from .choice import ComidError, register_comid_tag

PSA_REFVAL_ID_TYPE = "psa.refval-id"

_SIGNER_ID_LENGTHS = (32, 48, 64)


@dataclass
class PSARefValID:
    """A PSA refval-id: the signer ID of a software component, with optional label and version."""

    signer_id: bytes | None = None
    label: str | None = None
    version: str | None = None

    def valid(self) -> None:
        """Raise ComidError unless the signer ID is present and 32, 48 or 64 bytes long."""
        if self.signer_id is None:
            raise ComidError("missing mandatory signer ID")
        if len(self.signer_id) not in _SIGNER_ID_LENGTHS:
            raise ComidError(f"want 32, 48 or 64 bytes, got {len(self.signer_id)}")

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object form; the signer ID is base64-encoded."""
        out: dict[str, Any] = {}
        if self.label is not None:
            out["label"] = self.label
        if self.version is not None:
            out["version"] = self.version
        out["signer-id"] = (
            None
            if self.signer_id is None
            else base64.b64encode(self.signer_id).decode("ascii")
        )
        return out

    @classmethod
    def from_dict(cls, data: Any) -> PSARefValID:
        """Build from the JSON object form produced by :meth:`to_dict`."""
        if not isinstance(data, dict):
            raise ComidError(
                f"PSA refval-id must be a JSON object, got {type(data).__name__}"
            )
        label = data.get("label")
        version = data.get("version")
        for name, value in (("label", label), ("version", version)):
            if value is not None and not isinstance(value, str):
                raise ComidError(f"PSA refval-id {name} must be a string")
        raw = data.get("signer-id")
        if raw is None:
            signer_id = None
        elif isinstance(raw, str):
            try:
                signer_id = base64.b64decode(raw, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise ComidError(f"invalid signer-id: {exc}") from exc
        else:
            raise ComidError("PSA refval-id signer-id must be a base64 string")
        return cls(signer_id=signer_id, label=label, version=version)


class TaggedPSARefValID(PSARefValID):
    """A PSA refval-id used as a type-choice value."""

    def type(self) -> str:
        return PSA_REFVAL_ID_TYPE

    def is_zero(self) -> bool:
        return not self.signer_id

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


register_comid_tag(601, TaggedPSARefValID)


def new_psa_refval_id(val: Any) -> PSARefValID:
    """Create a refval-id from another one, a JSON string or a signer ID.

    ``None`` yields an empty refval-id.
    """
    if val is None:
        return PSARefValID()
    if isinstance(val, PSARefValID):
        return PSARefValID(val.signer_id, val.label, val.version)
    if isinstance(val, str):
        try:
            obj = json.loads(val)
        except ValueError as exc:
            raise ComidError(str(exc)) from exc
        return PSARefValID.from_dict(obj)
    if isinstance(val, (bytes, bytearray)):
        if len(val) not in _SIGNER_ID_LENGTHS:
            raise ComidError(f"invalid PSA RefVal ID length: {len(val)}")
        return PSARefValID(signer_id=bytes(val))
    raise ComidError(f"unexpected type for PSA RefVal ID: {type(val).__name__}")


def create_psa_refval_id(signer_id: bytes, label: str, version: str) -> PSARefValID:
    """Create a refval-id with the given signer ID, label and version."""
    ret = new_psa_refval_id(signer_id)
    ret.label = label
    ret.version = version
    return ret


def new_tagged_psa_refval_id(val: Any) -> TaggedPSARefValID:
    """Create a TaggedPSARefValID; accepts what :func:`new_psa_refval_id` accepts."""
    if isinstance(val, TaggedPSARefValID):
        return replace(val)
    ref = new_psa_refval_id(val)
    return TaggedPSARefValID(ref.signer_id, ref.label, ref.version)