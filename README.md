# comid

Building blocks for Concise Module Identifiers (CoMID), the data model that
carries reference values and endorsed values for remote attestation. The
types check themselves with a `valid()` method that raises on bad input, and
encode to CBOR (the wire format, with its CBOR tags) and to the JSON
type-and-value form used in templates.

## Install

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## What is in it

- `comid.choice` – `ComidError` (a `ValueError`, raised for every problem),
  `TypeAndValue` for `{"type": ..., "value": ...}` JSON objects, and the CBOR
  tag registry: `register_comid_tag`, `tag_of`, `type_for_tag`.
- `comid.rel` – `Rel` (`Rel.SUPPLEMENTS`, `Rel.REPLACES`, `Rel.UNSET`) with
  CBOR and JSON encoding both ways, and `register_rel` for adding names.
- `comid.role` – `Role` (`tagCreator`, `creator`, `maintainer`) and `Roles`,
  a list of roles with CBOR and JSON encoding both ways; `register_role`.
- `comid.oid` – `OID` / `TaggedOID`: absolute object identifiers held in
  their BER-encoded form, built from dotted-decimal strings with
  `OID.from_string`, and `new_tagged_oid`. JSON is the dotted string.
- `comid.uuidval` – `TaggedUUID`, with `parse_uuid`, `validate_uuid` and
  `new_tagged_uuid`; only RFC 4122 UUIDs are valid.
- `comid.ueid` – `UEID` / `TaggedUEID` and `new_tagged_ueid`; a UEID must be
  a RAND, EUI or IMEI identifier of the right length.
- `comid.psarefval` – `PSARefValID` / `TaggedPSARefValID`, the PSA software
  component identifier (signer ID of 32, 48 or 64 bytes, optional label and
  version), with `to_dict` / `from_dict`, `new_psa_refval_id`,
  `create_psa_refval_id` and `new_tagged_psa_refval_id`.
- `comid.svn` – `SVN` holding a `TaggedSVN` (`exact-value`) or a
  `TaggedMinSVN` (`min-value`), with CBOR and JSON encoding both ways;
  `new_svn`, `new_tagged_svn`, `new_tagged_min_svn`, `register_svn_type`.
- `comid.rawvalue` – `RawValue`, a raw measured value held as `TaggedBytes`,
  with CBOR and JSON encoding both ways.
- `comid.tagidentity` – `TagIdentity`, a tag id and version.
- `comid.measurement` – `Mkey`, the measurement key choice (`oid`, `uuid`,
  `uint`, `psa.refval-id`), with CBOR and JSON encoding both ways; `Mval`, the
  measurement-values map; `Measurement`, with builder methods that fill it
  in and `to_cbor` / `to_json`; and the factories `new_mkey`,
  `new_uint_mkey`, `new_measurement`, `new_psa_measurement`,
  `new_uuid_measurement`, `new_uint_measurement`, `new_oid_measurement`.

## Example

```python
from comid.measurement import new_uuid_measurement

m = new_uuid_measurement("31fb5abf-023e-4992-aa4e-95f9c1503bfa")
m.set_min_svn(2)
m.set_version("1.2.3", 16384)
m.valid()            # raises ComidError if the measurement is not well formed

cbor_bytes = m.to_cbor()
json_text = m.to_json()
```

Errors carry a message that names what is wrong, for example
`no measurement value set` or
`invalid key: expecting RFC4122 UUID, got Reserved instead`.

## Extending

New measurement key types, SVN types, roles and relations can be added at
run time with `register_mkey_type`, `register_svn_type`, `register_role` and
`register_rel`. A factory passed to `register_mkey_type` or
`register_svn_type` must accept `None` and return the zero value of its
type. A CBOR tag number may be claimed by one type only;
`register_comid_tag` refuses a second claim.

## What it does not do

- There is no whole CoMID tag or CoRIM document here: no environments,
  triples, entities or verification keys, and nothing that reads a complete
  template.
- `Mval` covers version, SVN, raw value and mask, MAC and IP address, serial
  number, UEID and UUID; it has no digests, operational flags or integrity
  registers.
- `Measurement` and `Mval` are written out (`to_cbor`, `to_json`,
  `to_dict`) but not read back in.
- There is no command-line tool; the package is a library only.