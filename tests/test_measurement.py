import ipaddress
import json
import uuid

import cbor2
import pytest

from comid.choice import ComidError
from comid.measurement import (
    VERSION_SCHEME_SEMVER,
    Measurement,
    Mkey,
    Mval,
    UintMkey,
    Version,
    new_measurement,
    new_mkey,
    new_oid_measurement,
    new_psa_measurement,
    new_uint_measurement,
    new_uint_mkey,
    new_uuid_measurement,
    register_mkey_type,
)
from comid.oid import TaggedOID
from comid.psarefval import PSARefValID, create_psa_refval_id, new_psa_refval_id
from comid.svn import new_tagged_min_svn

TEST_UUID = "31fb5abf-023e-4992-aa4e-95f9c1503bfa"
TEST_SIGNER_ID = bytes.fromhex(
    "acbb11c7e4da217205523ce4ce1a245ae1a239ae3c6bfd9e7871f7e5d8bae86b"
)
TEST_OID = "1.2.3.4"
TEST_MKEY = 700
UINT_MAX = (1 << 64) - 1


def test_new_uuid_measurement_good_uuid():
    m = new_uuid_measurement(TEST_UUID)
    assert m.key.value == uuid.UUID(TEST_UUID)


def test_new_uuid_measurement_empty_uuid():
    with pytest.raises(ComidError) as exc:
        new_uuid_measurement(uuid.UUID(int=0))
    assert str(exc.value) == "invalid key: expecting RFC4122 UUID, got Reserved instead"


def test_new_uint_measurement():
    m = new_uint_measurement(35)
    assert m.key.get_key_uint() == 35


def test_new_psa_measurement_empty():
    with pytest.raises(ComidError) as exc:
        new_psa_measurement(PSARefValID())
    assert str(exc.value) == (
        "invalid key: invalid psa.refval-id: missing mandatory signer ID"
    )


def test_new_psa_measurement_no_values():
    ref = new_psa_refval_id(TEST_SIGNER_ID)
    ref.label = "PRoT"
    ref.version = "1.2.3"
    m = new_psa_measurement(ref)
    with pytest.raises(ComidError, match="^no measurement value set$"):
        m.valid()


def test_get_psa_refval_id():
    ref = new_psa_refval_id(TEST_SIGNER_ID)
    ref.label = "PRoT"
    ref.version = "1.2.3"
    mkey = new_mkey(ref, "psa.refval-id")
    assert mkey.get_psa_refval_id() == ref


def test_get_psa_refval_id_not_set():
    with pytest.raises(ComidError, match="^MKey is not set$"):
        Mkey().get_psa_refval_id()


def test_get_psa_refval_id_invalid_type():
    with pytest.raises(ComidError) as exc:
        Mkey(UintMkey(10)).get_psa_refval_id()
    assert str(exc.value) == "measurement-key type is: UintMkey"


def test_new_psa_measurement_one_value():
    m = new_psa_measurement(create_psa_refval_id(TEST_SIGNER_ID, "PRoT", "1.2.3"))
    m.set_ip_addr("192.0.2.1")
    m.valid()
    assert m.val.ip_addr == ipaddress.ip_address("192.0.2.1")


def test_new_uuid_measurement_no_values():
    m = new_uuid_measurement(TEST_UUID)
    with pytest.raises(ComidError, match="^no measurement value set$"):
        m.valid()


def test_new_uuid_measurement_some_value():
    m = new_uuid_measurement(TEST_UUID)
    ret = m.set_min_svn(2).set_version("1.2.3", VERSION_SCHEME_SEMVER)
    assert ret is m
    m.valid()
    assert m.val.svn == new_tagged_min_svn(2)
    assert m.val.ver == Version("1.2.3", VERSION_SCHEME_SEMVER)


def test_raw_value_measurement_is_valid_without_mask():
    m = new_uint_measurement(1).set_raw_value_bytes(b"\x01\x02\x03\x04", b"")
    m.valid()
    assert m.val.raw_value.get_bytes() == b"\x01\x02\x03\x04"
    assert m.val.raw_value_mask is None


def test_bad_ueid():
    m = new_uuid_measurement(TEST_UUID)
    bad = bytes([0xFF, 0xDE, 0xAD, 0xBE, 0xEF, 0xDE, 0xAD, 0xBE, 0xEF])
    with pytest.raises(ComidError):
        m.set_ueid(bad)
    assert m.val.ueid is None


def test_bad_uuid():
    m = new_uuid_measurement(TEST_UUID)
    with pytest.raises(ComidError, match="expecting RFC4122 UUID"):
        m.set_uuid("f47ac10b-58cc-4372-c567-0e02b2c3d479")
    assert m.val.uuid is None


def test_bad_ip_addr():
    with pytest.raises(ComidError):
        new_uint_measurement(1).set_ip_addr("not-an-address")


def test_mkey_valid_no_value():
    with pytest.raises(ComidError, match="^Mkey value not set$"):
        Mkey().valid()


@pytest.mark.parametrize(
    "value, encoded",
    [(0, "00"), (TEST_MKEY, "1902bc"), (UINT_MAX, "1bffffffffffffffff")],
)
def test_mkey_cbor_uint(value, encoded):
    assert Mkey(UintMkey(value)).to_cbor().hex() == encoded
    decoded = Mkey.from_cbor(bytes.fromhex(encoded))
    assert isinstance(decoded.value, UintMkey)
    assert int(decoded.value) == value


@pytest.mark.parametrize("data", [b"\xab\xcd", b"\xcc\xdd\xff", b"\x20", b""])
def test_mkey_from_cbor_not_ok(data):
    with pytest.raises(ComidError):
        Mkey.from_cbor(data)


def test_mkey_from_cbor_empty_message():
    with pytest.raises(ComidError, match="^empty input$"):
        Mkey.from_cbor(b"")


def test_mkey_cbor_round_trip_tagged():
    for mkey in (
        new_mkey(TEST_UUID, "uuid"),
        new_mkey(TEST_OID, "oid"),
        new_mkey(create_psa_refval_id(TEST_SIGNER_ID, "BL", "2.1.0"), "psa.refval-id"),
    ):
        assert Mkey.from_cbor(mkey.to_cbor()) == mkey


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, {"type": "uint", "value": 0}),
        (TEST_MKEY, {"type": "uint", "value": 700}),
        (UINT_MAX, {"type": "uint", "value": 18446744073709551615}),
    ],
)
def test_mkey_json_uint(value, expected):
    out = Mkey(UintMkey(value)).to_json()
    assert json.loads(out) == expected
    decoded = Mkey.from_json(json.dumps(expected))
    assert isinstance(decoded.value, UintMkey)
    assert int(decoded.value) == value


@pytest.mark.parametrize(
    "data",
    ['{"type":"uint","value":"abcdefg"}', '{"type":"uint","value":123.456}'],
)
def test_mkey_from_json_not_ok(data):
    with pytest.raises(ComidError, match="^invalid uint: "):
        Mkey.from_json(data)


def test_mkey_from_json_unknown_type():
    with pytest.raises(ComidError) as exc:
        Mkey.from_json('{"type":"foo","value":1}')
    assert str(exc.value) == 'unexpected measurement key type: "foo"'


def test_mkey_json_psa_round_trip():
    mkey = new_mkey(create_psa_refval_id(TEST_SIGNER_ID, "PRoT", "1.3.5"), "psa.refval-id")
    assert Mkey.from_json(mkey.to_json()) == mkey


def test_new_uint_mkey():
    assert new_uint_mkey(UintMkey(7)) == 7
    assert new_uint_mkey(7) == 7
    assert new_uint_mkey("7") == 7
    assert new_uint_mkey(None) == 0
    with pytest.raises(ComidError) as exc:
        new_uint_mkey(True)
    assert str(exc.value) == "unexpected type for UintMkey: bool"


def test_new_mkey_oid():
    out = new_mkey(TEST_OID, "oid")
    assert out.value == TaggedOID.from_string(TEST_OID)
    assert str(out.value) == TEST_OID


class _TestMkeyValue(bytes):
    def type(self):
        return "test-mkey"

    def valid(self):
        if len(self) != 4:
            raise ComidError("test key must be 4 bytes")

    def __str__(self):
        return "test"


class _BadMkeyValue(_TestMkeyValue):
    def type(self):
        return "uuid"


def _new_test_mkey(_val):
    return Mkey(_TestMkeyValue(b"tdst"))


def _new_bad_mkey(_val):
    return Mkey(_BadMkeyValue(b"tdst"))


def test_register_mkey_type():
    with pytest.raises(ComidError, match="^tag 37 is already registered$"):
        register_mkey_type(37, _new_test_mkey)
    with pytest.raises(ComidError) as exc:
        register_mkey_type(99996, _new_bad_mkey)
    assert str(exc.value) == 'measurement key type with name "uuid" already exists'

    register_mkey_type(99996, _new_test_mkey)
    key = new_mkey(None, "test-mkey")
    assert key.type() == "test-mkey"
    decoded = Mkey.from_cbor(key.to_cbor())
    assert isinstance(decoded.value, _TestMkeyValue)
    assert bytes(decoded.value) == b"tdst"


def test_mkey_from_json_regression_uuid():
    expected = new_mkey(TEST_UUID, "uuid")
    actual = Mkey.from_json(f'{{ "type": "uuid", "value": "{TEST_UUID}" }}')
    assert actual == expected


def test_mkey_new_psa():
    ref = new_psa_refval_id(TEST_SIGNER_ID)
    key = new_mkey(ref, "psa.refval-id")
    assert key.type() == "psa.refval-id"
    assert key.value.signer_id == TEST_SIGNER_ID


def test_mkey_uint_value():
    key = new_mkey(7, "uint")
    assert str(key.value) == "7"
    assert key.get_key_uint() == 7


def test_get_key_uint_wrong_type():
    with pytest.raises(ComidError, match="measurement-key type is: TaggedUUID"):
        new_mkey(TEST_UUID, "uuid").get_key_uint()


def test_new_measurement_unknown_type():
    with pytest.raises(ComidError, match="^unknown Mkey type: foo$"):
        new_measurement(1, "foo")


def test_new_oid_measurement():
    m = new_oid_measurement(TEST_OID)
    assert m.key.type() == "oid"
    assert str(m.key.value) == TEST_OID


def test_version_valid():
    with pytest.raises(ComidError, match="^empty version$"):
        Version().valid()


def test_mval_empty_is_invalid():
    with pytest.raises(ComidError, match="^no measurement value set$"):
        Mval().valid()


def test_measurement_to_cbor():
    m = new_uint_measurement(7).set_serial_number("sn")
    assert m.to_cbor().hex() == "a2000701a10862736e"


def test_measurement_to_json():
    m = new_uint_measurement(7).set_svn(3)
    assert json.loads(m.to_json()) == {
        "key": {"type": "uint", "value": 7},
        "value": {"svn": {"type": "exact-value", "value": 3}},
    }


def test_measurement_without_key_to_cbor():
    m = Measurement()
    m.set_serial_number("x")
    assert cbor2.loads(m.to_cbor()) == {1: {8: "x"}}


def test_mval_to_dict_fields():
    m = new_uint_measurement(1)
    m.set_uuid(TEST_UUID).set_ip_addr("192.0.2.1").set_version("1.0", VERSION_SCHEME_SEMVER)
    out = m.val.to_dict()
    assert out["uuid"] == TEST_UUID
    assert out["ip-addr"] == "192.0.2.1"
    assert out["version"] == {"value": "1.0", "scheme": "semver"}


def test_set_version_bad_scheme():
    with pytest.raises(ComidError):
        new_uint_measurement(1).set_version("1.0", "semver")