import uuid

import pytest

from comid.choice import ComidError, tag_of, type_for_tag
from comid.uuidval import (
    TaggedUUID,
    new_tagged_uuid,
    parse_uuid,
    validate_uuid,
)

TEST_UUID = "31fb5abf-023e-4992-aa4e-95f9c1503bfa"


def test_uuid_json():
    val = TaggedUUID(TEST_UUID)
    expected = f'"{val}"'
    out = val.to_json()
    assert out == expected
    assert TaggedUUID.from_json(out) == val


def test_new_tagged_uuid_from_string():
    ret = new_tagged_uuid(TEST_UUID)
    assert str(ret) == TEST_UUID
    assert ret.type() == "uuid"


def test_new_tagged_uuid_variants_agree():
    base = uuid.UUID(TEST_UUID)
    for val in (base, TaggedUUID(TEST_UUID), base.bytes, bytearray(base.bytes)):
        assert new_tagged_uuid(val) == base


def test_new_tagged_uuid_nil_is_zero():
    assert new_tagged_uuid(None).int == 0


def test_empty_uuid_is_reserved():
    with pytest.raises(ComidError, match="expecting RFC4122 UUID, got Reserved instead"):
        new_tagged_uuid(uuid.UUID(int=0))


def test_non_rfc4122_uuid():
    non_rfc = parse_uuid("f47ac10b-58cc-4372-c567-0e02b2c3d479")
    with pytest.raises(ComidError, match="got Microsoft instead"):
        validate_uuid(non_rfc)


def test_wrong_size_bytes():
    with pytest.raises(
        ComidError, match="unexpected size for UUID: expected 16 bytes, found 3"
    ):
        new_tagged_uuid(b"\x01\x02\x03")


def test_unexpected_type():
    with pytest.raises(ComidError, match="unexpected type for UUID: bool"):
        new_tagged_uuid(True)


def test_bad_uuid_string():
    with pytest.raises(ComidError, match="bad UUID"):
        new_tagged_uuid("not-a-uuid")


@pytest.mark.parametrize(
    "text",
    [
        TEST_UUID,
        "{" + TEST_UUID + "}",
        "urn:uuid:" + TEST_UUID,
        TEST_UUID.replace("-", ""),
        TEST_UUID.upper(),
    ],
)
def test_parse_uuid_forms(text):
    assert parse_uuid(text) == uuid.UUID(TEST_UUID)


@pytest.mark.parametrize(
    "text", ["31fb5abf0-23e-4992-aa4e-95f9c1503bfa", "31fb5abf-023e", "zz" * 16]
)
def test_parse_uuid_rejects(text):
    with pytest.raises(ComidError):
        parse_uuid(text)


def test_from_json_errors():
    with pytest.raises(ComidError, match="bad UUID"):
        TaggedUUID.from_json('"nope"')
    with pytest.raises(ComidError):
        TaggedUUID.from_json("7")


def test_tag_registered():
    assert type_for_tag(tag_of(TaggedUUID)) is TaggedUUID