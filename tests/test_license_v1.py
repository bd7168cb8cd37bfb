from datetime import datetime, timezone

import pytest

from emitsec.license_v1 import LicenseError, LicenseType, LicenseV1, new_v1, parse_v1

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


@pytest.mark.parametrize(
    "license, expected",
    [
        (
            LicenseV1(
                encryption_key="zT83oDV0DWY5_JysbSTPTA",
                user=989603869,
                expires=datetime.fromtimestamp(1600000000, tz=timezone.utc),
                license_type=2,
            ),
            "zT83oDV0DWY5_JysbSTPTDr8KB0AAAAAFCDVAAAAAAI:1",
        ),
        (
            LicenseV1(
                encryption_key="zT83oDV0DWY5_JysbSTPTA",
                user=989603869,
                expires=EPOCH,
                license_type=2,
            ),
            "zT83oDV0DWY5_JysbSTPTDr8KB0AAAAAAAAAAAAAAAI:1",
        ),
        (LicenseV1(encryption_key="zT83oDV0DWY5_JysbSTPT%"), ""),
    ],
)
def test_license_encode(license, expected):
    output = str(license)
    assert output == expected
    if expected:
        assert str(parse_v1(expected[:-2])) == expected


def test_parse_invalid():
    with pytest.raises(LicenseError):
        parse_v1("zT83oDV0DWY5_JysbSTPTDr8KB0AAAAAAAAAAAAAAAI#")


def test_parse_too_short():
    with pytest.raises(LicenseError):
        parse_v1("zT83oDV0")


@pytest.mark.parametrize(
    "text, expected",
    [
        (
            "zT83oDV0DWY5_JysbSTPTDr8KB0AAAAAFCDVAAAAAAI",
            LicenseV1(
                encryption_key="zT83oDV0DWY5_JysbSTPTA",
                user=989603869,
                expires=datetime.fromtimestamp(1600000000, tz=timezone.utc),
                license_type=2,
            ),
        ),
        (
            "zT83oDV0DWY5_JysbSTPTDr8KB0AAAAAAAAAAAAAAAI9",
            LicenseV1(
                encryption_key="zT83oDV0DWY5_JysbSTPTA",
                user=989603869,
                expires=EPOCH,
                license_type=2,
            ),
        ),
    ],
)
def test_parse_license(text, expected):
    output = parse_v1(text)
    assert output == expected
    cipher = output.cipher()
    key = output.new_master_key(1)
    assert cipher.decrypt_key(cipher.encrypt_key(key)) == key


def test_new_v1():
    license = new_v1()
    assert len(license.encryption_key) == 22
    assert license.license_type == LicenseType.ON_PREMISE

    text = str(license)
    assert text.endswith(":1")
    assert parse_v1(text[:-2]) == license

    master = license.new_master_key(9)
    assert master.master == 9
    assert master.contract == license.user
    assert master.signature == license.sign
    assert master.is_master()


def test_parse_v1_fields():
    license = parse_v1("zT83oDV0DWY5_JysbSTPTDr8KB0AAAAAFCDVAAAAAAI")
    assert license.contract == 0x3AFC281D
    assert license.signature == 0
    assert license.master == 1


def test_master_key_salt_in_range():
    license = new_v1()
    salts = {license.new_master_key(1).salt for _ in range(20)}
    assert all(0 <= salt < 32767 for salt in salts)