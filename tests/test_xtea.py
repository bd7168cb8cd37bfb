from datetime import datetime, timezone

import pytest

from emitsec.key import Key, Permission
from emitsec.keycodec import CorruptInputError
from emitsec.xtea import Xtea

CIPHER_KEY = "zT83oDV0DWY5_JysbSTPTA"


def make_key(salt):
    key = Key()
    key.salt = salt
    key.master = 2
    key.contract = 123
    key.signature = 777
    key.permissions = Permission.READ_WRITE
    key.set_target("a/b/c/")
    key.expires = datetime.fromtimestamp(1497683272, tz=timezone.utc)
    return key


def test_round_trip():
    cipher = Xtea(CIPHER_KEY)
    key = make_key(999)
    encoded = cipher.encrypt_key(key)
    assert len(encoded) == 32
    decoded = cipher.decrypt_key(encoded)
    assert decoded == key
    assert decoded.contract == 123
    assert decoded.permissions == Permission.READ_WRITE


def test_decrypt_accepts_bytes():
    cipher = Xtea(CIPHER_KEY)
    key = make_key(5)
    encoded = cipher.encrypt_key(key)
    assert cipher.decrypt_key(encoded.encode("ascii")) == key


def test_encryption_is_deterministic():
    cipher = Xtea(CIPHER_KEY)
    first = cipher.encrypt_key(make_key(1))
    second = cipher.encrypt_key(make_key(1))
    assert len(first) == 32
    assert first == second
    assert cipher.decrypt_key(first) == make_key(1)


def test_salt_changes_output():
    cipher = Xtea(CIPHER_KEY)
    assert cipher.encrypt_key(make_key(111)) != cipher.encrypt_key(make_key(333))


def test_different_cipher_keys_differ():
    key = make_key(7)
    first = Xtea(CIPHER_KEY).encrypt_key(key)
    second = Xtea("AAAAAAAAAAAAAAAAAAAAAA").encrypt_key(key)
    assert first != second


def test_wrong_cipher_key_does_not_decrypt():
    key = make_key(7)
    encoded = Xtea(CIPHER_KEY).encrypt_key(key)
    assert Xtea("AAAAAAAAAAAAAAAAAAAAAA").decrypt_key(encoded) != key


def test_output_is_url_safe():
    encoded = Xtea(CIPHER_KEY).encrypt_key(make_key(42))
    assert set(encoded) <= set(
        "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
    )


@pytest.mark.parametrize("value", ["", "zT83oDV0DWY5_JysbSTPT", "zT83oDV0DWY5_JysbSTPTAAA"])
def test_invalid_cipher_key_length(value):
    with pytest.raises(ValueError):
        Xtea(value)


def test_invalid_cipher_key_characters():
    with pytest.raises(CorruptInputError):
        Xtea("zT83oDV0DWY5_JysbSTPT%")


@pytest.mark.parametrize("buffer", ["", "abc", "a" * 33])
def test_decrypt_wrong_length(buffer):
    with pytest.raises(ValueError):
        Xtea(CIPHER_KEY).decrypt_key(buffer)


def test_decrypt_invalid_character():
    with pytest.raises(CorruptInputError):
        Xtea(CIPHER_KEY).decrypt_key("a" * 31 + "*")


def test_encrypt_short_key():
    with pytest.raises(ValueError):
        Xtea(CIPHER_KEY).encrypt_key(b"\x00" * 10)