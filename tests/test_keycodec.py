import base64

import pytest

from emitsec.keycodec import CorruptInputError, decode_key

ENCODED = b"0TJnt4yZPL73zt35h1UTIFsYBLetyD_g"


def test_decode_matches_stdlib():
    expected = base64.urlsafe_b64decode(ENCODED)
    result = decode_key(ENCODED)
    assert result == expected
    assert len(result) == 24


def test_decode_accepts_str():
    assert decode_key(ENCODED.decode()) == base64.urlsafe_b64decode(ENCODED)


def test_invalid_symbol_raises():
    with pytest.raises(CorruptInputError) as info:
        decode_key(b"#")
    assert info.value.offset == 0
    assert str(info.value) == "illegal base64 data at input byte 0"


def test_invalid_symbol_offset():
    with pytest.raises(CorruptInputError) as info:
        decode_key(b"aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa*")
    assert info.value.offset == 31


def test_single_trailing_symbol_raises():
    with pytest.raises(CorruptInputError) as info:
        decode_key(b"AAAAA")
    assert info.value.offset == 4


def test_empty_input():
    assert decode_key(b"") == b""


def test_error_is_value_error():
    with pytest.raises(ValueError):
        decode_key(b"AA=A")


@pytest.mark.parametrize("length", range(0, 25))
def test_round_trip(length):
    raw = bytes((i * 37 + 11) % 256 for i in range(length))
    encoded = base64.urlsafe_b64encode(raw).rstrip(b"=")
    assert decode_key(encoded) == raw


@pytest.mark.parametrize("symbol", list(b"AZaz09-_"))
def test_two_symbol_inputs_decode_to_one_byte(symbol):
    assert len(decode_key(bytes([ord("A"), symbol]))) == 1