"""Salsa20-based ciphers that encrypt and decrypt security keys."""

from __future__ import annotations

import base64
import struct
from typing import List, Union

from emitsec.key import KEY_SIZE, Key
from emitsec.keycodec import decode_key

SIGMA = b"expand 32-byte k"

_MASK = 0xFFFFFFFF
_BLOCK = 64
_ENCODED_SIZE = 32
_COUNTER_MOD = 1 << 64

# Quarter-round index sets: a column round followed by a row round.
_DOUBLE_ROUND = (
    (0, 4, 8, 12), (5, 9, 13, 1), (10, 14, 2, 6), (15, 3, 7, 11),
    (0, 1, 2, 3), (5, 6, 7, 4), (10, 11, 8, 9), (15, 12, 13, 14),
)


def _rotl(value: int, shift: int) -> int:
    return ((value << shift) | (value >> (32 - shift))) & _MASK


def _initial_state(key: bytes, block_input: bytes) -> List[int]:
    s0, s1, s2, s3 = struct.unpack("<4I", SIGMA)
    k = struct.unpack("<8I", key)
    i = struct.unpack("<4I", block_input)
    return [s0, k[0], k[1], k[2], k[3], s1, i[0], i[1], i[2], i[3],
            s2, k[4], k[5], k[6], k[7], s3]


def _rounds(state: List[int]) -> List[int]:
    x = list(state)
    for _ in range(10):
        for a, b, c, d in _DOUBLE_ROUND:
            x[b] ^= _rotl((x[a] + x[d]) & _MASK, 7)
            x[c] ^= _rotl((x[b] + x[a]) & _MASK, 9)
            x[d] ^= _rotl((x[c] + x[b]) & _MASK, 13)
            x[a] ^= _rotl((x[d] + x[c]) & _MASK, 18)
    return x


def _check_key(key: bytes) -> bytes:
    key = bytes(key)
    if len(key) != 32:
        raise ValueError("salsa20: key must be 32 bytes")
    return key


def hsalsa20(key: bytes, nonce: bytes) -> bytes:
    """Derive a 32-byte sub-key from a 32-byte key and a 16-byte nonce."""
    key = _check_key(key)
    nonce = bytes(nonce)
    if len(nonce) != 16:
        raise ValueError("hsalsa20: nonce must be 16 bytes")
    x = _rounds(_initial_state(key, nonce))
    return struct.pack("<8I", x[0], x[5], x[10], x[15], x[6], x[7], x[8], x[9])


def _block(key: bytes, block_input: bytes) -> bytes:
    state = _initial_state(key, block_input)
    mixed = _rounds(state)
    return struct.pack("<16I", *((m + s) & _MASK for m, s in zip(mixed, state)))


def xor_key_stream(data: bytes, counter: bytes, key: bytes) -> bytes:
    """XOR ``data`` with the Salsa20 key stream.

    ``counter`` holds an 8-byte nonce followed by an 8-byte little-endian
    block counter.
    """
    key = _check_key(key)
    counter = bytes(counter)
    if len(counter) != 16:
        raise ValueError("salsa20: counter must be 16 bytes")
    data = bytes(data)
    nonce = counter[:8]
    block = int.from_bytes(counter[8:], "little")

    out = bytearray()
    for start in range(0, len(data), _BLOCK):
        stream = _block(key, nonce + block.to_bytes(8, "little"))
        out += bytes(a ^ b for a, b in zip(data[start:start + _BLOCK], stream))
        block = (block + 1) % _COUNTER_MOD
    return bytes(out)


def _key_buffer(key: Union[Key, bytes]) -> bytes:
    return bytes(key)[:KEY_SIZE].ljust(KEY_SIZE, b"\x00")


def _encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _decode(buffer: Union[bytes, str]) -> bytes:
    if len(buffer) != _ENCODED_SIZE:
        raise ValueError("cipher: the key provided is not valid")
    return decode_key(buffer)


class Salsa:
    """XSalsa20 cipher for security keys."""

    def __init__(self, key: bytes, nonce: bytes) -> None:
        key, nonce = bytes(key), bytes(nonce)
        if len(key) != 32 or len(nonce) != 24:
            raise ValueError("salsa: invalid cryptographic key")
        self._key = key
        self._nonce = nonce

    def _box(self, data: bytes) -> bytes:
        sub_key = hsalsa20(self._key, self._nonce[:16])
        counter = self._nonce[16:] + bytes(8)
        return xor_key_stream(data, counter, sub_key)

    def encrypt_key(self, key: Union[Key, bytes]) -> str:
        """Encrypt a key into a 32-character URL-safe base64 string."""
        return _encode(self._box(_key_buffer(key)))

    def decrypt_key(self, buffer: Union[bytes, str]) -> Key:
        """Decrypt a 32-character encoded key."""
        return Key(self._box(_decode(buffer)))


class Shuffle:
    """Salsa20 cipher whose nonce is shuffled with each key's salt."""

    def __init__(self, key: bytes, nonce: bytes) -> None:
        key, nonce = bytes(key), bytes(nonce)
        if len(key) != 32 or len(nonce) != 16:
            raise ValueError("shuffled: invalid cryptographic key")
        self._key = key
        self._nonce = nonce

    def _crypt(self, data: bytes) -> bytes:
        salt, body = data[:2], data[2:]
        nonce = bytes(n ^ salt[i % 2] for i, n in enumerate(self._nonce))
        sub_key = hsalsa20(self._key, nonce)
        return salt + xor_key_stream(body, nonce, sub_key)

    def encrypt_key(self, key: Union[Key, bytes]) -> str:
        """Encrypt a key into a 32-character URL-safe base64 string."""
        return _encode(self._crypt(_key_buffer(key)))

    def decrypt_key(self, buffer: Union[bytes, str]) -> Key:
        """Decrypt a 32-character encoded key."""
        return Key(self._crypt(_decode(buffer)))