"""XTEA cipher used by legacy licenses to encrypt and decrypt security keys."""

from __future__ import annotations

import base64
import struct
from typing import Union

from emitsec.key import KEY_SIZE, Key
from emitsec.keycodec import decode_key

_ROUNDS = 32
_DELTA = 0x9E3779B9
_SUM = 0xC6EF3720  # delta * rounds
_MASK = 0xFFFFFFFF
_BLOCK = 8


def _mix(value: int) -> int:
    return ((((value << 4) ^ (value >> 5)) + value)) & _MASK


class Xtea:
    """Encrypts and decrypts security keys with a 128-bit XTEA key."""

    def __init__(self, value: str) -> None:
        data = decode_key(value)
        if len(value) != 22 or len(data) != 16:
            raise ValueError("xtea: invalid cryptographic key")
        self._key = struct.unpack(">4I", data)

    def _encrypt_block(self, y: int, z: int) -> tuple:
        key = self._key
        total = 0
        for _ in range(_ROUNDS):
            y = (y + (_mix(z) ^ ((total + key[total & 3]) & _MASK))) & _MASK
            total = (total + _DELTA) & _MASK
            z = (z + (_mix(y) ^ ((total + key[(total >> 11) & 3]) & _MASK))) & _MASK
        return y, z

    def _decrypt_block(self, y: int, z: int) -> tuple:
        key = self._key
        total = _SUM
        for _ in range(_ROUNDS):
            z = (z - (_mix(y) ^ ((total + key[(total >> 11) & 3]) & _MASK))) & _MASK
            total = (total - _DELTA) & _MASK
            y = (y - (_mix(z) ^ ((total + key[total & 3]) & _MASK))) & _MASK
        return y, z

    def _apply(self, data: bytes, block) -> bytes:
        out = bytearray()
        for start in range(0, len(data), _BLOCK):
            y, z = struct.unpack(">2I", data[start:start + _BLOCK])
            out += struct.pack(">2I", *block(y, z))
        return bytes(out)

    def encrypt_key(self, key: Union[Key, bytes]) -> str:
        """Encrypt a 24-byte key into a 32-character URL-safe base64 string."""
        raw = bytes(key)
        if len(raw) < KEY_SIZE:
            raise ValueError("The security key should be 24-bytes long")
        salt = raw[:2]
        salted = salt + bytes(b ^ salt[i % 2] for i, b in enumerate(raw[2:KEY_SIZE]))
        encrypted = self._apply(salted, self._encrypt_block)
        return base64.urlsafe_b64encode(encrypted).decode("ascii").rstrip("=")

    def decrypt_key(self, buffer: Union[bytes, str]) -> Key:
        """Decrypt a 32-character encoded key."""
        if len(buffer) != 32:
            raise ValueError("cipher: the key provided is not valid")
        decrypted = self._apply(decode_key(buffer), self._decrypt_block)
        salt = decrypted[:2]
        plain = salt + bytes(b ^ salt[i % 2] for i, b in enumerate(decrypted[2:]))
        return Key(plain)