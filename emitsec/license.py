"""Licenses of every version, and the helpers to create and parse them."""

from __future__ import annotations

import base64
import secrets
from dataclasses import dataclass
from typing import Tuple, Union

from emitsec.key import Key
from emitsec.keycodec import decode_key
from emitsec.license_v1 import LicenseError, LicenseV1, make_master_key, parse_v1
from emitsec.salsa import Salsa, Shuffle

_UINT32 = 0xFFFFFFFF
_MAX_VARINT_BYTES = 10
_MAX_DECODED = 0xFFFFFFFF

License = Union[LicenseV1, "LicenseV2", "LicenseV3"]


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _uvarint(value: int) -> bytes:
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


class _Reader:
    """Sequential reader over a byte string."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def take(self, size: int) -> bytes:
        if size < 0 or size > self.remaining:
            raise LicenseError("unexpected end of license data")
        chunk = self._data[self._pos:self._pos + size]
        self._pos += size
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def uvarint(self) -> int:
        value = 0
        for index in range(_MAX_VARINT_BYTES):
            current = self.byte()
            value |= (current & 0x7F) << (7 * index)
            if current < 0x80:
                return value
        raise LicenseError("varint overflows a 64-bit integer")


# -- block compression ---------------------------------------------------


def _compress(data: bytes) -> bytes:
    """Encode ``data`` as a compressed block made of literals only."""
    out = bytearray(_uvarint(len(data)))
    if not data:
        return bytes(out)
    n = len(data) - 1
    if n < 60:
        out.append(n << 2)
    else:
        size = (n.bit_length() + 7) // 8
        out.append((59 + size) << 2)
        out += n.to_bytes(size, "little")
    out += data
    return bytes(out)


def _decompress(data: bytes) -> bytes:
    """Decode a compressed block, raising LicenseError on corrupt input."""
    reader = _Reader(data)
    expected = reader.uvarint()
    if expected > _MAX_DECODED:
        raise LicenseError("snappy: decoded block is too large")

    out = bytearray()
    while reader.remaining:
        tag = reader.byte()
        kind = tag & 3
        if kind == 0:
            x = tag >> 2
            if x >= 60:
                x = int.from_bytes(reader.take(x - 59), "little")
            length = x + 1
            out += reader.take(length)
        else:
            if kind == 1:
                length = 4 + ((tag >> 2) & 7)
                offset = ((tag & 0xE0) << 3) | reader.byte()
            elif kind == 2:
                length = 1 + (tag >> 2)
                offset = int.from_bytes(reader.take(2), "little")
            else:
                length = 1 + (tag >> 2)
                offset = int.from_bytes(reader.take(4), "little")
            if offset <= 0 or offset > len(out):
                raise LicenseError("snappy: corrupt input")
            start = len(out) - offset
            for index in range(length):
                out.append(out[start + index])
        if len(out) > expected:
            raise LicenseError("snappy: corrupt input")

    if len(out) != expected:
        raise LicenseError("snappy: corrupt input")
    return bytes(out)


# -- record encoding -----------------------------------------------------


def _encode_record(key: bytes, salt: bytes, user: int, sign: int, index: int) -> bytes:
    out = bytearray()
    for blob in (key, salt):
        out += _uvarint(len(blob)) + blob
    for number in (user, sign, index):
        out += _uvarint(number & _UINT32)
    return bytes(out)


def _decode_record(data: str) -> Tuple[bytes, bytes, int, int, int]:
    try:
        raw = decode_key(data)
    except ValueError as exc:
        raise LicenseError(str(exc)) from exc
    reader = _Reader(_decompress(raw))
    key = reader.take(reader.uvarint())
    salt = reader.take(reader.uvarint())
    user, sign, index = (reader.uvarint() & _UINT32 for _ in range(3))
    return key, salt, user, sign, index


@dataclass
class _SalsaLicense:
    encryption_key: bytes = b""
    encryption_salt: bytes = b""
    user: int = 0
    sign: int = 0
    index: int = 0

    @property
    def contract(self) -> int:
        """The contract id."""
        return self.user

    @property
    def signature(self) -> int:
        """The signature of the contract."""
        return self.sign

    @property
    def master(self) -> int:
        """The index of the secret key."""
        return self.index

    def new_master_key(self, id: int) -> Key:
        """Generate a new master key with the given id."""
        return make_master_key(id, self.user, self.sign)

    def _encoded(self) -> str:
        record = _encode_record(
            bytes(self.encryption_key), bytes(self.encryption_salt),
            self.user, self.sign, self.index,
        )
        return _b64(_compress(record))


@dataclass
class LicenseV2(_SalsaLicense):
    """A license whose keys are protected by XSalsa20."""

    def new_master_key(self, id: int) -> Key:
        """Generate a new master key with the given id."""
        return super().new_master_key(id)

    def cipher(self) -> Salsa:
        """Return the cipher used for keys under this license."""
        return Salsa(self.encryption_key, self.encryption_salt)

    def __str__(self) -> str:
        return self._encoded() + ":2"


@dataclass
class LicenseV3(_SalsaLicense):
    """A license whose keys are protected by salt-shuffled Salsa20."""

    def new_master_key(self, id: int) -> Key:
        """Generate a new master key with the given id."""
        return super().new_master_key(id)

    def cipher(self) -> Shuffle:
        """Return the cipher used for keys under this license."""
        return Shuffle(self.encryption_key, self.encryption_salt)

    def __str__(self) -> str:
        return self._encoded() + ":3"


def new_v2() -> LicenseV2:
    """Generate a new random version 2 license."""
    return LicenseV2(
        encryption_key=secrets.token_bytes(32),
        encryption_salt=secrets.token_bytes(24),
        user=secrets.randbits(32),
        sign=secrets.randbits(32),
        index=1,
    )


def parse_v2(data: str) -> LicenseV2:
    """Decode a version 2 license (without its ``:2`` suffix)."""
    return LicenseV2(*_decode_record(data))


def new_v3() -> LicenseV3:
    """Generate a new random version 3 license."""
    return LicenseV3(
        encryption_key=secrets.token_bytes(32),
        encryption_salt=secrets.token_bytes(16),
        user=secrets.randbits(32),
        sign=secrets.randbits(32),
        index=1,
    )


def parse_v3(data: str) -> LicenseV3:
    """Decode a version 3 license (without its ``:3`` suffix)."""
    return LicenseV3(*_decode_record(data))


def parse(data: str) -> License:
    """Parse a license of any version, chosen by its suffix."""
    if len(data) < 5:
        raise LicenseError(
            "No license was found, please provide a valid license key through the "
            "configuration file, an EMITTER_LICENSE environment variable or a valid "
            "vault key 'secrets/emitter/license'"
        )
    if data.endswith(":1"):
        return parse_v1(data[:-2])
    if data.endswith(":2"):
        return parse_v2(data[:-2])
    if data.endswith(":3"):
        return parse_v3(data[:-2])
    return parse_v1(data)


def new() -> Tuple[str, str]:
    """Generate a new license and its encrypted master key."""
    license = new_v3()
    secret = license.new_master_key(1)
    master = license.cipher().encrypt_key(secret)
    return str(license), master