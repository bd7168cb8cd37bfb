"""Process-wide unique identifiers."""

from __future__ import annotations

import base64
import hashlib
import threading
from datetime import datetime, timezone

_UINT64 = 1 << 64
_EPOCH_2015 = datetime(2015, 1, 1, tzinfo=timezone.utc)


def _uvarint(value: int) -> bytes:
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


class ID(int):
    """An unsigned 64-bit identifier."""

    def __new__(cls, value: int) -> "ID":
        value = int(value)
        if not 0 <= value < _UINT64:
            raise ValueError(f"ID out of range: {value}")
        return super().__new__(cls, value)

    def unique(self, prefix: int, salt: str) -> str:
        """Derive a unique base32 string from this id, a prefix and a salt."""
        if not 0 <= prefix < _UINT64:
            raise ValueError(f"prefix out of range: {prefix}")
        buffer = prefix.to_bytes(8, "big") + int(self).to_bytes(8, "big")
        derived = hashlib.pbkdf2_hmac("sha1", buffer, salt.encode("utf-8"), 4096, 16)
        return base64.b32encode(derived).decode("ascii").strip("=")

    def __str__(self) -> str:
        return _uvarint(int(self)).hex().upper()

    def __repr__(self) -> str:
        return f"ID({int(self)})"


class IdGenerator:
    """Thread-safe generator of increasing identifiers."""

    def __init__(self, seed: int) -> None:
        self._value = int(seed) % _UINT64
        self._lock = threading.Lock()

    def next_id(self) -> ID:
        """Return the next identifier."""
        with self._lock:
            self._value = (self._value + 1) % _UINT64
            return ID(self._value)


_default = IdGenerator(int((datetime.now(timezone.utc) - _EPOCH_2015).total_seconds()))


def new_id() -> ID:
    """Return a new process-wide unique identifier."""
    return _default.next_id()