"""Security keys: a 24-byte record of salt, contract, target, permissions and expiry."""

from __future__ import annotations

import enum
import math
from datetime import datetime, timezone
from typing import Optional, Union

from emitsec.channel import Channel
from emitsec.hashing import of_bytes, of_string

KEY_SIZE = 24

# The beginning of time for key timestamps: 2010-01-01 00:00:00 UTC.
TIME_OFFSET = 1262304000

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)
_ANY_TARGET_HASH = 1325880984  # hash of the empty channel, as produced by "#/"
_MAX_PARTS = 23


class Permission(enum.IntFlag):
    """Access rights carried by a key."""

    NONE = 0
    MASTER = 1 << 0
    READ = 1 << 1
    WRITE = 1 << 2
    STORE = 1 << 3
    LOAD = 1 << 4
    PRESENCE = 1 << 5
    EXTEND = 1 << 6
    EXECUTE = 1 << 7
    READ_WRITE = READ | WRITE
    STORE_LOAD = STORE | LOAD
    ALL = 0xFF & ~MASTER


class TargetInvalidError(ValueError):
    """Raised when a target channel does not end with a separator."""

    def __init__(self) -> None:
        super().__init__(
            "channel should end with `/` for strict types or `/#/` for multi level wildcard"
        )


class TargetTooLongError(ValueError):
    """Raised when a target channel has more parts than a key can encode."""

    def __init__(self) -> None:
        super().__init__("channel can not have more than 23 parts")


def _to_unix(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return math.floor(value.timestamp())


class Key:
    """A mutable security key backed by its raw bytes."""

    __hash__ = None  # mutable

    def __init__(self, data: Optional[Union[bytes, bytearray]] = None) -> None:
        self._data = bytearray(KEY_SIZE if data is None else data)

    # -- raw access ------------------------------------------------------

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getitem__(self, index):
        return self._data[index]

    def __setitem__(self, index, value) -> None:
        self._data[index] = value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Key):
            return self._data == other._data
        if isinstance(other, (bytes, bytearray)):
            return self._data == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"Key({bytes(self._data).hex()})"

    def _read(self, start: int, size: int) -> int:
        if len(self._data) < start + size:
            raise IndexError("security key is too short")
        return int.from_bytes(self._data[start:start + size], "big")

    def _write(self, start: int, size: int, value: int) -> None:
        if not 0 <= value < 1 << (8 * size):
            raise ValueError(f"value {value} does not fit in {size} bytes")
        if len(self._data) < start + size:
            raise IndexError("security key is too short")
        self._data[start:start + size] = value.to_bytes(size, "big")

    # -- fields ----------------------------------------------------------

    def is_empty(self) -> bool:
        """Return whether the key holds no bytes."""
        return not self._data

    @property
    def salt(self) -> int:
        """The random salt of the key."""
        return self._read(0, 2)

    @salt.setter
    def salt(self, value: int) -> None:
        self._write(0, 2, value)

    @property
    def master(self) -> int:
        """The id of the master key."""
        return self._read(2, 2)

    @master.setter
    def master(self, value: int) -> None:
        self._write(2, 2, value)

    @property
    def contract(self) -> int:
        """The contract id."""
        return self._read(4, 4)

    @contract.setter
    def contract(self, value: int) -> None:
        self._write(4, 4, value)

    @property
    def signature(self) -> int:
        """The signature of the contract."""
        return self._read(8, 4)

    @signature.setter
    def signature(self, value: int) -> None:
        self._write(8, 4, value)

    @property
    def permissions(self) -> Permission:
        """The permission flags."""
        return Permission(self._read(15, 1))

    @permissions.setter
    def permissions(self, value: int) -> None:
        self._write(15, 1, int(value))

    @property
    def expires(self) -> datetime:
        """The expiry time in UTC; the epoch means the key never expires."""
        expire = self._read(20, 4)
        if expire > 0:
            expire += TIME_OFFSET
        return datetime.fromtimestamp(expire, tz=timezone.utc)

    @expires.setter
    def expires(self, value: datetime) -> None:
        expire = _to_unix(value)
        if expire > 0:
            expire -= TIME_OFFSET
        self._write(20, 4, expire & 0xFFFFFFFF)

    # -- target ----------------------------------------------------------

    def validate_channel(self, channel: Channel) -> bool:
        """Return whether the key's target allows the given channel."""
        topic = channel.channel
        if not topic:
            return False

        target = self._read(16, 4)
        target_path = self._read(12, 3)

        # Keys without a depth only compare the first part of the channel.
        if target_path == 0:
            if target == _ANY_TARGET_HASH:
                return True
            return target == channel.target()

        if topic.endswith(b"/"):
            topic = topic[:-1]

        parts = topic.split(b"/")
        if parts[-1] == b"#":
            parts = parts[:-1]

        max_depth = next(
            (_MAX_PARTS - bit for bit in range(_MAX_PARTS) if (target_path >> bit) & 1),
            0,
        )
        # A depth of zero means every part of the target was a wildcard.
        if max_depth == 0:
            max_depth = len(parts)

        is_exact = (target_path >> 23) & 1 == 1
        if len(parts) < max_depth or (is_exact and len(parts) != max_depth):
            return False

        masked = []
        for index, part in enumerate(parts):
            fixed = index < _MAX_PARTS and (target_path >> (22 - index)) & 1
            if fixed:
                if part == b"+":
                    return False
                masked.append(part)
            else:
                masked.append(b"+")

        return of_bytes(b"/".join(masked[:max_depth])) == target

    def set_target(self, channel: str) -> None:
        """Encode the target channel (e.g. ``a/+/c/`` or ``a/b/#/``) into the key."""
        if not channel.endswith("/"):
            raise TargetInvalidError()

        parts = channel.rstrip("/").split("/")
        bit_path = 1 << 23
        if parts[-1] == "#":
            parts = parts[:-1]
            bit_path = 0

        if len(parts) > _MAX_PARTS:
            raise TargetTooLongError()

        for index, part in enumerate(parts):
            if part not in ("+", "#"):
                bit_path |= 1 << (22 - index)

        self._write(12, 3, bit_path)
        self._write(16, 4, of_string("/".join(parts)))

    # -- checks ----------------------------------------------------------

    def is_expired(self) -> bool:
        """Return whether the key has an expiry date that has passed."""
        expiry = self.expires
        if expiry == _EPOCH:
            return False
        return expiry < datetime.now(timezone.utc)

    def is_master(self) -> bool:
        """Return whether the key is a master key."""
        return self.permissions == Permission.MASTER

    def has_permission(self, flag: int) -> bool:
        """Return whether every bit of ``flag`` is granted."""
        flag = int(flag)
        return int(self.permissions) & flag == flag

    def set_permission(self, flag: int, value: bool) -> None:
        """Grant or revoke the bits of ``flag``."""
        current = int(self.permissions)
        flag = int(flag)
        self.permissions = (current | flag) if value else (current & ~flag & 0xFF)