"""Legacy version 1 licenses, which use the XTEA cipher for keys."""

from __future__ import annotations

import base64
import enum
import math
import secrets
import struct
from dataclasses import dataclass, field
from datetime import datetime, timezone

from emitsec.key import TIME_OFFSET, Key, Permission
from emitsec.keycodec import decode_key
from emitsec.xtea import Xtea

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)
_RAW_SIZE = 32
_MAX_INT16 = 32767


class LicenseError(ValueError):
    """Raised when a license cannot be decoded."""


class LicenseType(enum.IntEnum):
    """Kind of a license."""

    UNKNOWN = 0
    CLOUD = 1
    ON_PREMISE = 2


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _to_unix(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return math.floor(value.timestamp())


def make_master_key(master_id: int, contract: int, signature: int) -> Key:
    """Create a master key with a random salt for the given contract."""
    key = Key()
    key.salt = secrets.randbelow(_MAX_INT16)
    key.master = master_id
    key.contract = contract
    key.signature = signature
    key.permissions = Permission.MASTER
    return key


@dataclass
class LicenseV1:
    """A legacy license holding an XTEA key, contract, signature and expiry."""

    encryption_key: str
    user: int = 0
    sign: int = 0
    expires: datetime = field(default_factory=lambda: _EPOCH)
    license_type: int = LicenseType.UNKNOWN

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
        return 1

    def new_master_key(self, id: int) -> Key:
        """Generate a new master key with the given id."""
        return make_master_key(id, self.user, self.sign)

    def cipher(self) -> Xtea:
        """Return the cipher used for keys under this license."""
        return Xtea(self.encryption_key)

    def __str__(self) -> str:
        try:
            key = decode_key(self.encryption_key)
        except ValueError:
            return ""

        expiry = _to_unix(self.expires)
        if expiry > 0:
            expiry -= TIME_OFFSET

        output = key[:16].ljust(16, b"\x00") + struct.pack(
            ">4I",
            self.user & 0xFFFFFFFF,
            self.sign & 0xFFFFFFFF,
            expiry & 0xFFFFFFFF,
            int(self.license_type) & 0xFFFFFFFF,
        )
        return _b64(output) + ":1"


def new_v1() -> LicenseV1:
    """Generate a new random version 1 license."""
    return LicenseV1(
        encryption_key=_b64(secrets.token_bytes(16)),
        user=secrets.randbits(32),
        sign=secrets.randbits(32),
        expires=_EPOCH,
        license_type=LicenseType.ON_PREMISE,
    )


def parse_v1(data: str) -> LicenseV1:
    """Decode a version 1 license (without its ``:1`` suffix)."""
    try:
        raw = decode_key(data)
    except ValueError as exc:
        raise LicenseError(str(exc)) from exc
    if len(raw) < _RAW_SIZE:
        raise LicenseError("license is too short")

    user, sign, expiry, kind = struct.unpack(">4I", raw[16:32])
    if expiry > 0:
        expiry += TIME_OFFSET

    return LicenseV1(
        encryption_key=_b64(raw[:16]),
        user=user,
        sign=sign,
        expires=datetime.fromtimestamp(expiry, tz=timezone.utc),
        license_type=kind,
    )