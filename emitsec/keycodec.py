"""Decoding of URL-safe, unpadded base64 security keys."""

from __future__ import annotations

from typing import Union

_ALPHABET = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
_DECODE = {symbol: index for index, symbol in enumerate(_ALPHABET)}


class CorruptInputError(ValueError):
    """Raised when the input holds a byte that is not valid base64."""

    def __init__(self, offset: int) -> None:
        super().__init__(f"illegal base64 data at input byte {offset}")
        self.offset = offset


def decode_key(src: Union[bytes, bytearray, str]) -> bytes:
    """Decode URL-safe base64 without padding; trailing bits are not checked."""
    if isinstance(src, str):
        src = src.encode("latin-1", errors="replace")
    src = bytes(src)

    out = bytearray()
    for start in range(0, len(src), 4):
        chunk = src[start:start + 4]
        value = 0
        for position, symbol in enumerate(chunk):
            digit = _DECODE.get(symbol)
            if digit is None:
                raise CorruptInputError(start + position)
            value |= digit << (18 - 6 * position)
        if len(chunk) < 2:
            raise CorruptInputError(start)
        out += value.to_bytes(3, "big")[: len(chunk) - 1]
    return bytes(out)