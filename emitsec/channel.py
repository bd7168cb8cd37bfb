"""Parsing of channel strings of the form ``key/a/b/c/?opt=value``."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from emitsec.hashing import of_bytes

MIN_TIME = 1514764800  # 2018
MAX_TIME = 3029529600  # 2066

_SEPARATOR = ord("/")
_QUERY = ord("?")
_WILDCARDS = frozenset(b"#+*")
_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1

_OPTIONS = re.compile(rb"[A-Za-z0-9]+=[A-Za-z0-9]+(?:&[A-Za-z0-9]+=[A-Za-z0-9]+)*&?")
_OPTION = re.compile(rb"([A-Za-z0-9]+)=([A-Za-z0-9]+)")
_INTEGER = re.compile(r"[+-]?[0-9]+")


class ChannelType(enum.IntEnum):
    """Kind of a parsed channel."""

    INVALID = 0
    STATIC = 1
    WILDCARD = 2


@dataclass(frozen=True)
class ChannelOption:
    """A key/value option attached to a channel."""

    key: str
    value: str


def _parse_int64(text: str) -> Optional[int]:
    if not _INTEGER.fullmatch(text):
        return None
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


def _to_datetime(stamp: Optional[int]) -> datetime:
    if not stamp or stamp < MIN_TIME or stamp > MAX_TIME:
        return _EPOCH
    return datetime.fromtimestamp(stamp, tz=timezone.utc)


@dataclass
class Channel:
    """A parsed channel: its key, path, part hashes and options."""

    key: bytes = b""
    channel: bytes = b""
    query: List[int] = field(default_factory=list)
    options: List[ChannelOption] = field(default_factory=list)
    channel_type: ChannelType = ChannelType.INVALID

    def target(self) -> int:
        """Return the hash of the first channel part."""
        return self.query[0]

    def _option(self, name: str) -> Optional[int]:
        for option in self.options:
            if option.key == name:
                return _parse_int64(option.value)
        return None

    def ttl(self) -> Optional[int]:
        """Return the ``ttl`` option, or None when absent or not a number."""
        return self._option("ttl")

    def last(self) -> Optional[int]:
        """Return the ``last`` option, or None when absent or not a number."""
        return self._option("last")

    def exclude(self) -> bool:
        """Return whether ``me=0`` was given."""
        return self._option("me") == 0

    def window(self) -> Tuple[datetime, datetime]:
        """Return the ``from``/``until`` options as UTC datetimes (epoch if unset)."""
        return _to_datetime(self._option("from")), _to_datetime(self._option("until"))

    def safe_string(self) -> str:
        """Return the channel with its options, without the key."""
        text = self.channel.decode("utf-8", errors="surrogateescape")
        if not self.options:
            return text
        return text + "?" + "&".join(f"{o.key}={o.value}" for o in self.options)

    def __str__(self) -> str:
        key = self.key.decode("utf-8", errors="surrogateescape")
        return f"{key}/{self.safe_string()}"


def _is_plain(symbol: int) -> bool:
    return 45 <= symbol <= 58 or 65 <= symbol <= 122 or symbol == 36


def _parse_path(text: bytes) -> Optional[Tuple[int, bytes, List[int], ChannelType]]:
    """Parse the channel path; return (consumed, path, query, type) or None."""
    query: List[int] = []
    offset = chan_chars = wildcards = 0
    wildcard_seen = False
    length = len(text)

    for i, symbol in enumerate(text):
        if symbol == _SEPARATOR:
            if chan_chars == 0 and wildcards == 0:
                return None
            query.append(of_bytes(text[offset:i]))
            end = i + 1
            if end == length or text[end] == _QUERY:
                kind = ChannelType.WILDCARD if wildcard_seen else ChannelType.STATIC
                consumed = end if end == length else end + 1
                return consumed, text[:end], query, kind
            offset = end
            chan_chars = wildcards = 0
        elif symbol in _WILDCARDS:
            if chan_chars or wildcards:
                return None
            wildcards += 1
            wildcard_seen = True
        elif _is_plain(symbol):
            if wildcards:
                return None
            chan_chars += 1
        else:
            return None
    return None


def parse_channel(text: Union[bytes, bytearray, str]) -> Channel:
    """Parse ``key/channel/?options``; an unparsable input yields an INVALID channel."""
    if isinstance(text, str):
        text = text.encode("utf-8")
    text = bytes(text)

    separator = text.find(b"/")
    if separator <= 0:
        return Channel()
    key = text[:separator]
    rest = text[separator + 1:]

    parsed = _parse_path(rest)
    if parsed is None:
        return Channel(key=key)
    consumed, path, query, kind = parsed

    options: List[ChannelOption] = []
    tail = rest[consumed:]
    if tail:
        if not _OPTIONS.fullmatch(tail):
            return Channel(key=key, channel=path, query=query)
        options = [
            ChannelOption(k.decode("ascii"), v.decode("ascii"))
            for k, v in _OPTION.findall(tail)
        ]
    return Channel(key=key, channel=path, query=query, options=options, channel_type=kind)


def make_channel(key: str, channel_with_options: str) -> Channel:
    """Parse a channel from a separate key and channel string."""
    return parse_channel(f"{key}/{channel_with_options}")