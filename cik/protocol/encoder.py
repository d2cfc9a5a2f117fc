"""
Message Encoder

Builds the exact byte sequence for each CiK request. All multi-byte
fields are big-endian and every header is 16 bytes long.

    SET    'CiK' 's' klen ntags pad[2] vlen(u32) ttl(u32) | key tags value
    GET    'CiK' 'g' klen flags pad[10]                   | key
    DELETE 'CiK' 'd' klen pad[11]                         | key
    CLEAR  'CiK' 'c' mode ntags pad[10]                   | tags
    LIST   'CiK' 'l' mode ntags pad[10]                   | tags
    INFO   'CiK' 'n' klen pad[11]                         | key

Each tag in a body is written as a one-byte length followed by the tag.
"""

import struct
from typing import Iterable, List, Optional

from ..errors import InvalidCleaningMode, InvalidListMode
from .commands import (
    CONTROL_BYTES,
    GET_FLAG_IGNORE_EXPIRES,
    GET_FLAG_NONE,
    MAX_VALUE_LENGTH,
    TTL_DEFAULT,
    CleaningMode,
    CommandType,
    ListMode,
)
from .keys import BytesLike, normalize_key, prepare_tags, to_bytes

SET_HEADER = struct.Struct(">3scBB2xII")
KEY_HEADER = struct.Struct(">3scB11x")
GET_HEADER = struct.Struct(">3scBB10x")
TAGS_HEADER = struct.Struct(">3scBB10x")


def encode_tags(tags: List[bytes]) -> bytes:
    """Encode already prepared tags as a stream of length-prefixed items."""
    return b"".join(bytes((len(tag),)) + tag for tag in tags)


def resolve_cleaning_mode(mode) -> CleaningMode:
    """
    Resolve a caller supplied cleaning mode without touching the network.

    Raises:
        InvalidCleaningMode: If mode is not one of the five cleaning modes
    """
    resolved = CleaningMode.parse(mode)
    if resolved is None:
        raise InvalidCleaningMode(f"invalid cleaning mode: {mode!r}")
    return resolved


def resolve_list_mode(mode) -> ListMode:
    """
    Resolve a caller supplied list mode without touching the network.

    Raises:
        InvalidListMode: If mode is not one of the five list modes
    """
    resolved = ListMode.parse(mode)
    if resolved is None:
        raise InvalidListMode(f"invalid list mode: {mode!r}")
    return resolved


class MessageEncoder:
    """
    Encoder for CiK request frames.

    Keys and tags are normalized here, so callers may pass arbitrary
    length str or bytes values.
    """

    def encode_get(self, key: BytesLike, ignore_expiry: bool = False) -> bytes:
        """
        Encode a GET request.

        Examples:
            >>> MessageEncoder().encode_get(b"k")
            b'CiKg\\x01\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00k'
        """
        key = normalize_key(key)
        flags = GET_FLAG_IGNORE_EXPIRES if ignore_expiry else GET_FLAG_NONE
        header = GET_HEADER.pack(CONTROL_BYTES, CommandType.GET.value, len(key), flags)
        return header + key

    def encode_set(
            self,
            key: BytesLike,
            value: BytesLike,
            tags: Optional[Iterable[BytesLike]] = None,
            ttl: Optional[int] = None,
    ) -> bytes:
        """
        Encode a SET request.

        Args:
            key: Entry key
            value: Entry value
            tags: Tags to attach; empty and duplicate tags are dropped and
                at most 255 are sent
            ttl: Lifetime in seconds, or None for the server default

        Raises:
            ValueError: If ttl or the value length does not fit in a u32
        """
        key = normalize_key(key)
        value = to_bytes(value)
        tags = prepare_tags(tags or [])
        ttl = self._check_ttl(ttl)

        if len(value) > MAX_VALUE_LENGTH:
            raise ValueError(f"value too large: {len(value)} bytes")

        header = SET_HEADER.pack(
            CONTROL_BYTES,
            CommandType.SET.value,
            len(key),
            len(tags),
            len(value),
            ttl,
        )
        return b"".join((header, key, encode_tags(tags), value))

    def encode_delete(self, key: BytesLike) -> bytes:
        """Encode a DELETE request."""
        return self._encode_key_request(CommandType.DELETE, key)

    def encode_info(self, key: BytesLike) -> bytes:
        """
        Encode an INFO request for a single entry.

        Raises:
            ValueError: If key is empty (server info is not implemented
                by the server)
        """
        if not key:
            raise ValueError("INFO requires a non-empty key")
        return self._encode_key_request(CommandType.INFO, key)

    def encode_clear(self, mode, tags: Optional[Iterable[BytesLike]] = None) -> bytes:
        """
        Encode a CLEAR request.

        Raises:
            InvalidCleaningMode: If mode is not one of the five cleaning modes
        """
        return self._encode_tags_request(CommandType.CLEAR, resolve_cleaning_mode(mode), tags)

    def encode_list(self, mode, tags: Optional[Iterable[BytesLike]] = None) -> bytes:
        """
        Encode a LIST request.

        Raises:
            InvalidListMode: If mode is not one of the five list modes
        """
        return self._encode_tags_request(CommandType.LIST, resolve_list_mode(mode), tags)

    def _encode_key_request(self, command: CommandType, key: BytesLike) -> bytes:
        key = normalize_key(key)
        return KEY_HEADER.pack(CONTROL_BYTES, command.value, len(key)) + key

    def _encode_tags_request(self, command: CommandType, mode: int, tags) -> bytes:
        tags = prepare_tags(tags or [])
        header = TAGS_HEADER.pack(CONTROL_BYTES, command.value, int(mode), len(tags))
        return header + encode_tags(tags)

    @staticmethod
    def _check_ttl(ttl: Optional[int]) -> int:
        if ttl is None:
            return TTL_DEFAULT
        if isinstance(ttl, bool) or not isinstance(ttl, int):
            raise ValueError(f"ttl must be an integer, got {ttl!r}")
        if ttl < 0 or ttl > TTL_DEFAULT:
            raise ValueError(f"ttl out of range: {ttl}")
        return ttl
