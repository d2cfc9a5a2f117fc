"""
Protocol Command and Response Definitions

This module defines the constants and data structures shared by the
encoder, the decoder and the client facade.

Request header (16 bytes, big-endian):
    char[3]  'CiK' control bytes
    char     op code ('g', 's', 'd', 'c', 'l', 'n')
    u8[12]   op specific fields, zero padded

Response header (8 bytes, big-endian):
    char[3]  'CiK' control bytes
    char     't' (success) or 'f' (failure)
    u32      payload size on success, status code on failure
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional, Union


CONTROL_BYTES = b"CiK"

REQUEST_HEADER_SIZE = 16
RESPONSE_HEADER_SIZE = 8

MAX_KEY_LENGTH = 0xFF
MAX_TAG_LENGTH = 0xFF
MAX_TAG_COUNT = 0xFF
MAX_VALUE_LENGTH = 0xFFFFFFFF

# TTL sentinel: let the server apply its default lifetime
TTL_DEFAULT = 0xFFFFFFFF

GET_FLAG_NONE = 0x00
GET_FLAG_IGNORE_EXPIRES = 0x01


class CommandType(Enum):
    """Enumeration of supported commands, valued by their op code byte."""
    GET = b"g"
    SET = b"s"
    DELETE = b"d"
    CLEAR = b"c"
    LIST = b"l"
    INFO = b"n"


class StatusClass(Enum):
    """The status byte of a response header."""
    SUCCESS = b"t"
    FAILURE = b"f"


class StatusCode(IntEnum):
    """Status words reported by the server in failure responses."""

    OK = 0x00

    # 0x10 series: errors that close the client connection
    MASK_INTERNAL_ERROR = 0x10
    BUG = 0x11
    CONNECTION_CLOSED = 0x12
    NETWORK_ERROR = 0x13

    # 0x20 series: errors that generate a failure response
    MASK_CLIENT_ERROR = 0x20
    PROTOCOL_ERROR = 0x21

    # 0x40 series: non-errors that generate a failure response
    MASK_CLIENT_MESSAGE = 0x40
    NOT_FOUND = 0x41
    EXPIRED = 0x42
    OUT_OF_MEMORY = 0x43

    @classmethod
    def describe(cls, code: int) -> str:
        """Return a readable name for a raw status word."""
        try:
            return cls(code).name.replace("_", " ").lower()
        except ValueError:
            return "unknown"


def _lookup_mode(enum_cls, aliases: dict, mode) -> Optional[IntEnum]:
    if isinstance(mode, enum_cls):
        return mode
    if isinstance(mode, bool):
        return None
    if isinstance(mode, int):
        try:
            return enum_cls(mode)
        except ValueError:
            return None
    if isinstance(mode, str):
        if mode in aliases:
            return aliases[mode]
        return enum_cls.__members__.get(mode.upper().replace("-", "_"))
    return None


class CleaningMode(IntEnum):
    """Selects which entries a CLEAR request removes."""
    ALL = 0x00
    OLD = 0x01
    MATCHING_TAG = 0x02
    NOT_MATCHING_TAG = 0x03
    MATCHING_ANY_TAG = 0x04

    @classmethod
    def parse(cls, mode: Union["CleaningMode", int, str]) -> Optional["CleaningMode"]:
        """
        Resolve an enum member, integer code, member name or classic
        backend name ('matchingTag', ...) to a CleaningMode.

        Returns None when the mode is not recognized.
        """
        return _lookup_mode(cls, _CLEANING_MODE_ALIASES, mode)


_CLEANING_MODE_ALIASES = {
    "all": CleaningMode.ALL,
    "old": CleaningMode.OLD,
    "matchingTag": CleaningMode.MATCHING_TAG,
    "notMatchingTag": CleaningMode.NOT_MATCHING_TAG,
    "matchingAnyTag": CleaningMode.MATCHING_ANY_TAG,
}


class ListMode(IntEnum):
    """Selects which keys or tags a LIST request returns."""
    ALL_KEYS = 0x00
    ALL_TAGS = 0x01
    MATCHING_TAG = 0x02
    NOT_MATCHING_TAG = 0x03
    MATCHING_ANY_TAG = 0x04

    @classmethod
    def parse(cls, mode: Union["ListMode", int, str]) -> Optional["ListMode"]:
        """Resolve a list mode the same way CleaningMode.parse does."""
        return _lookup_mode(cls, _LIST_MODE_ALIASES, mode)


_LIST_MODE_ALIASES = {
    "keys": ListMode.ALL_KEYS,
    "tags": ListMode.ALL_TAGS,
    "matchingTag": ListMode.MATCHING_TAG,
    "notMatchingTag": ListMode.NOT_MATCHING_TAG,
    "matchingAnyTag": ListMode.MATCHING_ANY_TAG,
}


class Outcome(Enum):
    """How a reply should be interpreted by the caller."""
    OK = "ok"
    MISS = "miss"
    FAULT = "fault"


@dataclass
class ResponseHeader:
    """
    A decoded 8-byte response header.

    Attributes:
        status: SUCCESS or FAILURE
        size_or_error: Payload size on success, status code on failure
    """
    status: StatusClass
    size_or_error: int

    @property
    def is_success(self) -> bool:
        return self.status is StatusClass.SUCCESS


@dataclass
class Reply:
    """
    Represents one decoded server reply.

    Attributes:
        outcome: OK, MISS (0x40 series) or FAULT (anything else)
        payload: The payload bytes for OK replies (may be empty)
        status_code: The raw status word for MISS and FAULT replies
    """
    outcome: Outcome
    payload: Optional[bytes] = None
    status_code: int = StatusCode.OK

    @classmethod
    def ok(cls, payload: bytes = b"") -> "Reply":
        """Create a successful reply."""
        return cls(outcome=Outcome.OK, payload=payload)

    @classmethod
    def miss(cls, status_code: int) -> "Reply":
        """Create a client-message reply (not found, expired, ...)."""
        return cls(outcome=Outcome.MISS, status_code=status_code)

    @classmethod
    def fault(cls, status_code: int) -> "Reply":
        """Create a reply for a server side error."""
        return cls(outcome=Outcome.FAULT, status_code=status_code)

    @property
    def is_ok(self) -> bool:
        return self.outcome is Outcome.OK

    @property
    def is_miss(self) -> bool:
        return self.outcome is Outcome.MISS


@dataclass
class EntryInfo:
    """
    Metadata about a stored entry, as returned by INFO.

    Attributes:
        expires: Unix timestamp the entry expires at, or None if it never does
        mtime: Unix timestamp of the last SET
        tags: Tags attached to the entry
    """
    expires: Optional[int]
    mtime: int
    tags: List[bytes] = field(default_factory=list)

    def is_expired(self, now: float) -> bool:
        """Check whether the entry is past its expiry at time `now`."""
        return self.expires is not None and self.expires < now
