"""Protocol module for the CiK client."""

from .commands import (
    CleaningMode,
    CommandType,
    EntryInfo,
    ListMode,
    Outcome,
    Reply,
    ResponseHeader,
    StatusClass,
    StatusCode,
)
from .decoder import ResponseDecoder, classify_status, parse_header
from .encoder import MessageEncoder
from .keys import normalize_key, prepare_tags

__all__ = [
    "CleaningMode",
    "CommandType",
    "EntryInfo",
    "ListMode",
    "Outcome",
    "Reply",
    "ResponseHeader",
    "StatusClass",
    "StatusCode",
    "ResponseDecoder",
    "classify_status",
    "parse_header",
    "MessageEncoder",
    "normalize_key",
    "prepare_tags",
]
