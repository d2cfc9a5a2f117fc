"""
CiK: Client for the CiK binary cache protocol

A small synchronous client that talks to a CiK key/value cache server
over one persistent TCP connection.
"""

from .backend import CacheBackend
from .client import CallState, CiKClient
from .errors import (
    CiKConnectionError,
    CiKError,
    FramingError,
    InvalidCleaningMode,
    InvalidListMode,
    PrematureEndOfStream,
    ServerError,
    ServerInternalError,
    ServerProtocolError,
    TransportError,
    UnexpectedServerMessage,
)
from .protocol.commands import CleaningMode, EntryInfo, ListMode, StatusCode

__version__ = "1.0.0"

__all__ = [
    "CacheBackend",
    "CallState",
    "CiKClient",
    "CiKConnectionError",
    "CiKError",
    "CleaningMode",
    "EntryInfo",
    "FramingError",
    "InvalidCleaningMode",
    "InvalidListMode",
    "ListMode",
    "PrematureEndOfStream",
    "ServerError",
    "ServerInternalError",
    "ServerProtocolError",
    "StatusCode",
    "TransportError",
    "UnexpectedServerMessage",
]
