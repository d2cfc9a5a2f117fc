"""
CiK Client Exceptions

Every error raised by this package derives from CiKError. Logical
outcomes such as a cache miss are never raised; they are returned
as ordinary values by the client facade.
"""

from typing import Optional


class CiKError(Exception):
    """Base class for all CiK client errors."""


class CiKConnectionError(CiKError):
    """Raised when the client cannot connect, or is used while closed or broken."""


class TransportError(CiKError):
    """Raised when a socket write or read fails part way through a frame."""


class PrematureEndOfStream(TransportError):
    """The peer closed the stream before the expected bytes arrived."""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(
            f"connection closed after {received} of {expected} bytes"
        )


class FramingError(CiKError):
    """Raised when the server reply does not look like a CiK frame."""


class ServerError(CiKError):
    """
    Raised when the server answers with a failure status.

    Attributes:
        status_code: The raw status word from the response header
    """

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        if message is None:
            message = f"CiK returned error code 0x{status_code:02X}"
        super().__init__(message)


class ServerInternalError(ServerError):
    """0x10 series: the server hit a bug or lost the connection."""


class ServerProtocolError(ServerError):
    """0x20 series: the server could not understand the frame we sent."""


class UnexpectedServerMessage(ServerError):
    """A 0x40 series status the current operation has no meaning for."""


class InvalidCleaningMode(CiKError, ValueError):
    """Raised locally when CLEAR is given a mode outside the known set."""


class InvalidListMode(CiKError, ValueError):
    """Raised locally when LIST is given a mode outside the known set."""
