"""
Response Decoder

Reads one reply off the transport: the fixed 8-byte header first, then,
for successful replies, exactly the number of payload bytes it announces.
Failure replies carry no payload; their status word is classified by
mask into a client message (MISS) or a server fault (FAULT).
"""

import logging
import struct
from typing import List

from ..errors import FramingError, PrematureEndOfStream
from .commands import (
    CONTROL_BYTES,
    RESPONSE_HEADER_SIZE,
    EntryInfo,
    Outcome,
    Reply,
    ResponseHeader,
    StatusClass,
    StatusCode,
)

logger = logging.getLogger(__name__)

RESPONSE_HEADER = struct.Struct(">3scI")
INFO_HEADER = struct.Struct(">QQ")

# Values the server uses for "never expires" in INFO replies
_NO_EXPIRY = (0, 0xFFFFFFFFFFFFFFFF)


def classify_status(status_code: int) -> Outcome:
    """
    Map a failure status word to an outcome.

    Internal (0x10) and protocol (0x20) errors are faults, client
    messages (0x40: not found, expired, out of memory) are misses.
    Codes outside every mask are treated as faults.
    """
    if status_code & StatusCode.MASK_INTERNAL_ERROR:
        return Outcome.FAULT
    if status_code & StatusCode.MASK_CLIENT_ERROR:
        return Outcome.FAULT
    if status_code & StatusCode.MASK_CLIENT_MESSAGE:
        return Outcome.MISS
    return Outcome.FAULT


def parse_header(data: bytes) -> ResponseHeader:
    """
    Parse and validate an 8-byte response header.

    Raises:
        FramingError: On wrong size, wrong control bytes or an unknown
            status byte
    """
    if len(data) != RESPONSE_HEADER_SIZE:
        raise FramingError(
            f"Failed to parse CiK response header: 0x{data.hex().upper()}"
        )

    control, status, size_or_error = RESPONSE_HEADER.unpack(data)
    try:
        status_class = StatusClass(status)
    except ValueError:
        status_class = None

    if control != CONTROL_BYTES or status_class is None:
        raise FramingError(
            f"Failed to parse CiK response header: 0x{data.hex().upper()}"
        )
    return ResponseHeader(status=status_class, size_or_error=size_or_error)


def decode_item_stream(payload: bytes) -> List[bytes]:
    """
    Decode a stream of one-byte length prefixed items (LIST, INFO tags).

    Raises:
        FramingError: If an item runs past the end of the payload
    """
    items = []
    pos = 0
    end = len(payload)
    while pos < end:
        size = payload[pos]
        pos += 1
        if pos + size > end:
            raise FramingError(
                f"item of {size} bytes at offset {pos - 1} overruns payload of {end} bytes"
            )
        items.append(bytes(payload[pos:pos + size]))
        pos += size
    return items


def decode_entry_info(payload: bytes) -> EntryInfo:
    """
    Decode an INFO payload: expires(u64) mtime(u64) followed by tags.

    Raises:
        FramingError: If the payload is shorter than 16 bytes or the
            tag stream is malformed
    """
    if len(payload) < INFO_HEADER.size:
        raise FramingError(f"INFO payload too short: {len(payload)} bytes")

    expires, mtime = INFO_HEADER.unpack_from(payload)
    tags = decode_item_stream(payload[INFO_HEADER.size:])
    return EntryInfo(
        expires=None if expires in _NO_EXPIRY else expires,
        mtime=mtime,
        tags=tags,
    )


class ResponseDecoder:
    """
    Reads and decodes replies from a transport.

    Args:
        transport: Anything with a read_exact(n) -> bytes method
    """

    def __init__(self, transport):
        self.transport = transport

    def read_header(self) -> ResponseHeader:
        """Read exactly one response header off the transport."""
        try:
            data = self.transport.read_exact(RESPONSE_HEADER_SIZE)
        except PrematureEndOfStream as exc:
            raise FramingError(
                f"truncated CiK response header ({exc.received} of {exc.expected} bytes)"
            ) from exc
        return parse_header(data)

    def read_reply(self) -> Reply:
        """
        Read one complete reply.

        Returns:
            Reply.ok(payload) for success (payload may be b""),
            Reply.miss(code) for 0x40 series statuses,
            Reply.fault(code) for everything else.
        """
        return self.read_body(self.read_header())

    def read_body(self, header: ResponseHeader) -> Reply:
        """Turn an already read header into a Reply, draining any payload."""
        if not header.is_success:
            code = header.size_or_error
            outcome = classify_status(code)
            logger.debug(
                f"Failure reply 0x{code:02X} ({StatusCode.describe(code)}): {outcome.value}"
            )
            if outcome is Outcome.MISS:
                return Reply.miss(code)
            return Reply.fault(code)

        size = header.size_or_error
        if size == 0:
            return Reply.ok(b"")
        return Reply.ok(self.transport.read_exact(size))
