"""
CiK Protocol Client

Synchronous client for a CiK cache server. One client owns one TCP
connection and runs one request at a time:

    IDLE -> SENDING -> AWAITING_HEADER -> AWAITING_PAYLOAD -> COMPLETE | ERROR

There is no internal locking. Share a client between threads only
behind your own lock, or give every thread its own client.

Usage:
    with CiKClient("127.0.0.1", 5555) as client:
        client.set("min nyckel", "test value", ttl=10)
        client.get("min nyckel")  # b'test value'
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional

from .config.settings import settings
from .errors import (
    CiKConnectionError,
    FramingError,
    ServerError,
    ServerInternalError,
    ServerProtocolError,
    TransportError,
    UnexpectedServerMessage,
)
from .network.transport import Transport
from .protocol.commands import (
    CommandType,
    EntryInfo,
    Outcome,
    Reply,
    StatusCode,
)
from .protocol.decoder import ResponseDecoder, decode_entry_info, decode_item_stream
from .protocol.encoder import MessageEncoder
from .protocol.keys import BytesLike

logger = logging.getLogger(__name__)

# Default for io_timeout: take CIK_IO_TIMEOUT. An explicit None blocks forever.
_FROM_SETTINGS = object()

# Client messages that mean "no such entry" for GET
_MISS_STATUSES = (StatusCode.NOT_FOUND, StatusCode.EXPIRED)


class CallState(Enum):
    """Where the current (or last) request is in its round trip."""
    IDLE = "idle"
    SENDING = "sending"
    AWAITING_HEADER = "awaiting_header"
    AWAITING_PAYLOAD = "awaiting_payload"
    COMPLETE = "complete"
    ERROR = "error"


class CiKClient:
    """
    Typed GET / SET / DELETE / CLEAR / LIST / INFO operations.

    Misses and no-ops come back as ordinary values (None, False, True for
    an idempotent delete). Transport, framing and server errors are raised.

    Attributes:
        host: Server host
        port: Server port
        connect_timeout: Seconds allowed for the TCP handshake
        io_timeout: Seconds a single socket call may block (None = forever)
        state: CallState of the current or last request
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            connect_timeout: float = None,
            io_timeout: Optional[float] = _FROM_SETTINGS,
            transport: Transport = None,
    ):
        """
        Initialize the client. No connection is made until connect().

        Args:
            host: Server host (default from settings)
            port: Server port (default from settings)
            connect_timeout: Connect timeout (default from settings)
            io_timeout: Per send/recv timeout (default from settings;
                pass None explicitly for fully blocking I/O)
            transport: An already connected Transport to use instead
        """
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.connect_timeout = (
            connect_timeout if connect_timeout is not None else settings.CONNECT_TIMEOUT
        )
        self.io_timeout = settings.IO_TIMEOUT if io_timeout is _FROM_SETTINGS else io_timeout
        self.encoder = MessageEncoder()
        self.state = CallState.IDLE

        self._transport: Optional[Transport] = None
        self._decoder: Optional[ResponseDecoder] = None
        self._broken = False
        if transport is not None:
            self._attach(transport)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> "CiKClient":
        """Open the connection if it is not open yet."""
        if self._transport is None:
            self._attach(Transport.open(
                self.host,
                self.port,
                connect_timeout=self.connect_timeout,
                io_timeout=self.io_timeout,
            ))
        return self

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self._transport is not None:
            self._transport.close()
            logger.debug(f"Closed connection to {self.host}:{self.port}")
        self._transport = None
        self._decoder = None
        self._broken = False
        self.state = CallState.IDLE

    @property
    def connected(self) -> bool:
        return self._transport is not None and not self._transport.closed

    @property
    def broken(self) -> bool:
        """True after a fault that left the stream in an unknown position."""
        return self._broken

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _attach(self, transport: Transport) -> None:
        self._transport = transport
        self._decoder = ResponseDecoder(transport)
        self._broken = False
        self.state = CallState.IDLE

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get(self, key: BytesLike, ignore_expiry: bool = False) -> Optional[bytes]:
        """
        Fetch the value stored under key.

        Args:
            key: Entry key
            ignore_expiry: Return the value even if its TTL has passed

        Returns:
            The value bytes (b"" for an empty value), or None on a miss
            (not found or expired).
        """
        reply = self.execute(CommandType.GET, self.encoder.encode_get(key, ignore_expiry))
        if reply.is_ok:
            return reply.payload
        if reply.is_miss and reply.status_code in _MISS_STATUSES:
            return None
        raise self._fault(CommandType.GET, reply)

    def set(
            self,
            key: BytesLike,
            value: BytesLike,
            tags: Optional[Iterable[BytesLike]] = None,
            ttl: Optional[int] = None,
    ) -> bool:
        """
        Store value under key.

        Args:
            key: Entry key
            value: Entry value
            tags: Tags for bulk invalidation
            ttl: Lifetime in seconds, None for the server default

        Returns:
            True if stored, False if the server declined (e.g. out of memory).
        """
        frame = self.encoder.encode_set(key, value, tags, ttl)
        reply = self.execute(CommandType.SET, frame)
        if reply.is_ok:
            if reply.payload:
                logger.warning(
                    f"SET answered with unexpected {len(reply.payload)} byte payload"
                )
                return False
            return True
        if reply.is_miss:
            logger.debug(f"SET declined: {StatusCode.describe(reply.status_code)}")
            return False
        raise self._fault(CommandType.SET, reply)

    def delete(self, key: BytesLike) -> bool:
        """
        Remove key. Removing an absent key counts as success.

        Returns:
            True if the key is gone, False for any other client message.
        """
        reply = self.execute(CommandType.DELETE, self.encoder.encode_delete(key))
        if reply.is_ok:
            return True
        if reply.is_miss:
            return reply.status_code == StatusCode.NOT_FOUND
        raise self._fault(CommandType.DELETE, reply)

    def clear(self, mode="all", tags: Optional[Iterable[BytesLike]] = None) -> bool:
        """
        Remove entries selected by a cleaning mode.

        Args:
            mode: A CleaningMode, its code, or its name
            tags: Tags used by the tag matching modes

        Raises:
            InvalidCleaningMode: Before any I/O, if mode is not recognized
        """
        frame = self.encoder.encode_clear(mode, tags)
        reply = self.execute(CommandType.CLEAR, frame)
        if reply.is_ok:
            return True
        if reply.is_miss:
            return False
        raise self._fault(CommandType.CLEAR, reply)

    def list(self, mode="keys", tags: Optional[Iterable[BytesLike]] = None) -> List[bytes]:
        """
        List keys or tags selected by a list mode.

        Raises:
            InvalidListMode: Before any I/O, if mode is not recognized
            UnexpectedServerMessage: If the listing does not fit the
                server's buffer (out of memory)
        """
        frame = self.encoder.encode_list(mode, tags)
        reply = self.execute(CommandType.LIST, frame)
        if reply.is_ok:
            return decode_item_stream(reply.payload)
        raise self._fault(CommandType.LIST, reply)

    def info(self, key: BytesLike) -> Optional[EntryInfo]:
        """
        Fetch expiry, modification time and tags of one entry.

        Returns:
            EntryInfo, or None if the key is not stored.
        """
        reply = self.execute(CommandType.INFO, self.encoder.encode_info(key))
        if reply.is_ok:
            return decode_entry_info(reply.payload)
        if reply.is_miss and reply.status_code == StatusCode.NOT_FOUND:
            return None
        raise self._fault(CommandType.INFO, reply)

    # ------------------------------------------------------------------
    # Round trip
    # ------------------------------------------------------------------

    def execute(self, command: CommandType, frame: bytes) -> Reply:
        """
        Send one encoded frame and read its reply.

        Returns:
            The decoded Reply; failure statuses are returned, not raised.

        Raises:
            CiKConnectionError: If the client is closed or broken
            TransportError: If the frame cannot be written or the reply read
            FramingError: If the reply is not a valid CiK frame
        """
        if self._transport is None:
            raise CiKConnectionError("client is not connected")
        if self._broken:
            raise CiKConnectionError(
                "connection is in an unknown state after an earlier error; reconnect"
            )

        logger.debug(f"{command.name}: sending {len(frame)} byte frame")
        try:
            self.state = CallState.SENDING
            self._transport.write_all(frame)

            self.state = CallState.AWAITING_HEADER
            header = self._decoder.read_header()

            if header.is_success and header.size_or_error:
                self.state = CallState.AWAITING_PAYLOAD
            reply = self._decoder.read_body(header)
        except (TransportError, FramingError):
            self.state = CallState.ERROR
            self._broken = True
            raise

        if reply.outcome is Outcome.FAULT:
            self.state = CallState.ERROR
            if reply.status_code & StatusCode.MASK_INTERNAL_ERROR:
                self._broken = True
        else:
            self.state = CallState.COMPLETE

        if reply.is_ok:
            logger.debug(f"{command.name}: ok, {len(reply.payload)} byte payload")
        return reply

    def _fault(self, command: CommandType, reply: Reply) -> ServerError:
        code = reply.status_code
        name = StatusCode.describe(code)
        message = f"{command.name} failed: CiK returned error code 0x{code:02X} ({name})"
        logger.error(message)

        if reply.outcome is Outcome.MISS:
            return UnexpectedServerMessage(code, message)
        if code & StatusCode.MASK_INTERNAL_ERROR:
            return ServerInternalError(code, message)
        if code & StatusCode.MASK_CLIENT_ERROR:
            return ServerProtocolError(code, message)
        return ServerError(code, message)
