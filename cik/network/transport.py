"""
Transport I/O Module

Reliable write-all / read-exact primitives over one blocking TCP socket.

A single send() or recv() may move fewer bytes than asked for. The
loops here keep issuing calls for the remaining suffix until the whole
frame is written or exactly the requested number of bytes is read.
"""

import logging
import socket
from typing import Optional

from ..config.settings import settings
from ..errors import CiKConnectionError, PrematureEndOfStream, TransportError

logger = logging.getLogger(__name__)


class Transport:
    """
    Owns one connected stream socket.

    The socket only needs send(), recv() and close(), which lets tests
    hand in scripted fakes.

    Attributes:
        sock: The underlying socket (None once closed)
        read_chunk_size: Upper bound for a single recv() call
    """

    def __init__(self, sock, read_chunk_size: int = None):
        self.sock = sock
        self.read_chunk_size = read_chunk_size or settings.READ_CHUNK_SIZE

    @classmethod
    def open(
            cls,
            host: str,
            port: int,
            connect_timeout: float = None,
            io_timeout: Optional[float] = None,
    ) -> "Transport":
        """
        Connect to host:port with Nagle's algorithm disabled.

        Args:
            host: Server host
            port: Server port
            connect_timeout: Seconds to wait for the TCP handshake
            io_timeout: Seconds a single send/recv may block, None for no limit

        Raises:
            CiKConnectionError: If the connection cannot be established
        """
        if connect_timeout is None:
            connect_timeout = settings.CONNECT_TIMEOUT

        try:
            sock = socket.create_connection((host, port), timeout=connect_timeout)
        except OSError as exc:
            raise CiKConnectionError(f"Failed to connect to {host}:{port}: {exc}") from exc

        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.settimeout(io_timeout)
        except OSError as exc:
            sock.close()
            raise CiKConnectionError(f"Failed to configure socket: {exc}") from exc

        logger.debug(f"Connected to {host}:{port}")
        return cls(sock)

    @property
    def closed(self) -> bool:
        return self.sock is None

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self.sock is None:
            return
        sock, self.sock = self.sock, None
        try:
            sock.close()
        except OSError as exc:
            logger.debug(f"Error while closing socket: {exc}")

    def write_all(self, data: bytes) -> None:
        """
        Write the whole buffer, one send() per remaining suffix.

        Raises:
            TransportError: If a send() fails or two sends in a row
                transmit nothing
        """
        sock = self._require_socket()
        view = memoryview(data)
        total = len(view)
        written = 0
        last_failed = False

        while written < total:
            try:
                sent = sock.send(view[written:])
            except socket.timeout as exc:
                raise TransportError(f"write timed out after {written} of {total} bytes") from exc
            except OSError as exc:
                raise TransportError(f"write failed after {written} of {total} bytes: {exc}") from exc

            if sent == 0:
                if last_failed:
                    raise TransportError(
                        f"connection broken: no progress after {written} of {total} bytes"
                    )
                last_failed = True
                continue

            last_failed = False
            written += sent

    def read_exact(self, size: int) -> bytes:
        """
        Read exactly `size` bytes, concatenating partial reads in order.

        Raises:
            PrematureEndOfStream: If the peer closes before `size` bytes arrive
            TransportError: If a recv() fails
        """
        sock = self._require_socket()
        buffer = bytearray()

        while len(buffer) < size:
            want = min(size - len(buffer), self.read_chunk_size)
            try:
                chunk = sock.recv(want)
            except socket.timeout as exc:
                raise TransportError(f"read timed out after {len(buffer)} of {size} bytes") from exc
            except OSError as exc:
                raise TransportError(f"read failed after {len(buffer)} of {size} bytes: {exc}") from exc

            if not chunk:
                raise PrematureEndOfStream(size, len(buffer))
            buffer += chunk

        return bytes(buffer)

    def _require_socket(self):
        if self.sock is None:
            raise CiKConnectionError("transport is closed")
        return self.sock
