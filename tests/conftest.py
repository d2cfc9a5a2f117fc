"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import struct
import pytest
import pytest_asyncio
from contextlib import closing
from typing import AsyncGenerator

from cik.client import CiKClient
from cik.network.transport import Transport
from cik.protocol.encoder import MessageEncoder
from tests.fake_server import FakeCiKServer


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


def success_reply(payload: bytes = b"") -> bytes:
    """Build a raw success response frame."""
    return b"CiKt" + struct.pack(">I", len(payload)) + payload


def failure_reply(code: int) -> bytes:
    """Build a raw failure response frame."""
    return b"CiKf" + struct.pack(">I", code)


# ============================================================================
# Fake socket
# ============================================================================

class FakeSocket:
    """
    Scripted stand-in for a connected socket.

    Args:
        incoming: Bytes the "server" will deliver to recv()
        send_limit: Max bytes accepted per send() call (None = all)
        send_results: Explicit per-call send() results; an int caps the
            bytes accepted, an exception is raised
        recv_sizes: Explicit per-call recv() sizes; an exception is raised
    """

    def __init__(self, incoming=b"", send_limit=None, send_results=None, recv_sizes=None):
        self.incoming = bytearray(incoming)
        self.send_limit = send_limit
        self.send_results = list(send_results or [])
        self.recv_sizes = list(recv_sizes or [])
        self.sent = bytearray()
        self.send_calls = 0
        self.recv_calls = 0
        self.closed = False

    def send(self, data) -> int:
        self.send_calls += 1
        data = bytes(data)
        if self.send_results:
            result = self.send_results.pop(0)
            if isinstance(result, BaseException):
                raise result
            accepted = min(result, len(data))
        elif self.send_limit is not None:
            accepted = min(self.send_limit, len(data))
        else:
            accepted = len(data)
        self.sent += data[:accepted]
        return accepted

    def recv(self, bufsize: int) -> bytes:
        self.recv_calls += 1
        size = bufsize
        if self.recv_sizes:
            result = self.recv_sizes.pop(0)
            if isinstance(result, BaseException):
                raise result
            size = min(result, bufsize)
        chunk = bytes(self.incoming[:size])
        del self.incoming[:size]
        return chunk

    def close(self) -> None:
        self.closed = True


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def encoder() -> MessageEncoder:
    """Create a MessageEncoder instance."""
    return MessageEncoder()


@pytest.fixture
def fake_client():
    """
    Factory for a client wired to a FakeSocket.

    Usage:
        def test_something(fake_client):
            client, sock = fake_client(incoming=success_reply(b"v"))
    """
    def factory(**kwargs):
        sock = FakeSocket(**kwargs)
        return CiKClient(transport=Transport(sock)), sock
    return factory


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(server_port: int) -> AsyncGenerator[FakeCiKServer, None]:
    """
    Create and start a fake CiK server for testing.

    This fixture:
    1. Creates a FakeCiKServer on a random free port
    2. Starts it in a background task
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv = FakeCiKServer(host='127.0.0.1', port=server_port)

    server_task = asyncio.create_task(srv.start())

    # Wait for server to be ready
    await asyncio.sleep(0.1)

    yield srv

    await srv.stop()
    server_task.cancel()
    try:
        await server_task
    except asyncio.CancelledError:
        pass


@pytest_asyncio.fixture
async def client(server: FakeCiKServer, server_port: int) -> AsyncGenerator[CiKClient, None]:
    """
    A CiKClient connected to the fake server.

    The client blocks, so tests call it through asyncio.to_thread()
    to keep the server's event loop running.
    """
    cik = CiKClient(host='127.0.0.1', port=server_port)
    await asyncio.to_thread(cik.connect)

    yield cik

    cik.close()


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
