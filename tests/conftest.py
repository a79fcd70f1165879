"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
from contextlib import closing
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio

from socketmap.cache.store import LookupCache
from socketmap.directory.provider import DirectoryError, StaticDirectoryProvider
from socketmap.dispatch.dispatcher import RequestDispatcher
from socketmap.network.tcp_server import SocketmapServer
from socketmap.protocol.netstring import encode, read_frame
from socketmap.protocol.parser import ProtocolParser


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Test doubles
# ============================================================================

class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingProvider(StaticDirectoryProvider):
    """Static directory that records every lookup and can be made to raise `error`."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []
        self.fail = False
        self.error: Exception = DirectoryError("backend unavailable")

    def _record(self, method: str, key: str) -> None:
        self.calls.append((method, key))
        if self.fail:
            raise self.error

    def user_exists(self, email: str) -> bool:
        self._record("user_exists", email)
        return super().user_exists(email)

    def domain_exists(self, domain: str) -> bool:
        self._record("domain_exists", domain)
        return super().domain_exists(domain)

    def resolve_alias(self, address: str) -> Optional[str]:
        self._record("resolve_alias", address)
        return super().resolve_alias(address)


# ============================================================================
# Cache / Directory / Dispatcher Fixtures
# ============================================================================

@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at t=1000."""
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> LookupCache:
    """Create a fresh LookupCache driven by the fake clock."""
    return LookupCache(clock=clock)


@pytest.fixture
def provider() -> CountingProvider:
    """A directory with the built-in test data that counts lookups."""
    return CountingProvider()


@pytest.fixture
def dispatcher(provider: CountingProvider, cache: LookupCache) -> RequestDispatcher:
    """Create a dispatcher over the counting provider and fake-clock cache."""
    return RequestDispatcher(provider, cache=cache)


@pytest.fixture
def parser() -> ProtocolParser:
    """Create a ProtocolParser instance."""
    return ProtocolParser()


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


async def _run_server(srv: SocketmapServer) -> AsyncGenerator[SocketmapServer, None]:
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
async def server(server_port: int, provider: CountingProvider) -> AsyncGenerator[SocketmapServer, None]:
    """
    Create and start a server instance for testing.

    This fixture:
    1. Creates a SocketmapServer on a random free port
    2. Starts it in a background task
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv = SocketmapServer(host='127.0.0.1', port=server_port, provider=provider)
    async for running in _run_server(srv):
        yield running


@pytest_asyncio.fixture
async def impatient_server(server_port: int, provider: CountingProvider) -> AsyncGenerator[SocketmapServer, None]:
    """A server with a 0.3s read timeout for idle-connection tests."""
    srv = SocketmapServer(
        host='127.0.0.1',
        port=server_port,
        provider=provider,
        read_timeout=0.3,
    )
    async for running in _run_server(srv):
        yield running


@pytest_asyncio.fixture
async def stalled_writer_server(server_port: int, provider: CountingProvider) -> AsyncGenerator[SocketmapServer, None]:
    """A server with a 0.3s write timeout for clients that stop reading."""
    srv = SocketmapServer(
        host='127.0.0.1',
        port=server_port,
        provider=provider,
        write_timeout=0.3,
    )
    async for running in _run_server(srv):
        yield running


# ============================================================================
# Client Fixtures
# ============================================================================

class AsyncClient:
    """
    Helper class for testing server interactions.

    Sends requests as netstrings and reads netstring replies.

    Usage:
        async with AsyncClient('127.0.0.1', 9100) as client:
            response = await client.lookup("user-exists admin@example.com")
            assert response == "OK admin@example.com"
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None

    async def connect(self) -> None:
        """Establish connection to server."""
        self.reader, self.writer = await asyncio.open_connection(
            self.host, self.port
        )

    async def disconnect(self) -> None:
        """Close connection to server."""
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except ConnectionError:
                pass

    async def send_raw(self, data: bytes) -> None:
        """Write bytes as-is, without framing."""
        self.writer.write(data)
        await self.writer.drain()

    async def lookup(self, request: str) -> str:
        """
        Send a request and receive the reply.

        Args:
            request: Request text, e.g. "virtual-domains example.com"

        Returns:
            Reply text with the netstring framing removed
        """
        await self.send_raw(encode(request.encode()))
        payload = await asyncio.wait_for(read_frame(self.reader), timeout=2)
        assert payload is not None, "server closed the connection"
        return payload.decode()

    async def is_closed_by_server(self, timeout: float = 2.0) -> bool:
        """Return True once the server has closed its end."""
        data = await asyncio.wait_for(self.reader.read(), timeout=timeout)
        return data == b""

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


@pytest.fixture
def client_factory(server_port: int):
    """
    Factory fixture to create test clients.

    Usage:
        async def test_something(server, client_factory):
            async with client_factory() as client:
                response = await client.lookup("virtual-domains example.com")
    """
    def factory() -> AsyncClient:
        return AsyncClient('127.0.0.1', server_port)
    return factory


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
