"""
Async TCP Server Module

This module implements the asynchronous socketmap server.

Each accepted connection runs in its own coroutine:
    read netstring -> dispatch -> write netstring -> read netstring ...

The connection is closed when the peer disconnects, when no complete
frame arrives within the read timeout, when a reply cannot be written
within the write timeout, or on the first malformed frame.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional

from ..cache.store import LookupCache
from ..config.settings import settings
from ..directory.provider import DirectoryProvider, StaticDirectoryProvider
from ..dispatch.dispatcher import RequestDispatcher
from ..protocol.commands import Response
from ..protocol.netstring import FramingError, encode, read_frame
from ..protocol.parser import ProtocolParser

logger = logging.getLogger(__name__)


class SocketmapServer:
    """
    Asynchronous TCP server answering Postfix socketmap lookups.

    Every client connection is handled in a separate coroutine, so a slow
    or stalled client never holds up the others. All connections share
    one LookupCache through the RequestDispatcher.

    Usage:
        server = SocketmapServer(host='127.0.0.1', port=9100)
        await server.start()  # Runs forever

    Attributes:
        host: Server bind address
        port: Server port number
        dispatcher: The RequestDispatcher shared by all connections
        read_timeout: Seconds to wait for a complete request frame
        write_timeout: Seconds to wait for a reply to be flushed
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            provider: DirectoryProvider = None,
            cache: LookupCache = None,
            dispatcher: RequestDispatcher = None,
            read_timeout: float = None,
            write_timeout: float = None,
    ):
        """
        Initialize the server.

        Args:
            host: Bind address (default from settings)
            port: Port number (default from settings)
            provider: Directory backend (default: built-in static directory)
            cache: LookupCache instance (creates new one if not provided)
            dispatcher: Prebuilt dispatcher; overrides provider and cache
            read_timeout: Idle read timeout in seconds (default from settings)
            write_timeout: Write timeout in seconds (default from settings)
        """
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        if dispatcher is None:
            dispatcher = RequestDispatcher(
                provider if provider is not None else StaticDirectoryProvider(),
                cache=cache,
            )
        self.dispatcher = dispatcher
        self.parser = ProtocolParser()
        self.read_timeout = read_timeout if read_timeout is not None else settings.READ_TIMEOUT
        self.write_timeout = write_timeout if write_timeout is not None else settings.WRITE_TIMEOUT

        # Server state
        self._server: Optional[asyncio.Server] = None
        self._running = False
        self._connection_count = 0
        self._active_connections = 0
        self._total_requests = 0
        self._framing_errors = 0
        self._timeouts = 0

    async def handle_client(
            self,
            reader: StreamReader,
            writer: StreamWriter
    ) -> None:
        """
        Handle a single client connection.

        Args:
            reader: StreamReader for reading from the client
            writer: StreamWriter for writing to the client

        Protocol flow:
            1. Wait (bounded by read_timeout) for one netstring
            2. Skip empty frames without replying
            3. Dispatch the request text
            4. Write the netstring reply (bounded by write_timeout)
            5. Repeat until the client disconnects or an error occurs
        """
        addr = writer.get_extra_info('peername')
        self._connection_count += 1
        self._active_connections += 1
        logger.debug(f"Client connected: {addr}")

        try:
            while True:
                try:
                    payload = await asyncio.wait_for(
                        read_frame(reader), timeout=self.read_timeout
                    )
                except asyncio.TimeoutError:
                    self._timeouts += 1
                    logger.debug(f"Read timeout after {self.read_timeout}s: {addr}")
                    break
                except FramingError as exc:
                    self._framing_errors += 1
                    logger.warning(f"Malformed netstring from {addr}: {exc}")
                    break

                if payload is None:
                    logger.debug(f"Client disconnected: {addr}")
                    break

                if not payload:
                    logger.debug(f"Empty request from {addr}, skipping")
                    continue

                self._total_requests += 1
                try:
                    raw = payload.decode("utf-8")
                except UnicodeDecodeError:
                    response = Response.perm("invalid request encoding")
                else:
                    response = await self.dispatcher.dispatch(raw)

                writer.write(encode(self.parser.encode_response(response)))
                try:
                    await asyncio.wait_for(writer.drain(), timeout=self.write_timeout)
                except asyncio.TimeoutError:
                    self._timeouts += 1
                    logger.debug(f"Write timeout after {self.write_timeout}s: {addr}")
                    break

        except ConnectionError as exc:
            logger.debug(f"Connection lost: {addr}: {exc}")
        except Exception as exc:  # Log unexpected errors but keep server alive
            logger.exception(f"Error handling client {addr}: {exc}")
        finally:
            self._active_connections -= 1
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

    async def start(self) -> None:
        """
        Start the server and begin accepting connections.

        Runs until stop() is called or the task is cancelled.

        Example:
            server = SocketmapServer(port=9100)
            asyncio.run(server.start())
        """
        if self._running:
            return

        self._server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
            limit=settings.READ_BUFFER_SIZE,
        )
        self._running = True

        addrs = ', '.join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info(f"Serving on {addrs}")

        try:
            async with self._server:
                await self._server.serve_forever()
        except asyncio.CancelledError:
            # Expected during shutdown/fixture cleanup
            logger.debug("Server start cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        """
        Stop the server gracefully.

        Closes the listening socket; connections already open are left to
        finish or time out.
        """
        if self._server is None:
            return

        self._server.close()
        try:
            await self._server.wait_closed()
        finally:
            self._server = None
            self._running = False

    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running

    def get_stats(self) -> dict:
        """
        Get server statistics.

        Returns:
            Dictionary with connection and request counters plus the
            lookup cache statistics.
        """
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "total_connections": self._connection_count,
            "active_connections": self._active_connections,
            "total_requests": self._total_requests,
            "framing_errors": self._framing_errors,
            "timeouts": self._timeouts,
            "cache_stats": self.dispatcher.cache.get_stats(),
        }


async def run_server(host: str = None, port: int = None, provider: DirectoryProvider = None) -> None:
    """
    Convenience function to create and run the server.

    Usage:
        asyncio.run(run_server(port=9100))
    """
    server = SocketmapServer(host=host, port=port, provider=provider)

    try:
        await server.start()
    except asyncio.CancelledError:
        logger.info("Server shutdown requested")
    finally:
        await server.stop()
