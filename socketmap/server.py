#!/usr/bin/env python3
"""
Socketmap Server Entry Point

This is the main entry point for starting the socketmap lookup server.

Usage:
    python -m socketmap.server                        # Default settings (127.0.0.1:9100)
    python -m socketmap.server --port 9200            # Custom port
    python -m socketmap.server --host 0.0.0.0         # Custom host
    python -m socketmap.server --directory dir.json   # Load directory data from JSON
    python -m socketmap.server --debug                # Enable debug logging

Environment Variables:
    SOCKETMAP_HOST            - Server bind address
    SOCKETMAP_PORT            - Server port
    SOCKETMAP_READ_TIMEOUT    - Idle read timeout in seconds
    SOCKETMAP_WRITE_TIMEOUT   - Write timeout in seconds
    SOCKETMAP_USER_TTL        - user-exists cache TTL
    SOCKETMAP_DOMAIN_TTL      - virtual-domains cache TTL
    SOCKETMAP_ALIAS_TTL       - virtual-aliases cache TTL
    SOCKETMAP_DIRECTORY_FILE  - JSON directory file
    SOCKETMAP_DEBUG           - Enable debug mode (true/false)
    SOCKETMAP_LOG_LEVEL       - Log level when not in debug mode
"""

import argparse
import asyncio
import logging
import signal
import sys

from .cache.store import LookupCache
from .config.settings import settings
from .directory.provider import DirectoryError, StaticDirectoryProvider
from .dispatch.dispatcher import RequestDispatcher
from .network.tcp_server import SocketmapServer


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Socketmap lookup server for Postfix",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.HOST,
        help="Host address to bind to",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help="Port number to listen on",
    )

    parser.add_argument(
        "--directory",
        type=str,
        default=settings.DIRECTORY_FILE,
        help="JSON file with users, domains and aliases (built-in test data if omitted)",
    )

    parser.add_argument(
        "--read-timeout",
        type=float,
        default=settings.READ_TIMEOUT,
        help="Seconds to wait for a request before closing the connection",
    )

    parser.add_argument(
        "--write-timeout",
        type=float,
        default=settings.WRITE_TIMEOUT,
        help="Seconds to wait for a reply to be sent",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


def build_server(args: argparse.Namespace) -> SocketmapServer:
    """
    Wire the provider, cache and dispatcher into a server.

    Raises:
        DirectoryError: If the directory file cannot be loaded
    """
    if args.directory:
        provider = StaticDirectoryProvider.from_file(args.directory)
    else:
        provider = StaticDirectoryProvider()

    dispatcher = RequestDispatcher(provider, cache=LookupCache())
    return SocketmapServer(
        host=args.host,
        port=args.port,
        dispatcher=dispatcher,
        read_timeout=args.read_timeout,
        write_timeout=args.write_timeout,
    )


def main(argv=None) -> None:
    """Main entry point for the server."""
    args = parse_args(argv)

    # Setup logging
    setup_logging(debug=args.debug)
    logger = logging.getLogger(__name__)

    try:
        server = build_server(args)
    except DirectoryError as e:
        logger.error(f"Cannot start: {e}")
        sys.exit(1)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    async def shutdown(sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        logger.info(f"Received signal {sig.name}, initiating shutdown...")
        await server.stop()

    # Register signal handlers (Unix only)
    if sys.platform != 'win32':
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s=sig: asyncio.create_task(shutdown(s))
            )

    # Log startup info
    logger.info("Starting socketmap server")
    logger.info(f"  Bind address: {args.host}:{args.port}")
    logger.info(f"  Directory: {args.directory or 'built-in test data'}")
    logger.info(f"  Tables: {', '.join(server.dispatcher.tables)}")
    logger.info(f"  Read timeout: {args.read_timeout}s, write timeout: {args.write_timeout}s")
    logger.info(f"  Debug: {args.debug}")

    # Run the server
    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        loop.run_until_complete(server.stop())
    except OSError as e:
        logger.error(f"Failed to bind to {args.host}:{args.port}: {e}")
        raise
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()
        logger.info("Server shutdown complete")


if __name__ == "__main__":
    main()
