#!/usr/bin/env python3
"""
Interactive Test Client for the socketmap server

A simple command-line client for manually testing lookups the way Postfix
sends them.

Usage:
    python scripts/client.py                  # Connect to 127.0.0.1:9100
    python scripts/client.py --host 1.2.3.4   # Connect to specific host
    python scripts/client.py --port 9200      # Connect to specific port
    python scripts/client.py user-exists admin@example.com   # One-shot lookup

Requests:
    <table> <key>     e.g. user-exists admin@example.com
    help              - Show this help
    exit              - Exit client
"""

import argparse
import socket
import sys

from socketmap.protocol.netstring import FramingError, decode, encode

# Enable command history with arrow keys (works on Unix systems)
try:
    import readline
except ImportError:
    pass  # readline not available on Windows by default


class SocketmapClient:
    """Simple blocking netstring client."""

    def __init__(self, host: str, port: int, timeout: float = 5.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.socket = None
        self._stream = None

    def connect(self) -> bool:
        """Connect to the server."""
        try:
            self.socket = socket.create_connection((self.host, self.port), timeout=self.timeout)
            self._stream = self.socket.makefile("rb")
            return True
        except OSError as e:
            print(f"Connection error: {e}")
            return False

    def disconnect(self):
        """Disconnect from the server."""
        if self._stream:
            self._stream.close()
            self._stream = None
        if self.socket:
            self.socket.close()
            self.socket = None

    def lookup(self, request: str) -> str:
        """Send one request and return the reply text."""
        if not self.socket:
            return "ERROR: Not connected"

        try:
            self.socket.sendall(encode(request.encode("utf-8")))
            return decode(self._stream).decode("utf-8", errors="replace")
        except socket.timeout:
            return "ERROR: Request timed out"
        except EOFError:
            self.disconnect()
            return "ERROR: Connection closed by server"
        except (FramingError, OSError) as e:
            self.disconnect()
            return f"ERROR: {e}"

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


def print_help():
    """Print help message."""
    print("""
Socketmap Tables:
-----------------
  user-exists <address>      OK <address> if the mailbox exists
  virtual-domains <domain>   OK if the domain is hosted here
  virtual-aliases <address>  OK <destination> if the address is an alias

Client Commands:
----------------
  help                       Show this help message
  exit                       Exit the client
  reconnect                  Reconnect to the server
  status                     Show connection status

Examples:
---------
  user-exists admin@example.com
  virtual-domains example.com
  virtual-aliases postmaster@example.com
""")


def main():
    parser = argparse.ArgumentParser(
        description="Interactive test client for the socketmap server"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Server host (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=9100,
        help="Server port (default: 9100)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Socket timeout in seconds (default: 5.0)"
    )
    parser.add_argument(
        "request",
        nargs="*",
        help="Run a single '<table> <key>' lookup and exit"
    )

    args = parser.parse_args()
    client = SocketmapClient(args.host, args.port, args.timeout)

    if args.request:
        with client:
            if not client.socket:
                sys.exit(1)
            print(client.lookup(" ".join(args.request)))
        return

    print("Socketmap Client")
    print("================")
    print(f"Connecting to {args.host}:{args.port}...")

    if not client.connect():
        print("Failed to connect. Is the server running?")
        print(f"  Try: python -m socketmap.server --port {args.port}")
        sys.exit(1)

    print("Connected! Type 'help' for commands.\n")

    try:
        while True:
            try:
                command = input(">>> ").strip()

                if not command:
                    continue

                lower_cmd = command.lower()

                if lower_cmd == "help":
                    print_help()
                    continue

                if lower_cmd in ("exit", "quit"):
                    print("Goodbye!")
                    break

                if lower_cmd == "reconnect":
                    client.disconnect()
                    if client.connect():
                        print("Reconnected!")
                    else:
                        print("Reconnection failed.")
                    continue

                if lower_cmd == "status":
                    status = "Connected" if client.socket else "Disconnected"
                    print(f"Status: {status}")
                    print(f"Server: {args.host}:{args.port}")
                    continue

                print(client.lookup(command))

            except EOFError:
                print("\nGoodbye!")
                break

    except KeyboardInterrupt:
        print("\n\nInterrupted. Goodbye!")
    finally:
        client.disconnect()


if __name__ == "__main__":
    main()
