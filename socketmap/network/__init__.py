"""Network layer for the socketmap server."""

from .tcp_server import SocketmapServer, run_server

__all__ = ["SocketmapServer", "run_server"]
