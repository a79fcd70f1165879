"""Directory providers for the socketmap server."""

from .provider import DirectoryError, DirectoryProvider, StaticDirectoryProvider

__all__ = ["DirectoryError", "DirectoryProvider", "StaticDirectoryProvider"]
