"""Configuration for the socketmap server."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
