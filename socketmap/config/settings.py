"""
Socketmap Configuration Settings

This module contains all configuration constants for the socketmap server.
Values can be overridden through SOCKETMAP_* environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class Settings:
    """Server configuration settings."""

    # Network settings
    HOST: str = os.environ.get("SOCKETMAP_HOST", "127.0.0.1")
    PORT: int = int(os.environ.get("SOCKETMAP_PORT", "9100"))

    # Connection settings
    READ_TIMEOUT: float = float(os.environ.get("SOCKETMAP_READ_TIMEOUT", "30"))
    WRITE_TIMEOUT: float = float(os.environ.get("SOCKETMAP_WRITE_TIMEOUT", "5"))
    READ_BUFFER_SIZE: int = 4096

    # Postfix socketmap limit for request and reply payloads
    MAX_FRAME_LENGTH: int = 100000

    # Cache TTLs in seconds, per lookup table
    USER_EXISTS_TTL: int = int(os.environ.get("SOCKETMAP_USER_TTL", "60"))
    VIRTUAL_DOMAINS_TTL: int = int(os.environ.get("SOCKETMAP_DOMAIN_TTL", "300"))
    VIRTUAL_ALIASES_TTL: int = int(os.environ.get("SOCKETMAP_ALIAS_TTL", "300"))

    # Directory data (JSON); the built-in test directory is used when unset
    DIRECTORY_FILE: Optional[str] = os.environ.get("SOCKETMAP_DIRECTORY_FILE") or None

    # Logging settings
    DEBUG: bool = os.environ.get("SOCKETMAP_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("SOCKETMAP_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
