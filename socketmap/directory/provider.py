"""
Directory Provider Module

The directory is the authoritative source for the lookup tables. The
server only talks to it through the DirectoryProvider interface, so a
database or IdP backend can replace the static provider without touching
the protocol code.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)

# Test data served when no directory file is configured
DEFAULT_USERS = (
    "test@example.com",
    "user@example.com",
    "admin@example.com",
    "postmaster@example.com",
)
DEFAULT_USER_DOMAINS = ("example.com", "test.com")
DEFAULT_DOMAINS = ("example.com", "test.com", "localhost")
DEFAULT_ALIASES = {
    "postmaster@example.com": "admin@example.com",
    "abuse@example.com": "admin@example.com",
    "hostmaster@example.com": "admin@example.com",
    "webmaster@example.com": "admin@example.com",
    "info@example.com": "admin@example.com",
    "support@test.com": "help@test.com",
}


class DirectoryError(Exception):
    """Raised when the directory cannot answer a lookup."""


class DirectoryProvider(ABC):
    """
    Interface to the backing user/domain/alias directory.

    Implementations may block; the dispatcher runs them off the event
    loop. Failures must be raised as DirectoryError.
    """

    @abstractmethod
    def user_exists(self, email: str) -> bool:
        """Return True if a mailbox exists for the address."""

    @abstractmethod
    def domain_exists(self, domain: str) -> bool:
        """Return True if the domain is hosted here."""

    @abstractmethod
    def resolve_alias(self, address: str) -> Optional[str]:
        """Return the alias destination, or None if the address is not an alias."""


class StaticDirectoryProvider(DirectoryProvider):
    """
    In-memory directory. All comparisons are case-insensitive.

    Attributes:
        users: Addresses that exist individually
        user_domains: Domains where every address exists
        domains: Hosted virtual domains
        aliases: Alias address -> destination
    """

    def __init__(
            self,
            users: Iterable[str] = DEFAULT_USERS,
            user_domains: Iterable[str] = DEFAULT_USER_DOMAINS,
            domains: Iterable[str] = DEFAULT_DOMAINS,
            aliases: Dict[str, str] = None,
    ):
        if aliases is None:
            aliases = DEFAULT_ALIASES
        self.users = {u.lower() for u in users}
        self.user_domains = {d.lower() for d in user_domains}
        self.domains = {d.lower() for d in domains}
        self.aliases = {src.lower(): dest for src, dest in aliases.items()}

    @classmethod
    def from_file(cls, path: str) -> "StaticDirectoryProvider":
        """
        Load a directory from a JSON file.

        Expected format (every key optional, missing keys mean empty):
            {
                "users": ["admin@example.com"],
                "user_domains": ["example.com"],
                "domains": ["example.com"],
                "aliases": {"postmaster@example.com": "admin@example.com"}
            }

        Raises:
            DirectoryError: If the file cannot be read or parsed
        """
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise DirectoryError(f"cannot load directory file {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise DirectoryError(f"directory file {path} must contain a JSON object")

        aliases = data.get("aliases", {})
        if not isinstance(aliases, dict):
            raise DirectoryError(f"'aliases' in {path} must be an object")

        provider = cls(
            users=data.get("users", []),
            user_domains=data.get("user_domains", []),
            domains=data.get("domains", []),
            aliases=aliases,
        )
        logger.info(
            f"Loaded directory from {path}: {len(provider.users)} users, "
            f"{len(provider.domains)} domains, {len(provider.aliases)} aliases"
        )
        return provider

    def user_exists(self, email: str) -> bool:
        email = email.lower()
        if email in self.users:
            return True
        _, at, domain = email.rpartition("@")
        return bool(at) and domain in self.user_domains

    def domain_exists(self, domain: str) -> bool:
        return domain.lower() in self.domains

    def resolve_alias(self, address: str) -> Optional[str]:
        return self.aliases.get(address.lower())
