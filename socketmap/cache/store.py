"""
Lookup Cache Module

This module implements the time-bounded cache that sits in front of the
directory provider. It is shared by every client connection.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedResult:
    """
    The answer of one directory lookup.

    Attributes:
        exists: Whether the directory knows the key
        destination: Resolved value (alias tables only), None otherwise
    """
    exists: bool
    destination: Optional[str] = None

    @classmethod
    def present(cls, destination: Optional[str] = None) -> "CachedResult":
        return cls(exists=True, destination=destination)

    @classmethod
    def absent(cls) -> "CachedResult":
        return cls(exists=False)


@dataclass(frozen=True)
class CacheEntry:
    """
    A cached result together with its expiry.

    Attributes:
        key: The lookup key the result belongs to
        result: The cached answer
        expires_at: Clock reading after which the entry is stale
    """
    key: str
    result: CachedResult
    expires_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


class LookupCache:
    """
    Thread-safe TTL cache keyed by (namespace, key).

    Entries are immutable and replaced wholesale on every put(), so a
    reader sees either the old entry or the new one, never a mix.

    Expiry is lazy: get() ignores stale entries and leaves them in place
    until the next put() for the same key overwrites them. Nothing is
    ever deleted, and the map is not bounded.

    The lock only guards the dictionary. Callers must do their directory
    lookups outside of get()/put(); the cache never calls out.

    Usage:
        cache = LookupCache()
        entry = cache.get("user", "test@example.com")
        if entry is None:
            entry = cache.put("user", "test@example.com", CachedResult.present(), ttl=60)

    Attributes:
        clock: Monotonic time source, injectable for tests
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._entries: Dict[Tuple[str, str], CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, namespace: str, key: str) -> Optional[CacheEntry]:
        """
        Return the live entry for (namespace, key).

        Returns:
            The CacheEntry if present and not expired, None otherwise
        """
        now = self.clock()
        with self._lock:
            entry = self._entries.get((namespace, key))
            if entry is not None and entry.is_live(now):
                self._hits += 1
                return entry
            self._misses += 1

        logger.debug(f"Cache miss: {namespace}:{key}")
        return None

    def put(self, namespace: str, key: str, result: CachedResult, ttl: float) -> CacheEntry:
        """
        Store a fresh result, replacing any previous entry for the key.

        Args:
            namespace: Table namespace (e.g. 'user', 'domain', 'alias')
            key: The lookup key
            result: The directory answer
            ttl: Seconds the answer stays valid

        Returns:
            The stored CacheEntry
        """
        entry = CacheEntry(key=key, result=result, expires_at=self.clock() + ttl)
        with self._lock:
            self._entries[(namespace, key)] = entry
        return entry

    def size(self) -> int:
        """
        Number of stored entries.

        Note: This includes expired entries that have not been overwritten.
        """
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the cache.

        Returns:
            Dictionary containing:
            - total_entries: Entries currently stored
            - expired_entries: Stored entries that are stale
            - live_entries: Stored entries still valid
            - hits / misses: get() outcomes since startup
        """
        now = self.clock()
        with self._lock:
            total = len(self._entries)
            expired = sum(1 for entry in self._entries.values() if not entry.is_live(now))
            hits, misses = self._hits, self._misses

        return {
            "total_entries": total,
            "expired_entries": expired,
            "live_entries": total - expired,
            "hits": hits,
            "misses": misses,
        }
