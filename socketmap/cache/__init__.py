"""Cache module for the socketmap server."""

from .store import CacheEntry, CachedResult, LookupCache

__all__ = ["CacheEntry", "CachedResult", "LookupCache"]
