"""
Tests for the LookupCache

These tests verify:
- get()/put() keyed by (namespace, key)
- Lazy TTL expiry driven by an injected clock
- Thread safety: no torn entries under concurrent get/put

Run with: python -m pytest tests/test_cache.py -v
"""

import threading
import time

import pytest

from socketmap.cache.store import CacheEntry, CachedResult, LookupCache


class TestCachedResult:
    """Test CachedResult constructors."""

    def test_present_without_destination(self):
        result = CachedResult.present()
        assert result.exists is True
        assert result.destination is None

    def test_present_with_destination(self):
        result = CachedResult.present("admin@example.com")
        assert result == CachedResult(exists=True, destination="admin@example.com")

    def test_absent(self):
        result = CachedResult.absent()
        assert result.exists is False
        assert result.destination is None


class TestLookupCacheBasic:
    """Test get() and put()."""

    def test_get_missing(self, cache: LookupCache):
        assert cache.get("user", "nobody@example.com") is None

    def test_put_then_get(self, cache: LookupCache, clock):
        stored = cache.put("user", "test@example.com", CachedResult.present(), ttl=60)

        entry = cache.get("user", "test@example.com")
        assert entry == stored
        assert entry == CacheEntry(
            key="test@example.com",
            result=CachedResult.present(),
            expires_at=clock.now + 60,
        )

    def test_negative_results_are_cached(self, cache: LookupCache):
        cache.put("domain", "nowhere.invalid", CachedResult.absent(), ttl=300)

        entry = cache.get("domain", "nowhere.invalid")
        assert entry is not None
        assert entry.result.exists is False

    def test_namespaces_are_separate(self, cache: LookupCache):
        cache.put("user", "postmaster@example.com", CachedResult.present(), ttl=60)

        assert cache.get("alias", "postmaster@example.com") is None
        assert cache.get("user", "postmaster@example.com") is not None

    def test_alias_destination_is_returned(self, cache: LookupCache):
        cache.put("alias", "postmaster@example.com", CachedResult.present("admin@example.com"), ttl=300)

        entry = cache.get("alias", "postmaster@example.com")
        assert entry.result.destination == "admin@example.com"

    def test_put_overwrites(self, cache: LookupCache):
        cache.put("alias", "info@example.com", CachedResult.present("a@example.com"), ttl=300)
        cache.put("alias", "info@example.com", CachedResult.present("b@example.com"), ttl=300)

        assert cache.get("alias", "info@example.com").result.destination == "b@example.com"
        assert cache.size() == 1


class TestLookupCacheTTL:
    """Test lazy expiry."""

    def test_live_until_ttl(self, cache: LookupCache, clock):
        cache.put("user", "test@example.com", CachedResult.present(), ttl=60)

        clock.advance(59.9)
        assert cache.get("user", "test@example.com") is not None

    def test_expired_after_ttl(self, cache: LookupCache, clock):
        cache.put("user", "test@example.com", CachedResult.present(), ttl=60)

        clock.advance(61)
        assert cache.get("user", "test@example.com") is None

    def test_expires_exactly_at_ttl(self, cache: LookupCache, clock):
        cache.put("user", "test@example.com", CachedResult.present(), ttl=60)

        clock.advance(60)
        assert cache.get("user", "test@example.com") is None

    def test_expired_entries_are_not_purged(self, cache: LookupCache, clock):
        cache.put("user", "test@example.com", CachedResult.present(), ttl=60)
        clock.advance(120)

        assert cache.get("user", "test@example.com") is None
        assert cache.size() == 1

    def test_refresh_after_expiry(self, cache: LookupCache, clock):
        cache.put("user", "test@example.com", CachedResult.present(), ttl=60)
        clock.advance(61)
        cache.put("user", "test@example.com", CachedResult.absent(), ttl=60)

        entry = cache.get("user", "test@example.com")
        assert entry.result.exists is False
        assert entry.expires_at == clock.now + 60
        assert cache.size() == 1

    def test_ttl_per_entry(self, cache: LookupCache, clock):
        cache.put("user", "a@example.com", CachedResult.present(), ttl=60)
        cache.put("domain", "example.com", CachedResult.present(), ttl=300)

        clock.advance(120)
        assert cache.get("user", "a@example.com") is None
        assert cache.get("domain", "example.com") is not None

    @pytest.mark.slow
    def test_real_clock_expiry(self):
        cache = LookupCache()
        cache.put("user", "test@example.com", CachedResult.present(), ttl=0.5)

        assert cache.get("user", "test@example.com") is not None
        time.sleep(0.6)
        assert cache.get("user", "test@example.com") is None


class TestLookupCacheStats:
    """Test get_stats()."""

    def test_stats_counts(self, cache: LookupCache, clock):
        cache.put("user", "a@example.com", CachedResult.present(), ttl=60)
        cache.put("domain", "example.com", CachedResult.present(), ttl=300)
        cache.get("user", "a@example.com")
        cache.get("user", "missing@example.com")
        clock.advance(61)

        stats = cache.get_stats()
        assert stats["total_entries"] == 2
        assert stats["expired_entries"] == 1
        assert stats["live_entries"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_expired_read_counts_as_miss(self, cache: LookupCache, clock):
        cache.put("user", "a@example.com", CachedResult.present(), ttl=60)
        clock.advance(61)
        cache.get("user", "a@example.com")

        assert cache.get_stats()["misses"] == 1


class TestLookupCacheConcurrency:
    """Test concurrent access from many threads."""

    def test_no_torn_entries(self):
        cache = LookupCache()
        errors = []
        start = threading.Barrier(16)

        def worker(worker_id: int):
            start.wait()
            for i in range(500):
                # exists and destination always change together
                if (worker_id + i) % 2:
                    result = CachedResult.present(f"dest-{worker_id}-{i}@example.com")
                else:
                    result = CachedResult.absent()
                cache.put("alias", "shared@example.com", result, ttl=300)

                entry = cache.get("alias", "shared@example.com")
                if entry is None:
                    errors.append("entry vanished")
                    continue
                if entry.key != "shared@example.com":
                    errors.append(f"wrong key {entry.key}")
                if entry.result.exists != (entry.result.destination is not None):
                    errors.append(f"torn result {entry.result}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert cache.size() == 1

    def test_concurrent_distinct_keys(self):
        cache = LookupCache()

        def worker(worker_id: int):
            for i in range(200):
                cache.put("user", f"u{worker_id}-{i}@example.com", CachedResult.present(), ttl=60)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert cache.size() == 8 * 200
        assert cache.get("user", "u7-199@example.com") is not None
