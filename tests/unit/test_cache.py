"""
Unit Tests for the Analysis Cache

Tests key derivation, TTL expiry and statistics.
"""

import threading

import pytest

from studytrust.core.exceptions import CacheError
from studytrust.storage.cache import AnalysisCache, make_cache_key


class TestCacheKey:
    """Tests for make_cache_key."""

    def test_prefixed_sha256(self) -> None:
        """Test keys are prefixed hex digests."""
        key = make_cache_key("text", "hello")
        assert key.startswith("analysis:")
        assert len(key) == len("analysis:") + 64

    def test_input_type_participates(self) -> None:
        """Test the same content under a different type gets a different key."""
        assert make_cache_key("url", "x") != make_cache_key("text", "x")

    def test_stable(self) -> None:
        """Test identical inputs share a key."""
        assert make_cache_key("doi", "10.1/x") == make_cache_key("doi", "10.1/x")


class TestAnalysisCache:
    """Tests for AnalysisCache."""

    def test_get_missing(self, clock) -> None:
        """Test a missing key returns None."""
        cache = AnalysisCache(ttl_seconds=10, clock=clock)
        assert cache.get("nope") is None

    def test_set_and_get(self, clock) -> None:
        """Test stored values are returned within TTL."""
        cache = AnalysisCache(ttl_seconds=10, clock=clock)
        cache.set("k", "v")
        clock.advance(10)
        assert cache.get("k") == "v"

    def test_expiry_evicts(self, clock) -> None:
        """Test entries past their TTL are evicted on read."""
        cache = AnalysisCache(ttl_seconds=10, clock=clock)
        cache.set("k", "v")
        clock.advance(10.5)
        assert cache.get("k") is None
        assert cache.size == 0

    def test_overwrite_resets_expiry(self, clock) -> None:
        """Test set replaces the entry and its expiry wholesale."""
        cache = AnalysisCache(ttl_seconds=10, clock=clock)
        cache.set("k", "old")
        clock.advance(8)
        cache.set("k", "new")
        clock.advance(8)
        assert cache.get("k") == "new"

    def test_delete_and_clear(self, clock) -> None:
        """Test explicit removal."""
        cache = AnalysisCache(ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert cache.size == 0

    def test_clear_expired(self, clock) -> None:
        """Test the sweep removes only expired entries."""
        cache = AnalysisCache(ttl_seconds=10, clock=clock)
        cache.set("old", 1)
        clock.advance(6)
        cache.set("fresh", 2)
        clock.advance(6)
        assert cache.clear_expired() == 1
        assert cache.get("fresh") == 2

    def test_stats(self, clock) -> None:
        """Test hit and miss accounting."""
        cache = AnalysisCache(ttl_seconds=10, clock=clock)
        cache.set("k", "v")
        cache.get("k")
        cache.get("missing")
        stats = cache.stats
        assert stats["size"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5

    def test_invalid_ttl(self) -> None:
        """Test a non-positive TTL is rejected."""
        with pytest.raises(CacheError):
            AnalysisCache(ttl_seconds=0)

    def test_concurrent_writers(self) -> None:
        """Test concurrent set/get from many threads keeps every entry."""
        cache: AnalysisCache[int] = AnalysisCache(ttl_seconds=60)

        def worker(offset: int) -> None:
            for i in range(200):
                cache.set(f"{offset}:{i}", i)
                cache.get(f"{offset}:{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert cache.size == 8 * 200
