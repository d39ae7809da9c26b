"""
Unit tests for the in-memory result cache and cache keys.
"""

import pytest
from unittest.mock import patch

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_eligibility.app.cache import CacheStore, InMemoryResultCache, fingerprint, stable_hash
from service_eligibility.app.execution.models import ExecutionResult


def create_result(code="AGE_CHECK", eligible=True):
    return ExecutionResult(atom_code=code, success=True, eligible=eligible, value=eligible, reason="ok")


class TestCacheKeys:
    """Test cases for fingerprints."""

    def test_stable_hash_ignores_key_order(self):
        """Test key order does not change the hash."""
        assert stable_hash({"age": 30, "country": "US"}) == stable_hash({"country": "US", "age": 30})
        assert stable_hash({"age": 30}) != stable_hash({"age": 31})

    def test_fingerprint_scopes(self):
        """Test tenant, code and version all separate keys."""
        data = {"age": 30}
        key = fingerprint("tenant-1", "AGE_CHECK", 1, data)

        assert key.startswith("atom:tenant-1:AGE_CHECK:1:")
        assert key != fingerprint("tenant-2", "AGE_CHECK", 1, data)
        assert key != fingerprint("tenant-1", "AGE_CHECK", 2, data)
        assert key != fingerprint("tenant-1", "AGE", 1, data)


class TestInMemoryResultCache:
    """Test cases for InMemoryResultCache."""

    @pytest.fixture
    def cache(self):
        return InMemoryResultCache(max_entries=3)

    def test_satisfies_cache_protocol(self, cache):
        """Test the cache implements the store contract."""
        assert isinstance(cache, CacheStore)

    @pytest.mark.asyncio
    async def test_put_and_get(self, cache):
        """Test a stored result is returned until it expires."""
        result = create_result()

        assert await cache.put("k1", result, 60) is True
        assert await cache.get("k1") == result
        assert await cache.get("missing") is None
        assert cache.get_cache_stats()["hits"] == 1
        assert cache.get_cache_stats()["misses"] == 1

    @pytest.mark.asyncio
    async def test_expiry(self, cache):
        """Test entries expire after their TTL."""
        with patch("service_eligibility.app.cache.memory.time") as mock_time:
            mock_time.monotonic.return_value = 1000.0
            await cache.put("k1", create_result(), 60)

            mock_time.monotonic.return_value = 1059.0
            assert await cache.get("k1") is not None

            mock_time.monotonic.return_value = 1060.0
            assert await cache.get("k1") is None
            assert cache.get_cache_stats()["entries"] == 0

    @pytest.mark.asyncio
    async def test_non_positive_ttl_is_not_stored(self, cache):
        """Test a zero TTL means the result is not cached."""
        assert await cache.put("k1", create_result(), 0) is False
        assert await cache.get("k1") is None

    @pytest.mark.asyncio
    async def test_eviction_prefers_soonest_expiry(self, cache):
        """Test a full cache evicts the entry closest to expiry."""
        await cache.put("k1", create_result(), 300)
        await cache.put("k2", create_result(), 60)
        await cache.put("k3", create_result(), 600)

        await cache.put("k4", create_result(), 600)

        assert await cache.get("k2") is None
        assert await cache.get("k1") is not None
        assert await cache.get("k4") is not None
        assert cache.get_cache_stats()["entries"] == 3

    @pytest.mark.asyncio
    async def test_invalidate_atom_is_prefix_exact(self):
        """Test invalidating one code leaves codes sharing its prefix alone."""
        cache = InMemoryResultCache()
        data = {"age": 30}
        await cache.put(fingerprint("tenant-1", "AGE", 1, data), create_result("AGE"), 60)
        await cache.put(fingerprint("tenant-1", "AGE", 2, data), create_result("AGE"), 60)
        await cache.put(fingerprint("tenant-1", "AGE_RANGE", 1, data), create_result("AGE_RANGE"), 60)
        await cache.put(fingerprint("tenant-2", "AGE", 1, data), create_result("AGE"), 60)

        assert await cache.invalidate_atom("tenant-1", "AGE") == 2

        assert await cache.get(fingerprint("tenant-1", "AGE", 1, data)) is None
        assert await cache.get(fingerprint("tenant-1", "AGE_RANGE", 1, data)) is not None
        assert await cache.get(fingerprint("tenant-2", "AGE", 1, data)) is not None

    @pytest.mark.asyncio
    async def test_clear(self, cache):
        """Test clearing drops every entry."""
        await cache.put("k1", create_result(), 60)
        await cache.clear()
        assert cache.get_cache_stats()["entries"] == 0
