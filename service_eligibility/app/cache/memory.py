"""
Process-local result cache.
"""

import time
from typing import Dict, Optional, Tuple

from shared.logging import get_logger
from ..execution.models import ExecutionResult
from .keys import atom_prefix


class InMemoryResultCache:
    """TTL cache of execution results keyed by fingerprint."""

    def __init__(self, max_entries: int = 10000):
        self.logger = get_logger("eligibility.cache.memory")
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[float, ExecutionResult]] = {}
        self.hits = 0
        self.misses = 0

    async def get(self, key: str) -> Optional[ExecutionResult]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        expires_at, result = entry
        if expires_at <= time.monotonic():
            self._entries.pop(key, None)
            self.misses += 1
            return None

        self.hits += 1
        return result

    async def put(self, key: str, value: ExecutionResult, ttl_seconds: int) -> bool:
        if ttl_seconds <= 0:
            return False
        if len(self._entries) >= self.max_entries and key not in self._entries:
            self._evict()
        self._entries[key] = (time.monotonic() + ttl_seconds, value)
        return True

    async def invalidate_atom(self, tenant_id: str, code: str) -> int:
        """Drop every cached result of every version of ``code``."""
        prefix = atom_prefix(tenant_id, code)
        keys = [k for k in self._entries if k.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        if keys:
            self.logger.info("Invalidated atom results", tenant_id=tenant_id, code=code, count=len(keys))
        return len(keys)

    async def clear(self) -> None:
        self._entries.clear()

    def _evict(self):
        """Drop expired entries, then the entry closest to expiry."""
        now = time.monotonic()
        for key in [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]:
            del self._entries[key]
        if len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]

    def get_cache_stats(self) -> Dict[str, float]:
        total = self.hits + self.misses
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
        }
