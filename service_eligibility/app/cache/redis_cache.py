"""
Redis caching layer for atom execution results.
"""

import json
from datetime import datetime
from typing import Dict, Any, Optional

import redis.asyncio as redis
from shared.logging import get_logger
from shared.errors import ExternalServiceError
from ..execution.models import ExecutionResult
from .keys import ATOM_RESULT_PREFIX, atom_prefix


class RedisResultCache:
    """Redis caching layer for execution results."""

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.logger = get_logger("eligibility.cache.redis")
        self.redis: Optional[redis.Redis] = client

        # Cache configuration
        self.min_ttl = 1
        self.max_ttl = 86400  # 24 hours

    async def start(self):
        """Start the Redis cache."""
        try:
            if self.redis is None:
                self.redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    retry_on_timeout=True,
                    health_check_interval=30
                )

            # Test connection
            await self.redis.ping()

            self.logger.info("Redis cache started")

        except Exception as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise ExternalServiceError("redis", str(e))

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.close()
            self.logger.info("Redis cache stopped")

    async def get(self, key: str) -> Optional[ExecutionResult]:
        """Get cached execution result."""
        try:
            cached_data = await self.redis.get(key)
            if not cached_data:
                return None

            data = json.loads(cached_data)
            self.logger.debug("Cache hit for atom result", cache_key=key)
            return ExecutionResult.from_dict(data["result"])

        except Exception as e:
            self.logger.error("Error getting cached atom result", cache_key=key, error=str(e))
            return None

    async def put(self, key: str, value: ExecutionResult, ttl_seconds: int) -> bool:
        """Cache execution result."""
        try:
            # Ensure TTL is within bounds
            ttl_seconds = max(self.min_ttl, min(self.max_ttl, int(ttl_seconds)))

            data = {
                "result": value.to_dict(),
                "ttl_seconds": ttl_seconds,
                "cached_at": datetime.now().isoformat()
            }

            await self.redis.setex(key, ttl_seconds, json.dumps(data, default=str))

            self.logger.debug("Cached atom result", cache_key=key, ttl=ttl_seconds)
            return True

        except Exception as e:
            self.logger.error("Error caching atom result", cache_key=key, error=str(e))
            return False

    async def invalidate_atom(self, tenant_id: str, code: str) -> int:
        """Invalidate all cached results for an atom code."""
        try:
            keys = await self.redis.keys(f"{atom_prefix(tenant_id, code)}*")

            if keys:
                await self.redis.delete(*keys)
                self.logger.info("Invalidated atom results", tenant_id=tenant_id, code=code, count=len(keys))
                return len(keys)

            return 0

        except Exception as e:
            self.logger.error("Error invalidating atom results", tenant_id=tenant_id, code=code, error=str(e))
            return 0

    async def invalidate_tenant(self, tenant_id: str) -> int:
        """Invalidate all cached results for a tenant."""
        try:
            keys = await self.redis.keys(f"{ATOM_RESULT_PREFIX}{tenant_id}:*")

            if keys:
                await self.redis.delete(*keys)
                self.logger.info("Invalidated tenant results", tenant_id=tenant_id, count=len(keys))
                return len(keys)

            return 0

        except Exception as e:
            self.logger.error("Error invalidating tenant results", tenant_id=tenant_id, error=str(e))
            return 0

    async def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        try:
            info = await self.redis.info()
            result_keys = await self.redis.keys(f"{ATOM_RESULT_PREFIX}*")

            return {
                "redis_version": info.get("redis_version"),
                "used_memory": info.get("used_memory_human"),
                "keyspace_hits": info.get("keyspace_hits"),
                "keyspace_misses": info.get("keyspace_misses"),
                "result_keys": len(result_keys),
                "hit_rate": self._calculate_hit_rate(info)
            }

        except Exception as e:
            self.logger.error("Error getting cache stats", error=str(e))
            return {}

    def _calculate_hit_rate(self, info: Dict[str, Any]) -> float:
        """Calculate cache hit rate."""
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        total = hits + misses

        if total == 0:
            return 0.0

        return hits / total

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self.redis.ping()
            return True
        except Exception:
            return False
