"""
Cache store contract consumed by the engine.
"""

from typing import Optional, Protocol, runtime_checkable

from ..execution.models import ExecutionResult


@runtime_checkable
class CacheStore(Protocol):
    """Key/value store for execution results with per-entry TTL."""

    async def get(self, key: str) -> Optional[ExecutionResult]:
        ...

    async def put(self, key: str, value: ExecutionResult, ttl_seconds: int) -> bool:
        ...

    async def invalidate_atom(self, tenant_id: str, code: str) -> int:
        ...
