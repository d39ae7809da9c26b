"""
Result cache package.

Execution results are cached by fingerprint (tenant, atom code, version and
a stable hash of the input). Stores are best-effort: a failed read is a
miss and a failed write only costs a recomputation.

Modules of interest:
- keys: Fingerprint derivation.
- base: Cache store contract consumed by the engine.
- memory: Process-local TTL cache.
- redis_cache: Redis-backed cache shared across engine instances.
"""

from .base import CacheStore
from .keys import fingerprint, stable_hash
from .memory import InMemoryResultCache
from .redis_cache import RedisResultCache

__all__ = ["CacheStore", "fingerprint", "stable_hash", "InMemoryResultCache", "RedisResultCache"]
