"""
Cache fingerprint derivation.
"""

import hashlib
import json
from typing import Any, Mapping

ATOM_RESULT_PREFIX = "atom:"


def stable_hash(data: Mapping[str, Any]) -> str:
    """Hash of a mapping that does not depend on key order."""
    raw = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


def atom_prefix(tenant_id: str, code: str) -> str:
    return f"{ATOM_RESULT_PREFIX}{tenant_id}:{code}:"


def fingerprint(tenant_id: str, code: str, version: int, data: Mapping[str, Any]) -> str:
    """Cache key for one atom version evaluated against ``data``."""
    return f"{atom_prefix(tenant_id, code)}{version}:{stable_hash(data)}"
