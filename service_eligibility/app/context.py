"""
Explicit request context passed through every engine call.
"""

import uuid
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class RequestContext:
    """Tenant and request identity for a single top-level call."""
    tenant_id: str
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_id: Optional[str] = None

    def __post_init__(self):
        if not self.tenant_id:
            raise ValueError("tenant_id is required")
