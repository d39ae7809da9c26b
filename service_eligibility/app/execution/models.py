"""
Execution data models.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ExecutionResult:
    """Immutable outcome of executing one atom."""
    atom_code: str
    success: bool
    eligible: bool
    value: Any = None
    reason: Optional[str] = None
    execution_time_ms: float = 0.0
    cache_hit: bool = False
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def as_cache_hit(self) -> "ExecutionResult":
        return replace(self, cache_hit=True, metadata=dict(self.metadata))

    @classmethod
    def failure(cls, atom_code: str, error: str, execution_time_ms: float = 0.0) -> "ExecutionResult":
        """Failed result; a failed atom counts as not eligible."""
        return cls(
            atom_code=atom_code,
            success=False,
            eligible=False,
            value=False,
            reason=error,
            execution_time_ms=execution_time_ms,
            error=error
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "atom_code": self.atom_code,
            "success": self.success,
            "eligible": self.eligible,
            "value": self.value,
            "reason": self.reason,
            "execution_time_ms": self.execution_time_ms,
            "cache_hit": self.cache_hit,
            "error": self.error,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionResult":
        return cls(
            atom_code=data["atom_code"],
            success=bool(data["success"]),
            eligible=bool(data["eligible"]),
            value=data.get("value"),
            reason=data.get("reason"),
            execution_time_ms=float(data.get("execution_time_ms", 0.0)),
            cache_hit=bool(data.get("cache_hit", False)),
            error=data.get("error"),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class AtomStatistics:
    """Execution statistics for one atom version."""
    code: str
    version: int
    execution_count: int = 0
    success_count: int = 0
    avg_execution_time_ms: float = 0.0
    success_rate: float = 0.0
    error_rate: float = 0.0
    last_executed_at: Optional[datetime] = None

    def record(self, execution_time_ms: float, success: bool, executed_at: Optional[datetime] = None):
        """Fold one execution into the running figures."""
        self.execution_count += 1
        if success:
            self.success_count += 1
        n = self.execution_count
        self.avg_execution_time_ms += (execution_time_ms - self.avg_execution_time_ms) / n
        self.success_rate = self.success_count / n
        self.error_rate = 1.0 - self.success_rate
        executed_at = executed_at or datetime.now(timezone.utc)
        if self.last_executed_at is None or executed_at > self.last_executed_at:
            self.last_executed_at = executed_at
