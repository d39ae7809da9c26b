"""
Fire-and-forget execution statistics.

Executions enqueue updates on a bounded queue that a background task folds
into per-version ``AtomStatistics``. A full queue drops the update; decisions
never depend on statistics being delivered.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..atoms.models import Atom
from .models import AtomStatistics


@dataclass(frozen=True)
class StatisticsUpdate:
    tenant_id: str
    code: str
    version: int
    execution_time_ms: float
    success: bool
    executed_at: datetime


class StatisticsRecorder:
    """Owns atom statistics; updated only through the queue."""

    def __init__(self, capacity: int = 1000, metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("eligibility.execution.statistics")
        self.metrics = metrics
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._statistics: Dict[Tuple[str, str, int], AtomStatistics] = {}
        self._consumer: Optional[asyncio.Task] = None
        self.dropped = 0

    async def start(self):
        """Start the background consumer."""
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._consume(), name="atom-statistics")

    async def stop(self):
        """Apply what is already queued, then stop the consumer."""
        if self._consumer is None:
            return
        await self.flush()
        self._consumer.cancel()
        await asyncio.gather(self._consumer, return_exceptions=True)
        self._consumer = None

    def record(self, atom: Atom, execution_time_ms: float, success: bool) -> bool:
        """Enqueue an update without blocking; returns False when dropped."""
        update = StatisticsUpdate(
            tenant_id=atom.tenant_id,
            code=atom.code,
            version=atom.version,
            execution_time_ms=execution_time_ms,
            success=success,
            executed_at=datetime.now(timezone.utc)
        )
        try:
            self._queue.put_nowait(update)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            if self.metrics:
                self.metrics.increment_counter("atom_statistics_dropped_total")
            self.logger.debug("Statistics update dropped", code=atom.code, version=atom.version)
            return False

    async def flush(self):
        """Wait until every queued update has been applied."""
        if self._consumer is not None:
            await self._queue.join()
        else:
            self.drain()

    def drain(self) -> int:
        """Apply queued updates inline; used when no consumer is running."""
        applied = 0
        while not self._queue.empty():
            self._apply(self._queue.get_nowait())
            self._queue.task_done()
            applied += 1
        return applied

    def get(self, tenant_id: str, code: str, version: Optional[int] = None) -> Optional[AtomStatistics]:
        """Statistics of one version, or of the newest recorded version."""
        if version is not None:
            return self._statistics.get((tenant_id, code, version))

        versions = [key[2] for key in self._statistics if key[0] == tenant_id and key[1] == code]
        if not versions:
            return None
        return self._statistics[(tenant_id, code, max(versions))]

    async def _consume(self):
        while True:
            update = await self._queue.get()
            try:
                self._apply(update)
            except Exception as e:
                self.logger.warning("Failed to apply statistics update", code=update.code, error=str(e))
            finally:
                self._queue.task_done()

    def _apply(self, update: StatisticsUpdate):
        key = (update.tenant_id, update.code, update.version)
        stats = self._statistics.get(key)
        if stats is None:
            stats = self._statistics[key] = AtomStatistics(code=update.code, version=update.version)
        stats.record(update.execution_time_ms, update.success, update.executed_at)
