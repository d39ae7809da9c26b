"""
Bounded evaluation worker pool.
"""

import asyncio
from typing import Any, Awaitable, List, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector


class ExecutionPool:
    """Fixed set of worker tasks consuming a bounded backlog.

    When the backlog is full, or the pool is not running, the caller awaits
    the work itself instead of having it rejected.
    """

    def __init__(self, size: int = 4, queue_capacity: int = 1000,
                 metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("eligibility.execution.pool")
        self.size = size
        self.queue_capacity = queue_capacity
        self.metrics = metrics
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self.caller_runs = 0

    @property
    def running(self) -> bool:
        return bool(self._workers)

    async def start(self):
        """Start the worker tasks."""
        if self._workers:
            return

        self._queue = asyncio.Queue(maxsize=self.queue_capacity)
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"atom-worker-{index}")
            for index in range(self.size)
        ]
        self.logger.info("Execution pool started", size=self.size, queue_capacity=self.queue_capacity)

    async def stop(self):
        """Stop the workers and cancel work still waiting in the backlog."""
        if not self._workers:
            return

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        while not self._queue.empty():
            coro, future = self._queue.get_nowait()
            coro.close()
            if not future.done():
                future.cancel()
        self._queue = None

        self.logger.info("Execution pool stopped")

    async def run(self, coro: Awaitable[Any], timeout: Optional[float] = None) -> Any:
        """Run ``coro`` on a worker and wait at most ``timeout`` seconds.

        Raises ``asyncio.TimeoutError`` when the bound is exceeded; the
        in-flight work is cancelled.
        """
        if not self._workers:
            return await asyncio.wait_for(coro, timeout)

        future = asyncio.get_running_loop().create_future()
        try:
            self._queue.put_nowait((coro, future))
        except asyncio.QueueFull:
            self.caller_runs += 1
            self.logger.debug("Execution backlog full, running in caller", queue_capacity=self.queue_capacity)
            return await asyncio.wait_for(coro, timeout)

        self._report_depth()
        return await asyncio.wait_for(future, timeout)

    def queue_depth(self) -> int:
        return self._queue.qsize() if self._queue else 0

    async def _worker(self, index: int):
        while True:
            coro, future = await self._queue.get()
            self._report_depth()
            try:
                if future.cancelled():
                    # Caller gave up before a worker picked the work up
                    coro.close()
                    continue

                task = asyncio.ensure_future(coro)
                future.add_done_callback(lambda f, t=task: t.cancel() if f.cancelled() else None)
                try:
                    await asyncio.wait({task})
                except asyncio.CancelledError:
                    task.cancel()
                    if not future.done():
                        future.cancel()
                    raise

                self._settle(future, task)
            finally:
                self._queue.task_done()

    @staticmethod
    def _settle(future: asyncio.Future, task: asyncio.Task):
        if future.done():
            return
        if task.cancelled():
            future.cancel()
        elif task.exception() is not None:
            future.set_exception(task.exception())
        else:
            future.set_result(task.result())

    def _report_depth(self):
        if self.metrics:
            self.metrics.set_gauge("execution_queue_depth", self.queue_depth())

    def get_pool_stats(self) -> dict:
        return {
            "size": self.size,
            "running": self.running,
            "queue_depth": self.queue_depth(),
            "queue_capacity": self.queue_capacity,
            "caller_runs": self.caller_runs,
        }
