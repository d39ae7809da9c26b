"""
Atom execution engine.

A top-level ``execute`` call:

1. rejects atoms that are not Active/Testing and input missing required
   parameters,
2. returns a fresh cached result untouched when one exists,
3. builds the dependency graph, surfacing cycles, excess depth and missing
   dependencies before anything is evaluated,
4. executes dependencies and composite children (each at most once per
   call, siblings concurrently, each cache-eligible),
5. evaluates the atom's own logic on the worker pool under a timeout,
6. caches successful results not built on a failed dependency and
   enqueues a statistics update.

A failing dependency or child does not fail its parent: it contributes a
failed, not-eligible result. Only the top-level atom's own errors are
raised to the caller.
"""

import asyncio
import time
from typing import Any, Dict, Mapping, Optional, Tuple

from shared.config import EngineConfig
from shared.errors import EngineException
from shared.logging import get_logger, bind_request
from shared.metrics import MetricsCollector
from ..atoms.models import Atom
from ..atoms.parameters import check_input, missing_required
from ..cache.base import CacheStore
from ..cache.keys import fingerprint
from ..context import RequestContext
from ..errors import (
    AtomExecutionError, AtomExecutionTimeoutError, AtomValidationError, MissingParameterError
)
from ..resolution.resolver import DependencyGraph, DependencyResolver, dependency_codes
from .evaluators import Evaluator, EvaluationContext, ModelRegistry, build_evaluator
from .models import ExecutionResult
from .pool import ExecutionPool
from .statistics import StatisticsRecorder


class ExecutionEngine:
    """Executes atoms with caching, dependency execution and timeouts."""

    def __init__(self, resolver: DependencyResolver, cache: Optional[CacheStore] = None,
                 config: Optional[EngineConfig] = None, metrics: Optional[MetricsCollector] = None,
                 pool: Optional[ExecutionPool] = None, statistics: Optional[StatisticsRecorder] = None,
                 models: Optional[ModelRegistry] = None):
        self.logger = get_logger("eligibility.execution.engine")
        self.config = config or EngineConfig()
        self.resolver = resolver
        self.cache = cache
        self.metrics = metrics
        self.pool = pool or ExecutionPool(self.config.worker_pool_size, self.config.queue_capacity, metrics)
        self.statistics = statistics or StatisticsRecorder(self.config.statistics_queue_capacity, metrics)
        self.models = models or ModelRegistry.with_placeholders()
        self._evaluators: Dict[Tuple[str, str, int, str], Evaluator] = {}

    async def start(self):
        """Start the worker pool and the statistics consumer."""
        await self.pool.start()
        await self.statistics.start()

    async def stop(self):
        """Stop the worker pool and the statistics consumer."""
        await self.pool.stop()
        await self.statistics.stop()

    async def execute(self, atom: Atom, input_data: Mapping[str, Any], request: RequestContext) -> ExecutionResult:
        """Execute ``atom`` against ``input_data``."""
        logger = bind_request(self.logger, request)
        if not atom.is_executable:
            raise AtomExecutionError(f"Cannot execute atom in status: {atom.status.value}", atom.code)

        self._check_input(atom, input_data)
        logger.debug("Executing atom", atom_code=atom.code, version=atom.version)

        cache_key = fingerprint(request.tenant_id, atom.code, atom.version, input_data)
        cached = await self._cache_get(atom, cache_key, request)
        if cached is not None:
            return cached

        graph = await self.resolver.build_graph(atom, request, self.config.max_composition_depth)
        memo: Dict[str, asyncio.Future] = {}
        return await self._run(atom, input_data, request, graph, memo, cache_key)

    async def invalidate_atom(self, tenant_id: str, code: str) -> int:
        """Drop cached results and built evaluators of every version of ``code``."""
        for key in [k for k in self._evaluators if k[0] == tenant_id and k[1] == code]:
            del self._evaluators[key]
        if self.cache is None:
            return 0
        try:
            return await self.cache.invalidate_atom(tenant_id, code)
        except Exception as e:
            self.logger.warning("Cache invalidation failed", tenant_id=tenant_id, atom_code=code, error=str(e))
            return 0

    def _check_input(self, atom: Atom, input_data: Mapping[str, Any]):
        if not self.config.validation_enabled or not atom.input_parameters:
            return

        missing = missing_required(atom.input_parameters, input_data)
        if missing:
            raise MissingParameterError(missing[0], atom.code)

        errors = check_input(atom.input_parameters, input_data)
        if errors:
            raise AtomValidationError("Input validation failed", errors, atom.code)

    def _caching(self, atom: Atom) -> bool:
        return self.cache is not None and self.config.cache_enabled and atom.cache_enabled

    async def _cache_get(self, atom: Atom, key: str, request: RequestContext) -> Optional[ExecutionResult]:
        if not self._caching(atom):
            return None

        try:
            cached = await self.cache.get(key)
        except Exception as e:
            bind_request(self.logger, request).warning("Cache read failed", cache_key=key, error=str(e))
            cached = None

        if self.metrics:
            self.metrics.record_cache_lookup(cached is not None)

        if cached is None:
            return None

        bind_request(self.logger, request).debug("Cache hit for atom", atom_code=atom.code, cache_key=key)
        return cached.as_cache_hit()

    async def _cache_put(self, atom: Atom, key: str, result: ExecutionResult, request: RequestContext):
        if not self._caching(atom):
            return

        try:
            ttl = atom.cache_ttl_seconds or self.config.cache_ttl_seconds
            await self.cache.put(key, result, ttl)
        except Exception as e:
            bind_request(self.logger, request).warning("Cache write failed", cache_key=key, error=str(e))

    async def _execute_dependency(self, code: str, input_data: Mapping[str, Any], request: RequestContext,
                                  graph: DependencyGraph, memo: Dict[str, asyncio.Future]) -> ExecutionResult:
        # One shared task per code so diamond dependencies execute once
        if code not in memo:
            memo[code] = asyncio.ensure_future(
                self._execute_child(graph.atom(code), input_data, request, graph, memo)
            )
        return await memo[code]

    async def _execute_child(self, atom: Atom, input_data: Mapping[str, Any], request: RequestContext,
                             graph: DependencyGraph, memo: Dict[str, asyncio.Future]) -> ExecutionResult:
        start_time = time.perf_counter()
        try:
            self._check_input(atom, input_data)
            cache_key = fingerprint(request.tenant_id, atom.code, atom.version, input_data)
            cached = await self._cache_get(atom, cache_key, request)
            if cached is not None:
                return cached
            return await self._run(atom, input_data, request, graph, memo, cache_key)

        except Exception as e:
            message = e.message if isinstance(e, EngineException) else str(e)
            bind_request(self.logger, request).warning(
                "Dependency execution failed",
                atom_code=atom.code,
                error=message
            )
            return ExecutionResult.failure(atom.code, message, (time.perf_counter() - start_time) * 1000)

    async def _run(self, atom: Atom, input_data: Mapping[str, Any], request: RequestContext,
                   graph: DependencyGraph, memo: Dict[str, asyncio.Future], cache_key: str) -> ExecutionResult:
        logger = bind_request(self.logger, request)
        start_time = time.perf_counter()

        codes = dependency_codes(atom)
        results = await asyncio.gather(*(
            self._execute_dependency(code, input_data, request, graph, memo) for code in codes
        ))
        dependency_results = dict(zip(codes, results))
        # Results built on a failed dependency, at any depth, are never cached
        degraded = any(not r.success or r.metadata.get("degraded") for r in results)

        timeout_ms = atom.timeout_ms or self.config.execution_timeout_ms
        context = EvaluationContext(input=input_data, dependency_results=dependency_results, request=request)

        try:
            evaluator = self._evaluator(atom)
            evaluation = await self.pool.run(evaluator.evaluate(context), timeout_ms / 1000.0)

        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.warning("Atom execution timed out", atom_code=atom.code, timeout_ms=timeout_ms)
            self._record(atom, "timeout", elapsed_ms, success=False, error_type="ATOM_EXECUTION_TIMEOUT")
            raise AtomExecutionTimeoutError(atom.code, timeout_ms) from None

        except EngineException as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error("Atom execution failed", atom_code=atom.code, error_code=e.code, error=e.message)
            self._record(atom, "failure", elapsed_ms, success=False, error_type=e.code)
            raise

        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error("Atom execution failed", atom_code=atom.code, error=str(e))
            self._record(atom, "failure", elapsed_ms, success=False, error_type="ATOM_EXECUTION_FAILED")
            raise AtomExecutionError(f"Atom execution failed: {e}", atom.code, elapsed_ms) from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        metadata = dict(evaluation.metadata)
        metadata["version"] = atom.version
        if dependency_results:
            metadata["dependencies"] = {code: r.eligible for code, r in dependency_results.items()}
        if degraded:
            metadata["degraded"] = True

        result = ExecutionResult(
            atom_code=atom.code,
            success=True,
            eligible=evaluation.eligible,
            value=evaluation.value,
            reason=evaluation.reason,
            execution_time_ms=elapsed_ms,
            metadata=metadata
        )

        if degraded:
            logger.debug("Result not cached after dependency failure", atom_code=atom.code)
        else:
            await self._cache_put(atom, cache_key, result, request)
        self._record(atom, "success", elapsed_ms, success=True)

        logger.info(
            "Completed execution of atom",
            atom_code=atom.code,
            execution_time_ms=round(elapsed_ms, 3),
            eligible=result.eligible
        )
        return result

    def _evaluator(self, atom: Atom) -> Evaluator:
        key = (atom.tenant_id, atom.code, atom.version, atom.atom_id)
        evaluator = self._evaluators.get(key)
        if evaluator is None:
            evaluator = build_evaluator(atom, self.models, self.config.max_conditions)
            self._evaluators[key] = evaluator
        return evaluator

    def _record(self, atom: Atom, outcome: str, elapsed_ms: float, success: bool,
                error_type: Optional[str] = None):
        self.statistics.record(atom, elapsed_ms, success)
        if self.metrics:
            self.metrics.record_execution(outcome, atom.type.value, elapsed_ms / 1000.0)
            if error_type:
                self.metrics.record_error(error_type)

    def get_engine_stats(self) -> Dict[str, Any]:
        """Get engine statistics."""
        return {
            "evaluators": len(self._evaluators),
            "pool": self.pool.get_pool_stats(),
            "statistics_dropped": self.statistics.dropped,
        }
