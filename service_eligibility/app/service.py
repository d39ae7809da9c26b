"""
Eligibility atom service.

Entry points exposed to the API layer: execution by id or code,
validation, test runs, lifecycle transitions and statistics. Every call
takes an explicit ``RequestContext``.
"""

from typing import Any, Dict, List, Mapping, Optional

from prometheus_client import CollectorRegistry

from shared.config import EngineConfig, get_config
from shared.logging import configure_logging, get_logger, bind_request
from shared.metrics import MetricsCollector, get_metrics_collector
from .atoms.models import Atom, AtomCategory, AtomStatus
from .cache.base import CacheStore
from .cache.memory import InMemoryResultCache
from .cache.redis_cache import RedisResultCache
from .context import RequestContext
from .errors import AtomDependencyError, AtomNotFoundError, AtomValidationError
from .execution.engine import ExecutionEngine
from .execution.evaluators import ModelRegistry
from .execution.models import AtomStatistics, ExecutionResult
from .resolution.resolver import DependencyResolver, dependency_codes
from .store.base import WritableAtomStore
from .testing.harness import TestHarness, TestReport
from .validation.validator import AtomValidator


class AtomService:
    """Eligibility atom service implementation."""

    def __init__(self, store: WritableAtomStore, config: Optional[EngineConfig] = None,
                 cache: Optional[CacheStore] = None, metrics: Optional[MetricsCollector] = None,
                 models: Optional[ModelRegistry] = None):
        self.config = config or get_config()
        self.logger = get_logger("eligibility.service")

        # Configure logging
        configure_logging(self.config.service_name, self.config.log_level)

        if metrics is None:
            registry = CollectorRegistry() if self.config.metrics_port else None
            metrics = get_metrics_collector(self.config.service_name, registry)
        self.metrics = metrics

        # Initialize components
        self.store = store
        self.cache = cache if cache is not None else self._create_cache()
        self.resolver = DependencyResolver(store, self.config.max_composition_depth)
        self.validator = AtomValidator(store, self.resolver, self.config)
        self.engine = ExecutionEngine(
            self.resolver,
            cache=self.cache,
            config=self.config,
            metrics=self.metrics,
            models=models
        )
        self.harness = TestHarness(self.engine)

    def _create_cache(self) -> CacheStore:
        if self.config.cache_backend == "redis":
            return RedisResultCache(self.config.redis_url)
        return InMemoryResultCache()

    async def start(self):
        """Start the cache connection, worker pool and statistics consumer."""
        if isinstance(self.cache, RedisResultCache):
            await self.cache.start()
        await self.engine.start()

        if self.config.metrics_port:
            self.metrics.start_metrics_server(self.config.metrics_port)

        self.logger.info(
            "Eligibility service started",
            cache_backend=type(self.cache).__name__,
            worker_pool_size=self.config.worker_pool_size
        )

    async def stop(self):
        """Stop background work and close the cache connection."""
        await self.engine.stop()
        if isinstance(self.cache, RedisResultCache):
            await self.cache.stop()
        self.logger.info("Eligibility service stopped")

    async def get_atom(self, atom_id: str, request: RequestContext) -> Atom:
        atom = await self.store.find_by_id(request.tenant_id, atom_id)
        if atom is None:
            raise AtomNotFoundError(atom_id, f"Atom not found with id: {atom_id}")
        return atom

    # Execution

    async def execute(self, atom_id: str, input_data: Mapping[str, Any],
                      request: RequestContext) -> ExecutionResult:
        """Execute an atom by id."""
        atom = await self.get_atom(atom_id, request)
        return await self.engine.execute(atom, input_data, request)

    async def execute_by_code(self, code: str, input_data: Mapping[str, Any], request: RequestContext,
                              version: Optional[int] = None) -> ExecutionResult:
        """Execute the current executable version of ``code``, or a given version."""
        if version is None:
            atom = await self.resolver.resolve(code, request)
        else:
            atom = await self.store.find_by_code(request.tenant_id, code, version)
            if atom is None:
                raise AtomNotFoundError(code, f"Atom not found: {code} (version {version})")
        return await self.engine.execute(atom, input_data, request)

    async def validate(self, atom: Atom, request: RequestContext) -> List[str]:
        """Validate an atom definition; returns the list of problems."""
        return await self.validator.validate(atom, request)

    async def test(self, atom_id: str, request: RequestContext) -> TestReport:
        """Replay the atom's declared test cases."""
        atom = await self.get_atom(atom_id, request)
        return await self.harness.run_tests(atom, request)

    # Lifecycle

    async def create(self, atom: Atom, request: RequestContext) -> Atom:
        """Validate and store a new atom as a draft."""
        if atom.tenant_id != request.tenant_id:
            raise AtomValidationError("Atom belongs to another tenant", ["tenantId does not match request"], atom.code)

        existing = await self.store.find_latest_version(request.tenant_id, atom.code)
        if existing is not None:
            raise AtomValidationError(
                f"Atom with code '{atom.code}' already exists",
                [f"Code '{atom.code}' is already in use"],
                atom.code
            )

        errors = await self.validator.validate(atom, request)
        if errors:
            raise AtomValidationError("Atom validation failed", errors, atom.code)

        saved = self.store.save(atom.with_status(AtomStatus.DRAFT))
        bind_request(self.logger, request).info("Created atom", atom_code=saved.code, version=saved.version)
        return saved

    async def activate(self, atom_id: str, request: RequestContext) -> Atom:
        """Activate an atom after activation-readiness validation."""
        atom = await self.get_atom(atom_id, request)
        if atom.status == AtomStatus.ARCHIVED:
            raise AtomValidationError("Cannot activate archived atom", ["Archived atoms cannot be activated"], atom.code)

        errors = await self.validator.validate_for_activation(atom, request)
        if errors:
            raise AtomValidationError(f"Cannot activate atom: {', '.join(errors)}", errors, atom.code)

        return await self._transition(atom, AtomStatus.ACTIVE, request)

    async def move_to_testing(self, atom_id: str, request: RequestContext) -> Atom:
        """Move an atom to testing after structural validation."""
        atom = await self.get_atom(atom_id, request)
        errors = await self.validator.validate(atom, request)
        if errors:
            raise AtomValidationError(f"Cannot move to testing: {', '.join(errors)}", errors, atom.code)

        return await self._transition(atom, AtomStatus.TESTING, request)

    async def deprecate(self, atom_id: str, request: RequestContext) -> Atom:
        atom = await self.get_atom(atom_id, request)
        self._check_dependents(atom, "deprecate", request)
        return await self._transition(atom, AtomStatus.DEPRECATED, request)

    async def archive(self, atom_id: str, request: RequestContext) -> Atom:
        """Archive an atom; executable atoms that still depend on it block the change."""
        atom = await self.get_atom(atom_id, request)
        self._check_dependents(atom, "archive", request)
        return await self._transition(atom, AtomStatus.ARCHIVED, request)

    async def create_version(self, atom_id: str, request: RequestContext, **changes) -> Atom:
        """Create the next draft version of an atom, optionally with changes."""
        original = await self.get_atom(atom_id, request)
        version = self.store.next_version(request.tenant_id, original.code)
        new_atom = original.new_version(version, **changes)

        errors = await self.validator.validate(new_atom, request)
        if errors:
            raise AtomValidationError(f"Version validation failed: {', '.join(errors)}", errors, new_atom.code)

        saved = self.store.save(new_atom)
        bind_request(self.logger, request).info("Created atom version", atom_code=saved.code, version=saved.version)
        return saved

    async def _transition(self, atom: Atom, status: AtomStatus, request: RequestContext) -> Atom:
        saved = self.store.save(atom.with_status(status))
        await self._invalidate_with_dependents(atom.code, request)
        bind_request(self.logger, request).info(
            "Atom status changed",
            atom_code=atom.code,
            version=atom.version,
            status=status.value
        )
        return saved

    def _check_dependents(self, atom: Atom, action: str, request: RequestContext):
        if not atom.is_executable:
            return

        atoms = self.store.list_atoms(request.tenant_id)
        # Another executable version keeps the code resolvable
        if any(a.code == atom.code and a.is_executable and a.atom_id != atom.atom_id for a in atoms):
            return

        dependents = sorted({a.code for a in atoms if a.is_executable and atom.code in dependency_codes(a)})
        if dependents:
            raise AtomDependencyError(
                f"Cannot {action} atom {atom.code}: active atoms depend on it: {', '.join(dependents)}",
                atom.code
            )

    async def _invalidate_with_dependents(self, code: str, request: RequestContext) -> int:
        """Drop cached results of ``code`` and of every atom that depends on it, transitively."""
        atoms = self.store.list_atoms(request.tenant_id)
        pending = [code]
        seen = {code}
        while pending:
            current = pending.pop()
            await self.engine.invalidate_atom(request.tenant_id, current)
            for other in atoms:
                if other.code not in seen and current in dependency_codes(other):
                    seen.add(other.code)
                    pending.append(other.code)
        return len(seen)

    # Statistics and cache

    async def statistics(self, atom_id: str, request: RequestContext) -> Optional[AtomStatistics]:
        """Execution statistics of an atom version."""
        atom = await self.get_atom(atom_id, request)
        await self.engine.statistics.flush()
        return self.engine.statistics.get(request.tenant_id, atom.code, atom.version)

    async def tenant_statistics(self, request: RequestContext) -> Dict[str, Any]:
        """Atom counts of the tenant by status and category; archived atoms are not counted."""
        atoms = [a for a in self.store.list_atoms(request.tenant_id) if a.status != AtomStatus.ARCHIVED]
        return {
            "total_atoms": len(atoms),
            "status_counts": {status.value: sum(1 for a in atoms if a.status == status)
                              for status in AtomStatus if status != AtomStatus.ARCHIVED},
            "category_counts": {category.value: sum(1 for a in atoms if a.category == category)
                                for category in AtomCategory},
        }

    async def invalidate(self, code: str, request: RequestContext) -> int:
        """Drop cached results of every version of ``code``."""
        return await self.engine.invalidate_atom(request.tenant_id, code)

    def get_service_stats(self) -> Dict[str, Any]:
        return {
            "service": self.config.service_name,
            "engine": self.engine.get_engine_stats(),
            "cache_backend": type(self.cache).__name__,
        }
