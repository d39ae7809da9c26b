"""
Validation service for eligibility atoms.

Every check returns descriptive strings; an empty list means valid. Callers
that use validation as a precondition turn a non-empty list into an
``AtomValidationError``.
"""

import re
from typing import Any, List, Mapping, Optional

from shared.config import EngineConfig
from shared.logging import get_logger, bind_request
from ..atoms.logic import check_logic
from ..atoms.models import Atom, AtomType
from ..atoms.parameters import check_input, check_schema
from ..context import RequestContext
from ..errors import AtomDependencyError, CycleDetectedError, DepthExceededError
from ..resolution.resolver import DependencyResolver, dependency_codes
from ..store.base import AtomStore

CODE_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*$")
TAG_PATTERN = re.compile(r"^[a-z0-9\-_]+$")

MIN_CODE_LENGTH = 3
MAX_CODE_LENGTH = 100
MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000
MAX_TAG_LENGTH = 50
MIN_PRIORITY = 1
MAX_PRIORITY = 10
MIN_EXECUTION_TIME_MS = 1
MAX_EXECUTION_TIME_MS = 300000  # 5 minutes
MIN_CACHE_TTL = 60  # 1 minute
MAX_CACHE_TTL = 86400  # 24 hours


class AtomValidator:
    """Structural and semantic validation of atoms."""

    def __init__(self, store: AtomStore, resolver: DependencyResolver,
                 config: Optional[EngineConfig] = None):
        self.logger = get_logger("eligibility.validation")
        self.store = store
        self.resolver = resolver
        self.config = config or EngineConfig()

    async def validate(self, atom: Atom, request: RequestContext) -> List[str]:
        """Validate an atom definition."""
        errors: List[str] = []
        errors.extend(self._validate_basic_fields(atom))
        errors.extend(check_logic(atom.type, atom.logic_definition, self.config.max_conditions))
        errors.extend(self._validate_parameters(atom))
        errors.extend(await self._validate_dependencies(atom, request))
        errors.extend(self._validate_type_specific(atom))
        errors.extend(self._validate_performance_settings(atom))
        errors.extend(self._validate_test_cases(atom))

        bind_request(self.logger, request).debug(
            "Atom validated",
            atom_code=atom.code,
            version=atom.version,
            error_count=len(errors)
        )
        return errors

    async def validate_for_activation(self, atom: Atom, request: RequestContext) -> List[str]:
        """Stricter validation required before an atom becomes active."""
        errors = await self.validate(atom, request)
        errors.extend(await self._validate_dependency_availability(atom, request))

        if not atom.test_cases:
            errors.append("Atom must have test cases before activation")

        if not (atom.documentation or "").strip():
            errors.append("Atom must have documentation before activation")

        if not (atom.example or "").strip():
            errors.append("Atom must have usage example before activation")

        return errors

    async def validate_for_execution(self, atom: Atom, input_data: Mapping[str, Any],
                                     request: RequestContext) -> List[str]:
        """Check an atom can be executed against ``input_data``."""
        errors: List[str] = []

        if not atom.is_executable:
            errors.append(f"Atom is not in executable status: {atom.status.value}")

        if atom.input_parameters:
            errors.extend(check_input(atom.input_parameters, input_data))

        errors.extend(await self._validate_dependency_availability(atom, request))
        return errors

    def _validate_basic_fields(self, atom: Atom) -> List[str]:
        errors: List[str] = []

        if not atom.code or not atom.code.strip():
            errors.append("Code is required")
        else:
            if not CODE_PATTERN.match(atom.code):
                errors.append(
                    "Code must start with uppercase letter and contain only uppercase letters, "
                    "numbers, and underscores"
                )
            if not MIN_CODE_LENGTH <= len(atom.code) <= MAX_CODE_LENGTH:
                errors.append(f"Code must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH} characters")

        if not atom.name or not atom.name.strip():
            errors.append("Name is required")
        elif len(atom.name) > MAX_NAME_LENGTH:
            errors.append(f"Name cannot exceed {MAX_NAME_LENGTH} characters")

        if atom.description and len(atom.description) > MAX_DESCRIPTION_LENGTH:
            errors.append(f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters")

        if atom.version < 1:
            errors.append("Version must be at least 1")

        if not MIN_PRIORITY <= atom.priority <= MAX_PRIORITY:
            errors.append(f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}")

        for tag in atom.tags:
            if len(tag) > MAX_TAG_LENGTH:
                errors.append(f"Tag '{tag}' exceeds {MAX_TAG_LENGTH} characters")
            if not TAG_PATTERN.match(tag):
                errors.append(f"Tag '{tag}' must contain only lowercase letters, numbers, hyphens, and underscores")

        return errors

    def _validate_parameters(self, atom: Atom) -> List[str]:
        errors: List[str] = []
        if atom.input_parameters:
            errors.extend(check_schema(atom.input_parameters, "inputParameters"))
        if atom.output_schema:
            errors.extend(check_schema(atom.output_schema, "outputSchema"))
        return errors

    async def _validate_dependencies(self, atom: Atom, request: RequestContext) -> List[str]:
        errors: List[str] = []

        if len(atom.dependencies) > self.config.max_dependencies:
            errors.append(f"Atom cannot have more than {self.config.max_dependencies} dependencies")

        if atom.code in atom.dependencies:
            errors.append("Atom cannot depend on itself")
            return errors

        cycles = await self.resolver.detect_cycles(atom, request, self.config.validation_cycle_depth)
        errors.extend(cycles)
        if cycles:
            return errors

        # Cycles and depth beyond the quick pre-check
        try:
            await self.resolver.build_graph(atom, request, self.config.max_composition_depth)
        except (CycleDetectedError, DepthExceededError) as e:
            errors.append(e.message)
        except AtomDependencyError:
            # Availability is reported by activation and execution checks
            pass

        return errors

    def _validate_type_specific(self, atom: Atom) -> List[str]:
        errors: List[str] = []

        if atom.type == AtomType.COMPOSITE and not atom.dependencies:
            errors.append("Composite atom must have at least one dependency")

        if atom.type == AtomType.TEMPLATE and not atom.input_parameters:
            errors.append("Template atom must define input parameters")

        return errors

    def _validate_performance_settings(self, atom: Atom) -> List[str]:
        errors: List[str] = []

        if atom.expected_execution_time_ms < MIN_EXECUTION_TIME_MS:
            errors.append(f"Expected execution time must be at least {MIN_EXECUTION_TIME_MS}ms")
        elif atom.expected_execution_time_ms > MAX_EXECUTION_TIME_MS:
            errors.append(f"Expected execution time cannot exceed {MAX_EXECUTION_TIME_MS}ms")

        if atom.timeout_ms is not None and atom.timeout_ms < 1:
            errors.append("Timeout must be at least 1ms")

        if atom.cache_enabled and atom.cache_ttl_seconds is not None:
            if atom.cache_ttl_seconds < MIN_CACHE_TTL:
                errors.append(f"Cache TTL must be at least {MIN_CACHE_TTL} seconds")
            elif atom.cache_ttl_seconds > MAX_CACHE_TTL:
                errors.append(f"Cache TTL cannot exceed {MAX_CACHE_TTL} seconds")

        return errors

    def _validate_test_cases(self, atom: Atom) -> List[str]:
        errors: List[str] = []
        for index, test_case in enumerate(atom.test_cases):
            if not isinstance(test_case, Mapping):
                errors.append(f"testCases[{index}] must be an object")
                continue
            for key in ("name", "input", "expected"):
                if key not in test_case:
                    errors.append(f"testCases[{index}] must have '{key}'")
        return errors

    async def _validate_dependency_availability(self, atom: Atom, request: RequestContext) -> List[str]:
        errors: List[str] = []
        for code in dependency_codes(atom):
            dependency = await self.store.find_by_code(request.tenant_id, code)
            if dependency is None:
                errors.append(f"Dependency not found: {code}")
            elif not dependency.is_executable:
                errors.append(f"Dependency '{code}' is not in executable status: {dependency.status.value}")
        return errors
