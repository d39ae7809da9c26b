"""
Error taxonomy for the Eligibility engine.

Every atom-specific error carries the offending atom code. ``kind`` groups
errors the way callers handle them: configuration errors must be fixed by
re-authoring the atom, dependency errors clear once the dependency is fixed,
timeouts may be retried with backoff, validation errors describe bad input.
"""

from typing import Any, Dict, List, Optional

from shared.errors import EngineException


class AtomError(EngineException):
    """Base class for atom errors."""

    def __init__(self, code: str, message: str, atom_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.atom_code = atom_code
        payload = {"atomCode": atom_code} if atom_code else {}
        payload.update(details or {})
        super().__init__(code, message, payload)


class AtomNotFoundError(AtomError):
    """Atom is absent from the store or not executable."""

    kind = "configuration"

    def __init__(self, atom_code: str, message: Optional[str] = None):
        super().__init__("ATOM_NOT_FOUND", message or f"Atom not found: {atom_code}", atom_code)


class AtomDependencyError(AtomError):
    """One or more dependencies could not be resolved."""

    kind = "dependency"
    retryable = True

    def __init__(self, message: str, atom_code: Optional[str] = None,
                 missing_dependencies: Optional[List[str]] = None):
        self.missing_dependencies = list(missing_dependencies or [])
        super().__init__(
            "ATOM_DEPENDENCY_ERROR", message, atom_code,
            {"missingDependencies": self.missing_dependencies}
        )


class CycleDetectedError(AtomError):
    """Dependency traversal re-entered an atom already on the current path."""

    kind = "configuration"

    def __init__(self, atom_code: str, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__(
            "ATOM_CYCLE_DETECTED",
            f"Circular dependency detected: {' -> '.join(self.cycle)}",
            atom_code,
            {"cycle": self.cycle}
        )


class DepthExceededError(AtomError):
    """Dependency chain deeper than the configured bound."""

    kind = "configuration"

    def __init__(self, atom_code: str, max_depth: int):
        self.max_depth = max_depth
        super().__init__(
            "ATOM_DEPTH_EXCEEDED",
            f"Dependency chain too deep for atom {atom_code} (max depth: {max_depth})",
            atom_code,
            {"maxDepth": max_depth}
        )


class InvalidLogicError(AtomError):
    """Logic payload does not match the shape required by the atom type."""

    kind = "configuration"

    def __init__(self, errors: List[str], atom_code: Optional[str] = None):
        self.validation_errors = list(errors)
        super().__init__(
            "ATOM_INVALID_LOGIC",
            "Invalid logic definition: " + "; ".join(self.validation_errors),
            atom_code,
            {"validationErrors": self.validation_errors}
        )


class AtomValidationError(AtomError):
    """Validation used as a precondition returned a non-empty error list."""

    kind = "validation"

    def __init__(self, message: str, validation_errors: List[str], atom_code: Optional[str] = None):
        self.validation_errors = list(validation_errors)
        super().__init__(
            "ATOM_VALIDATION_FAILED", message, atom_code,
            {"validationErrors": self.validation_errors}
        )


class MissingParameterError(AtomError):
    """A required input parameter is absent."""

    kind = "validation"

    def __init__(self, parameter: str, atom_code: Optional[str] = None):
        self.parameter = parameter
        super().__init__(
            "MISSING_PARAMETER",
            f"Required parameter '{parameter}' is missing",
            atom_code,
            {"parameter": parameter}
        )


class AtomExecutionError(AtomError):
    """Atom is not executable, or its evaluation failed unexpectedly."""

    kind = "execution"

    def __init__(self, message: str, atom_code: Optional[str] = None,
                 execution_time_ms: Optional[float] = None):
        self.execution_time_ms = execution_time_ms
        details = {}
        if execution_time_ms is not None:
            details["executionTimeMs"] = round(execution_time_ms, 3)
        super().__init__("ATOM_EXECUTION_FAILED", message, atom_code, details)


class AtomExecutionTimeoutError(AtomError):
    """Evaluation exceeded its configured bound."""

    kind = "timeout"
    retryable = True

    def __init__(self, atom_code: str, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(
            "ATOM_EXECUTION_TIMEOUT",
            f"Atom execution timed out after {timeout_ms}ms",
            atom_code,
            {"timeoutMs": timeout_ms}
        )
