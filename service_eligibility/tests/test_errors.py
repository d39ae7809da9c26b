"""
Unit tests for the error taxonomy and configuration.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_eligibility.app.errors import (
    AtomDependencyError, AtomExecutionError, AtomExecutionTimeoutError, AtomNotFoundError,
    CycleDetectedError, DepthExceededError, InvalidLogicError, MissingParameterError
)
from shared.config import get_config


class TestErrors:
    """Test cases for engine errors."""

    def test_dependency_error_response(self):
        """Test dependency errors carry the missing codes."""
        error = AtomDependencyError("Missing dependencies", "PARENT", ["CHILD_A", "CHILD_B"])

        response = error.to_response(tenant_id="tenant-1", request_id="req-1")

        assert response.error == "ATOM_DEPENDENCY_ERROR"
        assert response.message == "Missing dependencies"
        assert response.details == {"atomCode": "PARENT", "missingDependencies": ["CHILD_A", "CHILD_B"]}
        assert response.tenant_id == "tenant-1"
        assert error.kind == "dependency"
        assert error.retryable is True

    def test_configuration_errors_are_not_retryable(self):
        """Test cycle, depth, logic and lookup errors require re-authoring."""
        errors = [
            CycleDetectedError("ATOM_A", ["ATOM_A", "ATOM_B", "ATOM_A"]),
            DepthExceededError("ATOM_A", 10),
            InvalidLogicError(["Logic definition is required"], "ATOM_A"),
            AtomNotFoundError("ATOM_A"),
        ]

        for error in errors:
            assert error.kind == "configuration"
            assert error.retryable is False
            assert error.atom_code == "ATOM_A"

    def test_messages(self):
        """Test human messages."""
        assert CycleDetectedError("A", ["A", "B", "A"]).message == "Circular dependency detected: A -> B -> A"
        assert DepthExceededError("A", 10).message == "Dependency chain too deep for atom A (max depth: 10)"
        assert AtomNotFoundError("A").message == "Atom not found: A"
        assert MissingParameterError("age").message == "Required parameter 'age' is missing"

    def test_timeout_details(self):
        """Test timeouts are retryable and carry the bound."""
        error = AtomExecutionTimeoutError("SLOW", 50)

        assert error.kind == "timeout"
        assert error.retryable is True
        assert error.details == {"atomCode": "SLOW", "timeoutMs": 50}

    def test_execution_error_details(self):
        """Test execution errors carry the elapsed time."""
        error = AtomExecutionError("Atom execution failed: kaput", "AGE", 12.34567)

        assert error.code == "ATOM_EXECUTION_FAILED"
        assert error.details == {"atomCode": "AGE", "executionTimeMs": 12.346}


class TestConfig:
    """Test cases for engine configuration."""

    def test_defaults(self):
        """Test default limits."""
        config = get_config()

        assert config.cache_enabled is True
        assert config.cache_ttl_seconds == 1800
        assert config.execution_timeout_ms == 30000
        assert config.max_dependencies == 10
        assert config.max_conditions == 20
        assert config.max_composition_depth == 10
        assert config.validation_cycle_depth == 5

    def test_environment_overrides(self, monkeypatch):
        """Test settings are read from ELIGIBILITY_ variables."""
        monkeypatch.setenv("ELIGIBILITY_MAX_COMPOSITION_DEPTH", "4")
        monkeypatch.setenv("ELIGIBILITY_CACHE_BACKEND", "redis")

        config = get_config()

        assert config.max_composition_depth == 4
        assert config.cache_backend == "redis"

    def test_explicit_overrides(self, monkeypatch):
        """Test explicit overrides win over the environment."""
        monkeypatch.setenv("ELIGIBILITY_WORKER_POOL_SIZE", "8")
        assert get_config(worker_pool_size=2).worker_pool_size == 2

    def test_bounds(self):
        """Test out of range values are rejected."""
        with pytest.raises(ValueError):
            get_config(cache_ttl_seconds=10)
