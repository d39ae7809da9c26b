"""
Unit tests for atom validation.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_eligibility.app.atoms.models import Atom, AtomStatus, AtomType
from service_eligibility.app.resolution import DependencyResolver
from service_eligibility.app.validation import AtomValidator
from shared.test_helpers import (
    TEST_TENANT, create_chain, create_composite_atom, create_request_context, create_simple_atom,
    create_store
)


def create_validator(*atoms):
    store = create_store(*atoms)
    return AtomValidator(store, DependencyResolver(store))


@pytest.fixture
def request_context():
    return create_request_context()


class TestValidate:
    """Test cases for structural validation."""

    @pytest.mark.asyncio
    async def test_valid_atom(self, request_context):
        """Test a well formed atom has no problems."""
        validator = create_validator()
        assert await validator.validate(create_simple_atom("AGE_CHECK"), request_context) == []

    @pytest.mark.asyncio
    async def test_code_format(self, request_context):
        """Test code pattern and length rules."""
        validator = create_validator()

        errors = await validator.validate(create_simple_atom("age_check"), request_context)
        assert errors == [
            "Code must start with uppercase letter and contain only uppercase letters, "
            "numbers, and underscores"
        ]

        errors = await validator.validate(create_simple_atom("AB"), request_context)
        assert errors == ["Code must be between 3 and 100 characters"]

    @pytest.mark.asyncio
    async def test_basic_fields(self, request_context):
        """Test priority, tag and description limits."""
        validator = create_validator()
        atom = create_simple_atom("AGE_CHECK", priority=0, tags=["Bad Tag"], description="x" * 1001)

        errors = await validator.validate(atom, request_context)

        assert "Priority must be between 1 and 10" in errors
        assert "Tag 'Bad Tag' must contain only lowercase letters, numbers, hyphens, and underscores" in errors
        assert "Description cannot exceed 1000 characters" in errors

    @pytest.mark.asyncio
    async def test_invalid_logic(self, request_context):
        """Test logic problems are included."""
        validator = create_validator()
        atom = create_simple_atom("AGE_CHECK", operator="BIGGER")

        errors = await validator.validate(atom, request_context)
        assert errors == ["condition has invalid operator: BIGGER"]

    @pytest.mark.asyncio
    async def test_invalid_parameter_schema(self, request_context):
        """Test parameter schemas are checked."""
        validator = create_validator()
        atom = create_simple_atom("AGE_CHECK", input_parameters={"age": {"type": "decimal", "required": "yes"}})

        errors = await validator.validate(atom, request_context)
        assert errors == [
            "inputParameters.age has invalid type: decimal",
            "inputParameters.age.required must be a boolean"
        ]

    @pytest.mark.asyncio
    async def test_self_dependency(self, request_context):
        """Test an atom may not depend on itself."""
        validator = create_validator()
        atom = create_simple_atom("SELF_REF", dependencies=["SELF_REF"])

        errors = await validator.validate(atom, request_context)
        assert errors == ["Atom cannot depend on itself"]

    @pytest.mark.asyncio
    async def test_dependency_limit(self, request_context):
        """Test the number of declared dependencies is bounded."""
        validator = create_validator()
        atom = create_simple_atom("WIDE", dependencies=[f"DEP_{i}" for i in range(11)])

        errors = await validator.validate(atom, request_context)
        assert errors == ["Atom cannot have more than 10 dependencies"]

    @pytest.mark.asyncio
    async def test_cycle(self, request_context):
        """Test cycles through stored atoms are reported."""
        atom_a = create_composite_atom("ATOM_A", ["ATOM_B"], status=AtomStatus.DRAFT)
        validator = create_validator(create_composite_atom("ATOM_B", ["ATOM_A"]))

        errors = await validator.validate(atom_a, request_context)
        assert errors == ["Circular dependency detected: ATOM_A -> ATOM_B -> ATOM_A"]

    @pytest.mark.asyncio
    async def test_depth_beyond_cycle_precheck(self, request_context):
        """Test a chain too deep for execution is reported."""
        chain = create_chain(12)
        validator = create_validator(*chain)

        errors = await validator.validate(chain[0], request_context)
        assert errors == ["Dependency chain too deep for atom CHAIN_00 (max depth: 10)"]

    @pytest.mark.asyncio
    async def test_missing_dependencies_allowed_in_drafts(self, request_context):
        """Test structural validation does not require dependencies to exist yet."""
        validator = create_validator()
        atom = create_composite_atom("PARENT", ["CHILD_A", "CHILD_B"], status=AtomStatus.DRAFT)

        assert await validator.validate(atom, request_context) == []

    @pytest.mark.asyncio
    async def test_composite_needs_dependencies(self, request_context):
        """Test composite atoms must declare dependencies."""
        validator = create_validator()
        atom = create_composite_atom("PARENT", ["CHILD"], dependencies=[])

        errors = await validator.validate(atom, request_context)
        assert errors == ["Composite atom must have at least one dependency"]

    @pytest.mark.asyncio
    async def test_template_needs_parameters(self, request_context):
        """Test template atoms must declare input parameters."""
        validator = create_validator()
        atom = Atom(
            tenant_id=TEST_TENANT,
            code="SCORE_CHECK",
            type=AtomType.TEMPLATE,
            logic_definition={
                "template": {"field": "score", "operator": "GREATER_THAN", "value": "${min}"},
                "parameters": ["min"]
            }
        )

        errors = await validator.validate(atom, request_context)
        assert errors == ["Template atom must define input parameters"]

    @pytest.mark.asyncio
    async def test_performance_settings(self, request_context):
        """Test execution time and cache TTL bounds."""
        validator = create_validator()
        atom = create_simple_atom("AGE_CHECK", expected_execution_time_ms=0, cache_ttl_seconds=30)

        errors = await validator.validate(atom, request_context)
        assert errors == [
            "Expected execution time must be at least 1ms",
            "Cache TTL must be at least 60 seconds"
        ]

    @pytest.mark.asyncio
    async def test_cache_ttl_ignored_when_caching_disabled(self, request_context):
        """Test the TTL is only checked for cached atoms."""
        validator = create_validator()
        atom = create_simple_atom("AGE_CHECK", cache_enabled=False, cache_ttl_seconds=30)

        assert await validator.validate(atom, request_context) == []

    @pytest.mark.asyncio
    async def test_test_cases_shape(self, request_context):
        """Test declared test cases need name, input and expected."""
        validator = create_validator()
        atom = create_simple_atom("AGE_CHECK", test_cases=[
            {"input": {"age": 20}, "expected": True},
            "adult"
        ])

        errors = await validator.validate(atom, request_context)
        assert errors == ["testCases[0] must have 'name'", "testCases[1] must be an object"]


class TestValidateForActivation:
    """Test cases for activation readiness."""

    @pytest.mark.asyncio
    async def test_requires_documentation(self, request_context):
        """Test activation requires tests, documentation and an example."""
        validator = create_validator()
        atom = create_simple_atom("AGE_CHECK", status=AtomStatus.DRAFT)

        errors = await validator.validate_for_activation(atom, request_context)
        assert errors == [
            "Atom must have test cases before activation",
            "Atom must have documentation before activation",
            "Atom must have usage example before activation"
        ]

    @pytest.mark.asyncio
    async def test_ready_atom(self, request_context):
        """Test a documented atom with tests may be activated."""
        validator = create_validator()
        atom = create_simple_atom(
            "AGE_CHECK",
            status=AtomStatus.DRAFT,
            test_cases=[{"name": "adult", "input": {"age": 20}, "expected": True}],
            documentation="Adults only",
            example='{"age": 20}'
        )

        assert await validator.validate_for_activation(atom, request_context) == []

    @pytest.mark.asyncio
    async def test_dependencies_must_be_available(self, request_context):
        """Test missing and draft dependencies block activation."""
        validator = create_validator(create_simple_atom("DRAFT_CHILD", status=AtomStatus.DRAFT))
        atom = create_composite_atom(
            "PARENT",
            ["DRAFT_CHILD", "ABSENT"],
            status=AtomStatus.DRAFT,
            test_cases=[{"name": "t", "input": {}, "expected": True}],
            documentation="doc",
            example="{}"
        )

        errors = await validator.validate_for_activation(atom, request_context)
        assert errors == [
            "Dependency 'DRAFT_CHILD' is not in executable status: draft",
            "Dependency not found: ABSENT"
        ]


class TestValidateForExecution:
    """Test cases for execution preconditions."""

    @pytest.mark.asyncio
    async def test_draft_atom(self, request_context):
        """Test drafts cannot be executed."""
        validator = create_validator()
        atom = create_simple_atom("AGE_CHECK", status=AtomStatus.DRAFT)

        errors = await validator.validate_for_execution(atom, {"age": 20}, request_context)
        assert errors == ["Atom is not in executable status: draft"]

    @pytest.mark.asyncio
    async def test_input_checked_against_schema(self, request_context):
        """Test missing and mistyped input parameters are reported."""
        validator = create_validator()
        atom = create_simple_atom("AGE_CHECK", input_parameters={
            "age": {"type": "integer", "required": True},
            "country": {"type": "string", "required": True}
        })

        errors = await validator.validate_for_execution(atom, {"age": "twenty"}, request_context)
        assert errors == [
            "Parameter 'age' has invalid type (expected: integer)",
            "Required parameter 'country' is missing"
        ]
