"""
Atom data models for the Eligibility Service.
"""

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class AtomType(str, Enum):
    """Atom types; the type selects the evaluation strategy."""
    SIMPLE = "simple"
    COMPLEX = "complex"
    COMPOSITE = "composite"
    TEMPLATE = "template"
    MACHINE_LEARNING = "machine_learning"


class AtomStatus(str, Enum):
    """Atom lifecycle status."""
    DRAFT = "draft"
    TESTING = "testing"
    ACTIVE = "active"
    DEPRECATED = "deprecated"
    ARCHIVED = "archived"

    @property
    def is_executable(self) -> bool:
        return self in (AtomStatus.ACTIVE, AtomStatus.TESTING)


class AtomCategory(str, Enum):
    """Informational grouping of atoms."""
    DEMOGRAPHIC = "demographic"
    BEHAVIORAL = "behavioral"
    GEOGRAPHIC = "geographic"
    TEMPORAL = "temporal"
    CONTEXTUAL = "contextual"
    PREDICTIVE = "predictive"
    TRANSACTIONAL = "transactional"
    ENGAGEMENT = "engagement"
    LIFECYCLE = "lifecycle"
    CONSENT = "consent"
    RISK = "risk"
    CUSTOM = "custom"


class ComparisonOperator(str, Enum):
    """Condition comparison operators."""
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_OR_EQUAL = "GREATER_THAN_OR_EQUAL"
    LESS_THAN = "LESS_THAN"
    LESS_THAN_OR_EQUAL = "LESS_THAN_OR_EQUAL"
    BETWEEN = "BETWEEN"
    NOT_BETWEEN = "NOT_BETWEEN"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    MATCHES = "MATCHES"
    NOT_MATCHES = "NOT_MATCHES"
    IN = "IN"
    NOT_IN = "NOT_IN"
    IS_NULL = "IS_NULL"
    IS_NOT_NULL = "IS_NOT_NULL"


class LogicalOperator(str, Enum):
    """Operators combining condition or child atom results."""
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    XOR = "XOR"
    NAND = "NAND"
    NOR = "NOR"


class DataType(str, Enum):
    """Declared parameter types."""
    STRING = "STRING"
    INTEGER = "INTEGER"
    LONG = "LONG"
    DOUBLE = "DOUBLE"
    BOOLEAN = "BOOLEAN"
    LIST = "LIST"
    MAP = "MAP"


MODEL_TYPES = ("classification", "regression", "clustering", "prediction")


@dataclass(frozen=True)
class TestCase:
    """Declared test case replayed by the test harness."""
    __test__ = False

    name: str
    input: Dict[str, Any]
    expected: Any
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestCase":
        return cls(
            name=data["name"],
            input=dict(data.get("input") or {}),
            expected=data.get("expected"),
            description=data.get("description")
        )


@dataclass(frozen=True)
class Atom:
    """Immutable definition of a unit of reusable eligibility logic."""
    tenant_id: str
    code: str
    type: AtomType
    logic_definition: Dict[str, Any]
    version: int = 1
    name: str = ""
    description: Optional[str] = None
    category: AtomCategory = AtomCategory.CUSTOM
    status: AtomStatus = AtomStatus.DRAFT
    dependencies: Tuple[str, ...] = ()
    input_parameters: Dict[str, Any] = field(default_factory=dict)
    output_schema: Dict[str, Any] = field(default_factory=dict)
    priority: int = 5
    tags: Tuple[str, ...] = ()
    cache_enabled: bool = True
    cache_ttl_seconds: Optional[int] = None
    expected_execution_time_ms: int = 10
    timeout_ms: Optional[int] = None
    test_cases: Tuple[Dict[str, Any], ...] = ()
    documentation: Optional[str] = None
    example: Optional[str] = None
    atom_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        # Accept lists from callers but keep the definition immutable
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "test_cases", tuple(self.test_cases))
        if not self.name:
            object.__setattr__(self, "name", self.code)

    @property
    def is_executable(self) -> bool:
        return self.status.is_executable

    def with_status(self, status: AtomStatus) -> "Atom":
        """Return a copy of the atom in another lifecycle status."""
        return replace(self, status=status)

    def new_version(self, version: int, **changes) -> "Atom":
        """Return a draft copy of the atom under a new version and id."""
        return replace(
            self,
            version=version,
            status=AtomStatus.DRAFT,
            atom_id=str(uuid.uuid4()),
            **changes
        )

    def parsed_test_cases(self) -> List[TestCase]:
        return [TestCase.from_dict(tc) for tc in self.test_cases]
