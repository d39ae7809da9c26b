"""
Test helper functions and factory methods for the Eligibility Atom engine.
"""

import asyncio
from typing import Dict, Any, Optional, List, Iterable

from service_eligibility.app.atoms.models import Atom, AtomStatus, AtomType
from service_eligibility.app.context import RequestContext
from service_eligibility.app.execution.evaluators import Evaluation, EvaluationContext
from service_eligibility.app.store.memory import InMemoryAtomStore


TEST_TENANT = "tenant-1"


def create_request_context(tenant_id: str = TEST_TENANT, request_id: Optional[str] = None,
                           user_id: Optional[str] = None) -> RequestContext:
    """Create a request context."""
    if request_id is None:
        return RequestContext(tenant_id=tenant_id, user_id=user_id)
    return RequestContext(tenant_id=tenant_id, request_id=request_id, user_id=user_id)


def create_simple_atom(code: str, field: str = "age", operator: str = "GREATER_THAN_OR_EQUAL",
                       value: Any = 18, tenant_id: str = TEST_TENANT,
                       status: AtomStatus = AtomStatus.ACTIVE, **kwargs) -> Atom:
    """Create a simple atom with a single condition."""
    return Atom(
        tenant_id=tenant_id,
        code=code,
        type=AtomType.SIMPLE,
        logic_definition={"condition": {"field": field, "operator": operator, "value": value}},
        status=status,
        **kwargs
    )


def create_complex_atom(code: str, conditions: List[Dict[str, Any]], operator: str = "AND",
                        tenant_id: str = TEST_TENANT, status: AtomStatus = AtomStatus.ACTIVE,
                        **kwargs) -> Atom:
    """Create a complex atom combining several conditions."""
    return Atom(
        tenant_id=tenant_id,
        code=code,
        type=AtomType.COMPLEX,
        logic_definition={"conditions": conditions, "operator": operator},
        status=status,
        **kwargs
    )


def create_composite_atom(code: str, children: Iterable[str], operator: str = "AND",
                          tenant_id: str = TEST_TENANT, status: AtomStatus = AtomStatus.ACTIVE,
                          dependencies: Optional[Iterable[str]] = None, **kwargs) -> Atom:
    """Create a composite atom; dependencies default to the children."""
    children = list(children)
    return Atom(
        tenant_id=tenant_id,
        code=code,
        type=AtomType.COMPOSITE,
        logic_definition={"childAtoms": children, "operator": operator},
        dependencies=tuple(children if dependencies is None else dependencies),
        status=status,
        **kwargs
    )


def create_chain(length: int, prefix: str = "CHAIN", tenant_id: str = TEST_TENANT) -> List[Atom]:
    """Create ``length`` atoms where each depends on the next; the last is a simple leaf."""
    codes = [f"{prefix}_{index:02d}" for index in range(length)]
    atoms = [
        create_composite_atom(code, [codes[index + 1]], tenant_id=tenant_id)
        for index, code in enumerate(codes[:-1])
    ]
    atoms.append(create_simple_atom(codes[-1], tenant_id=tenant_id))
    return atoms


def create_store(*atoms: Atom) -> InMemoryAtomStore:
    """Create an in-memory store seeded with ``atoms``."""
    store = InMemoryAtomStore()
    for atom in atoms:
        store.save(atom)
    return store


class SlowEvaluator:
    """Evaluator that sleeps before answering; used to exercise timeouts."""

    def __init__(self, delay: float, eligible: bool = True):
        self.delay = delay
        self.eligible = eligible
        self.calls = 0

    async def evaluate(self, context: EvaluationContext) -> Evaluation:
        self.calls += 1
        await asyncio.sleep(self.delay)
        return Evaluation(eligible=self.eligible, value=self.eligible, reason="slow evaluation")


class FailingEvaluator:
    """Evaluator that raises an unexpected error."""

    def __init__(self, error: Exception):
        self.error = error

    async def evaluate(self, context: EvaluationContext) -> Evaluation:
        raise self.error
