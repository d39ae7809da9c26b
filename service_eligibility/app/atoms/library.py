"""
Library of common eligibility atoms.

Each factory authors an ordinary atom definition (Simple, Complex or
Composite) so library atoms go through the same validation, caching and
execution path as hand-written ones.
"""

from typing import Any, Dict, Iterable, Optional

from .models import Atom, AtomCategory, AtomStatus, AtomType


def _condition(field: str, operator: str, value: Any) -> Dict[str, Any]:
    return {"field": field, "operator": operator, "value": value}


def _atom(tenant_id: str, code: str, atom_type: AtomType, logic: Dict[str, Any],
          category: AtomCategory, **kwargs) -> Atom:
    kwargs.setdefault("status", AtomStatus.ACTIVE)
    return Atom(
        tenant_id=tenant_id,
        code=code,
        type=atom_type,
        logic_definition=logic,
        category=category,
        **kwargs
    )


def age_range(tenant_id: str, code: str = "AGE_RANGE", min_age: Optional[int] = None,
              max_age: Optional[int] = None, field: str = "age", **kwargs) -> Atom:
    """Customer age within ``[min_age, max_age]``; either bound may be open."""
    if min_age is None and max_age is None:
        raise ValueError("age_range needs min_age or max_age")

    if min_age is not None and max_age is not None:
        condition = _condition(field, "BETWEEN", [min_age, max_age])
    elif min_age is not None:
        condition = _condition(field, "GREATER_THAN_OR_EQUAL", min_age)
    else:
        condition = _condition(field, "LESS_THAN_OR_EQUAL", max_age)

    kwargs.setdefault("input_parameters", {field: {"type": "integer", "required": False}})
    kwargs.setdefault("description", "Checks if customer age falls within specified range")
    return _atom(tenant_id, code, AtomType.SIMPLE, {"condition": condition},
                 AtomCategory.DEMOGRAPHIC, **kwargs)


def geography(tenant_id: str, code: str = "GEOGRAPHY", included: Iterable[str] = (),
              excluded: Iterable[str] = (), field: str = "country", **kwargs) -> Atom:
    """Customer location in the included set and outside the excluded set."""
    included, excluded = list(included), list(excluded)
    if not included and not excluded:
        raise ValueError("geography needs included or excluded locations")

    kwargs.setdefault("description", "Checks customer location against specified criteria")
    conditions = []
    if included:
        conditions.append(_condition(field, "IN", included))
    if excluded:
        conditions.append(_condition(field, "NOT_IN", excluded))

    if len(conditions) == 1:
        return _atom(tenant_id, code, AtomType.SIMPLE, {"condition": conditions[0]},
                     AtomCategory.GEOGRAPHIC, **kwargs)
    return _atom(tenant_id, code, AtomType.COMPLEX, {"conditions": conditions, "operator": "AND"},
                 AtomCategory.GEOGRAPHIC, **kwargs)


def consent(tenant_id: str, code: str = "MARKETING_CONSENT", purpose: str = "marketing",
            field: str = "consent", **kwargs) -> Atom:
    """Customer granted consent for ``purpose``."""
    kwargs.setdefault("description", f"Checks customer consent for {purpose}")
    return _atom(tenant_id, code, AtomType.SIMPLE,
                 {"condition": _condition(f"{field}.{purpose}", "EQUALS", True)},
                 AtomCategory.CONSENT, **kwargs)


def device_type(tenant_id: str, code: str = "DEVICE_TYPE", allowed: Iterable[str] = ("mobile",),
                field: str = "device.type", **kwargs) -> Atom:
    """Request originates from one of the ``allowed`` device types."""
    kwargs.setdefault("description", "Checks the device type of the request")
    return _atom(tenant_id, code, AtomType.SIMPLE,
                 {"condition": _condition(field, "IN", list(allowed))},
                 AtomCategory.CONTEXTUAL, **kwargs)


def tenure(tenant_id: str, code: str = "TENURE", min_days: int = 30,
           field: str = "tenure_days", **kwargs) -> Atom:
    """Customer relationship at least ``min_days`` old."""
    kwargs.setdefault("description", "Checks customer tenure in days")
    return _atom(tenant_id, code, AtomType.SIMPLE,
                 {"condition": _condition(field, "GREATER_THAN_OR_EQUAL", min_days)},
                 AtomCategory.LIFECYCLE, **kwargs)


def engagement_score(tenant_id: str, code: str = "ENGAGEMENT_SCORE", threshold: float = 0.5,
                     field: str = "engagement_score", **kwargs) -> Atom:
    """Engagement score at or above ``threshold``."""
    kwargs.setdefault("description", "Checks customer engagement score")
    return _atom(tenant_id, code, AtomType.SIMPLE,
                 {"condition": _condition(field, "GREATER_THAN_OR_EQUAL", threshold)},
                 AtomCategory.ENGAGEMENT, **kwargs)


def composite(tenant_id: str, code: str, children: Iterable[str], operator: str = "AND",
              **kwargs) -> Atom:
    """Combine named child atoms with a logical operator."""
    children = list(children)
    kwargs.setdefault("dependencies", children)
    return _atom(tenant_id, code, AtomType.COMPOSITE,
                 {"childAtoms": children, "operator": operator},
                 AtomCategory.CUSTOM, **kwargs)
