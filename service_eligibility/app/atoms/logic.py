"""
Typed logic payloads, one variant per atom type.

Atoms are authored with a loosely typed ``logic_definition`` mapping. The
parsers here turn that mapping into a frozen variant once, collecting every
structural problem as a descriptive string, so evaluation never has to
re-inspect the raw payload.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..errors import InvalidLogicError, MissingParameterError
from .models import AtomType, ComparisonOperator, LogicalOperator, MODEL_TYPES

DEFAULT_MAX_CONDITIONS = 20

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_MISSING = object()


@dataclass(frozen=True)
class Condition:
    field: str
    operator: ComparisonOperator
    value: Any


@dataclass(frozen=True)
class SimpleLogic:
    condition: Condition


@dataclass(frozen=True)
class ComplexLogic:
    conditions: Tuple[Condition, ...]
    operator: LogicalOperator


@dataclass(frozen=True)
class CompositeLogic:
    child_atoms: Tuple[str, ...]
    operator: LogicalOperator


@dataclass(frozen=True)
class TemplateParameter:
    name: str
    default: Any = _MISSING

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING


@dataclass(frozen=True)
class TemplateLogic:
    template: Dict[str, Any]
    parameters: Tuple[TemplateParameter, ...]

    def render(self, values: Mapping[str, Any]) -> SimpleLogic:
        """Substitute parameters and return the resulting Simple payload."""
        bound = {}
        for param in self.parameters:
            if param.name in values:
                bound[param.name] = values[param.name]
            elif param.has_default:
                bound[param.name] = param.default
            else:
                raise MissingParameterError(param.name)

        rendered = _substitute(self.template, bound)
        if isinstance(rendered, dict) and "condition" not in rendered and "field" in rendered:
            rendered = {"condition": rendered}

        errors: List[str] = []
        logic = _parse_simple(rendered if isinstance(rendered, dict) else {}, errors)
        if errors:
            raise InvalidLogicError([f"rendered template: {e}" for e in errors])
        return logic


@dataclass(frozen=True)
class ModelLogic:
    model_type: str
    version: str
    config: Dict[str, Any]


Logic = Union[SimpleLogic, ComplexLogic, CompositeLogic, TemplateLogic, ModelLogic]


def _substitute(node: Any, values: Mapping[str, Any]) -> Any:
    if isinstance(node, dict):
        return {k: _substitute(v, values) for k, v in node.items()}
    if isinstance(node, list):
        return [_substitute(v, values) for v in node]
    if isinstance(node, str):
        whole = _PLACEHOLDER.fullmatch(node)
        if whole and whole.group(1) in values:
            # Keep the parameter's own type when it is the whole string
            return values[whole.group(1)]
        return _PLACEHOLDER.sub(
            lambda m: str(values[m.group(1)]) if m.group(1) in values else m.group(0),
            node
        )
    return node


def _parse_comparison(name: Any) -> Optional[ComparisonOperator]:
    if not isinstance(name, str):
        return None
    try:
        return ComparisonOperator(name.upper())
    except ValueError:
        return None


def _parse_logical(logic: Mapping[str, Any], errors: List[str]) -> Optional[LogicalOperator]:
    name = logic.get("operator")
    if name is None:
        errors.append("Logical 'operator' is required")
        return None
    if isinstance(name, str):
        try:
            return LogicalOperator(name.upper())
        except ValueError:
            pass
    errors.append(f"Invalid logical operator: {name}")
    return None


def parse_condition(data: Any, errors: List[str], prefix: str = "condition") -> Optional[Condition]:
    if not isinstance(data, Mapping):
        errors.append(f"{prefix} must be an object")
        return None

    start = len(errors)
    field = data.get("field")
    if not isinstance(field, str) or not field.strip():
        errors.append(f"{prefix} must specify 'field'")

    operator = ComparisonOperator.EQUALS
    if "operator" in data:
        operator = _parse_comparison(data["operator"])
        if operator is None:
            errors.append(f"{prefix} has invalid operator: {data['operator']}")

    if "value" not in data and operator not in (ComparisonOperator.IS_NULL, ComparisonOperator.IS_NOT_NULL):
        errors.append(f"{prefix} must specify 'value'")

    if len(errors) > start:
        return None
    return Condition(field=field, operator=operator, value=data.get("value"))


def _parse_simple(logic: Mapping[str, Any], errors: List[str], **_) -> Optional[SimpleLogic]:
    if not isinstance(logic.get("condition"), Mapping):
        errors.append("Simple atom must have a 'condition' object")
        return None
    condition = parse_condition(logic["condition"], errors)
    return SimpleLogic(condition) if condition else None


def _parse_complex(logic: Mapping[str, Any], errors: List[str],
                   max_conditions: int = DEFAULT_MAX_CONDITIONS) -> Optional[ComplexLogic]:
    start = len(errors)
    raw = logic.get("conditions")
    conditions: List[Condition] = []
    if not isinstance(raw, list):
        errors.append("Complex atom must have 'conditions' array")
    else:
        if not raw:
            errors.append("Complex atom must have at least one condition")
        if len(raw) > max_conditions:
            errors.append(f"Complex atom cannot have more than {max_conditions} conditions")
        for index, item in enumerate(raw):
            condition = parse_condition(item, errors, f"conditions[{index}]")
            if condition:
                conditions.append(condition)

    operator = _parse_logical(logic, errors)
    if len(errors) > start:
        return None
    return ComplexLogic(tuple(conditions), operator)


def _parse_composite(logic: Mapping[str, Any], errors: List[str], **_) -> Optional[CompositeLogic]:
    start = len(errors)
    raw = logic.get("childAtoms")
    children: List[str] = []
    if not isinstance(raw, list) or not raw:
        errors.append("Composite atom must have non-empty 'childAtoms' array")
    else:
        for index, child in enumerate(raw):
            if not isinstance(child, str):
                errors.append(f"childAtoms[{index}] must be a string (atom code)")
            elif not child.strip():
                errors.append(f"childAtoms[{index}] cannot be blank")
            else:
                children.append(child)

    operator = _parse_logical(logic, errors)
    if len(errors) > start:
        return None
    return CompositeLogic(tuple(children), operator)


def _parse_template(logic: Mapping[str, Any], errors: List[str], **_) -> Optional[TemplateLogic]:
    start = len(errors)
    template = logic.get("template")
    if not isinstance(template, Mapping):
        errors.append("Template atom must have 'template' object")

    raw = logic.get("parameters")
    parameters: List[TemplateParameter] = []
    if not isinstance(raw, list):
        errors.append("Template atom must have 'parameters' array")
    else:
        for index, item in enumerate(raw):
            if isinstance(item, str) and item:
                parameters.append(TemplateParameter(item))
            elif isinstance(item, Mapping) and isinstance(item.get("name"), str) and item["name"]:
                parameters.append(TemplateParameter(item["name"], item.get("default", _MISSING)))
            else:
                errors.append(f"parameters[{index}] must be a name or an object with 'name'")

    if len(errors) > start:
        return None
    return TemplateLogic(dict(template), tuple(parameters))


def _parse_model(logic: Mapping[str, Any], errors: List[str], **_) -> Optional[ModelLogic]:
    model = logic.get("model")
    if not isinstance(model, Mapping):
        errors.append("ML atom must have 'model' object")
        return None

    start = len(errors)
    model_type = model.get("type")
    if not isinstance(model_type, str):
        errors.append("ML atom model must specify 'type'")
    elif model_type.lower() not in MODEL_TYPES:
        errors.append(f"Invalid ML model type: {model_type}")

    version = model.get("version")
    if not isinstance(version, str) or not version.strip():
        errors.append("ML atom model must specify 'version'")

    if len(errors) > start:
        return None
    return ModelLogic(model_type.lower(), version, dict(model))


_PARSERS = {
    AtomType.SIMPLE: _parse_simple,
    AtomType.COMPLEX: _parse_complex,
    AtomType.COMPOSITE: _parse_composite,
    AtomType.TEMPLATE: _parse_template,
    AtomType.MACHINE_LEARNING: _parse_model,
}


def check_logic(atom_type: AtomType, payload: Any,
                max_conditions: int = DEFAULT_MAX_CONDITIONS) -> List[str]:
    """Return every structural problem of ``payload`` for ``atom_type``."""
    errors: List[str] = []
    if not isinstance(payload, Mapping) or not payload:
        return ["Logic definition is required"]
    _PARSERS[atom_type](payload, errors, max_conditions=max_conditions)
    return errors


def parse_logic(atom_type: AtomType, payload: Any,
                max_conditions: int = DEFAULT_MAX_CONDITIONS) -> Logic:
    """Parse ``payload`` into its typed variant or raise ``InvalidLogicError``."""
    errors: List[str] = []
    if not isinstance(payload, Mapping) or not payload:
        raise InvalidLogicError(["Logic definition is required"])
    logic = _PARSERS[atom_type](payload, errors, max_conditions=max_conditions)
    if errors or logic is None:
        raise InvalidLogicError(errors or ["Logic definition could not be parsed"])
    return logic
