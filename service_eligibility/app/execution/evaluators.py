"""
Per-type atom evaluators.

An evaluator is built once per atom version from its parsed logic and is
then reused for every execution. Evaluators never execute other atoms:
dependency and child results are computed by the engine beforehand and
handed in through the ``EvaluationContext``.
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol

from ..atoms.logic import (
    CompositeLogic, ComplexLogic, Condition, ModelLogic, SimpleLogic, TemplateLogic,
    DEFAULT_MAX_CONDITIONS, parse_logic
)
from ..atoms.models import Atom, AtomType
from ..atoms.operators import combine, compare, explain, to_number
from ..context import RequestContext
from ..errors import AtomExecutionError, InvalidLogicError, MissingParameterError
from .models import ExecutionResult


@dataclass(frozen=True)
class Evaluation:
    """Outcome of evaluating an atom's own logic."""
    eligible: bool
    value: Any
    reason: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EvaluationContext:
    """Read-only inputs of one evaluation."""
    input: Mapping[str, Any]
    dependency_results: Mapping[str, ExecutionResult]
    request: RequestContext

    def get_field_value(self, name: str) -> Any:
        """Resolve a field from input first, then from dependency results."""
        # Check direct input fields
        if name in self.input:
            return self.input[name]

        if name in self.dependency_results:
            return self.dependency_results[name].value

        # Check special fields
        if name == "tenant_id":
            return self.request.tenant_id

        if name == "user_id":
            return self.request.user_id

        # Check nested fields (e.g., "device.type" or "CHURN_MODEL.prediction")
        if "." in name:
            head, *rest = name.split(".")
            if head in self.input:
                value = self.input[head]
            elif head in self.dependency_results:
                value = _result_view(self.dependency_results[head])
            else:
                return None

            for part in rest:
                if isinstance(value, Mapping) and part in value:
                    value = value[part]
                else:
                    return None

            return value

        return None


def _result_view(result: ExecutionResult) -> Dict[str, Any]:
    view = dict(result.value) if isinstance(result.value, Mapping) else {}
    view.update({
        "eligible": result.eligible,
        "success": result.success,
        "value": result.value,
        "reason": result.reason,
    })
    return view


class Evaluator(Protocol):
    async def evaluate(self, context: EvaluationContext) -> Evaluation:
        ...


def _evaluate_condition(condition: Condition, context: EvaluationContext) -> Evaluation:
    actual = context.get_field_value(condition.field)
    matched = compare(actual, condition.value, condition.operator)
    return Evaluation(
        eligible=matched,
        value=matched,
        reason=explain(condition.field, actual, condition.operator, condition.value, matched),
        metadata={"field": condition.field, "actual": actual}
    )


class SimpleEvaluator:
    """Evaluates a single condition."""

    def __init__(self, logic: SimpleLogic):
        self.logic = logic

    async def evaluate(self, context: EvaluationContext) -> Evaluation:
        return _evaluate_condition(self.logic.condition, context)


class ComplexEvaluator:
    """Evaluates conditions independently and combines them."""

    def __init__(self, logic: ComplexLogic):
        self.logic = logic

    async def evaluate(self, context: EvaluationContext) -> Evaluation:
        outcomes = [_evaluate_condition(c, context) for c in self.logic.conditions]
        eligible = combine(self.logic.operator, [o.eligible for o in outcomes])

        reasons = [o.reason for o in outcomes]
        if not eligible:
            reasons = [o.reason for o in outcomes if not o.eligible] or reasons

        return Evaluation(
            eligible=eligible,
            value=eligible,
            reason="; ".join(reasons),
            metadata={
                "operator": self.logic.operator.value,
                "conditions": [
                    {"field": c.field, "operator": c.operator.value, "matched": o.eligible}
                    for c, o in zip(self.logic.conditions, outcomes)
                ]
            }
        )


class CompositeEvaluator:
    """Combines the eligibility of already executed child atoms."""

    def __init__(self, logic: CompositeLogic):
        self.logic = logic

    async def evaluate(self, context: EvaluationContext) -> Evaluation:
        children: Dict[str, bool] = {}
        for code in self.logic.child_atoms:
            result = context.dependency_results.get(code)
            # A child that did not produce a result counts as not eligible
            children[code] = bool(result and result.eligible)

        eligible = combine(self.logic.operator, list(children.values()))
        summary = ", ".join(f"{code}={'true' if ok else 'false'}" for code, ok in children.items())
        return Evaluation(
            eligible=eligible,
            value=eligible,
            reason=f"{self.logic.operator.value} of child atoms: {summary}",
            metadata={"operator": self.logic.operator.value, "children": children}
        )


class TemplateEvaluator:
    """Binds template parameters from the input and evaluates as Simple."""

    def __init__(self, logic: TemplateLogic, atom_code: str):
        self.logic = logic
        self.atom_code = atom_code

    async def evaluate(self, context: EvaluationContext) -> Evaluation:
        try:
            rendered = self.logic.render(context.input)
        except MissingParameterError as e:
            raise MissingParameterError(e.parameter, self.atom_code) from e

        outcome = _evaluate_condition(rendered.condition, context)
        outcome.metadata["rendered"] = {
            "field": rendered.condition.field,
            "operator": rendered.condition.operator.value,
            "value": rendered.condition.value,
        }
        return outcome


def placeholder_score(features: Mapping[str, Any]) -> float:
    """Deterministic score in [0, 0.99] derived from the input."""
    raw = json.dumps(features, sort_keys=True, separators=(",", ":"), default=str)
    return int(hashlib.md5(raw.encode("utf-8")).hexdigest(), 16) % 100 / 100.0


class ModelHandler(Protocol):
    """Model backend for one model type."""

    async def predict(self, model: ModelLogic, features: Mapping[str, Any]) -> Evaluation:
        ...


def _threshold(model: ModelLogic) -> float:
    threshold = to_number(model.config.get("threshold"))
    return 0.5 if threshold is None else threshold


class PlaceholderClassifier:
    async def predict(self, model: ModelLogic, features: Mapping[str, Any]) -> Evaluation:
        threshold = _threshold(model)
        score = placeholder_score(features)
        prediction = "ELIGIBLE" if score >= threshold else "NOT_ELIGIBLE"
        return Evaluation(
            eligible=prediction == "ELIGIBLE",
            value={"prediction": prediction, "confidence": score, "threshold": threshold},
            reason=f"classification {prediction} (confidence {score}, threshold {threshold})"
        )


class PlaceholderRegressor:
    async def predict(self, model: ModelLogic, features: Mapping[str, Any]) -> Evaluation:
        threshold = _threshold(model)
        score = placeholder_score(features)
        return Evaluation(
            eligible=score >= threshold,
            value={"prediction": score, "modelVersion": model.version},
            reason=f"regression score {score} against threshold {threshold}"
        )


class PlaceholderClusterer:
    async def predict(self, model: ModelLogic, features: Mapping[str, Any]) -> Evaluation:
        clusters = model.config.get("clusters")
        if isinstance(clusters, bool) or not isinstance(clusters, int) or clusters < 1:
            clusters = 3
        cluster = int(placeholder_score(features) * clusters)

        # Without an explicit allow-list every cluster is eligible
        allowed = model.config.get("eligibleClusters")
        eligible = cluster in allowed if isinstance(allowed, list) else True
        return Evaluation(
            eligible=eligible,
            value={"cluster": cluster, "totalClusters": clusters},
            reason=f"assigned to cluster {cluster} of {clusters}"
        )


class PlaceholderPredictor:
    async def predict(self, model: ModelLogic, features: Mapping[str, Any]) -> Evaluation:
        threshold = _threshold(model)
        score = placeholder_score(features)
        return Evaluation(
            eligible=score >= threshold,
            value={"prediction": score, "factors": list(features)[:3]},
            reason=f"prediction score {score} against threshold {threshold}"
        )


class ModelRegistry:
    """Model handlers keyed by model type."""

    def __init__(self, handlers: Optional[Mapping[str, ModelHandler]] = None):
        self._handlers: Dict[str, ModelHandler] = dict(handlers or {})

    @classmethod
    def with_placeholders(cls) -> "ModelRegistry":
        return cls({
            "classification": PlaceholderClassifier(),
            "regression": PlaceholderRegressor(),
            "clustering": PlaceholderClusterer(),
            "prediction": PlaceholderPredictor(),
        })

    def register(self, model_type: str, handler: ModelHandler):
        self._handlers[model_type.lower()] = handler

    def get(self, model_type: str) -> Optional[ModelHandler]:
        return self._handlers.get(model_type.lower())


class ModelEvaluator:
    """Dispatches to the handler registered for the atom's model type."""

    def __init__(self, logic: ModelLogic, registry: ModelRegistry, atom_code: str):
        self.logic = logic
        self.registry = registry
        self.atom_code = atom_code

    async def evaluate(self, context: EvaluationContext) -> Evaluation:
        handler = self.registry.get(self.logic.model_type)
        if handler is None:
            raise AtomExecutionError(
                f"Unsupported ML model type: {self.logic.model_type}", self.atom_code
            )
        outcome = await handler.predict(self.logic, context.input)
        outcome.metadata.update({"modelType": self.logic.model_type, "modelVersion": self.logic.version})
        return outcome


def build_evaluator(atom: Atom, registry: Optional[ModelRegistry] = None,
                    max_conditions: int = DEFAULT_MAX_CONDITIONS) -> Evaluator:
    """Parse the atom's logic once and return the matching evaluator."""
    try:
        logic = parse_logic(atom.type, atom.logic_definition, max_conditions=max_conditions)
    except InvalidLogicError as e:
        raise InvalidLogicError(e.validation_errors, atom.code) from e

    if atom.type == AtomType.SIMPLE:
        return SimpleEvaluator(logic)

    elif atom.type == AtomType.COMPLEX:
        return ComplexEvaluator(logic)

    elif atom.type == AtomType.COMPOSITE:
        return CompositeEvaluator(logic)

    elif atom.type == AtomType.TEMPLATE:
        return TemplateEvaluator(logic, atom.code)

    elif atom.type == AtomType.MACHINE_LEARNING:
        return ModelEvaluator(logic, registry or ModelRegistry.with_placeholders(), atom.code)

    raise AtomExecutionError(f"Unsupported atom type: {atom.type}", atom.code)
