"""
Declared input parameter schema of an atom.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .models import DataType


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    type: Optional[DataType] = None
    required: bool = False


def is_valid_type(value: Any, data_type: DataType) -> bool:
    """Check ``value`` conforms to ``data_type``."""
    if data_type == DataType.STRING:
        return isinstance(value, str)
    if data_type == DataType.INTEGER:
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    if data_type == DataType.LONG:
        return isinstance(value, int) and not isinstance(value, bool)
    if data_type == DataType.DOUBLE:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if data_type == DataType.BOOLEAN:
        return isinstance(value, bool)
    if data_type == DataType.LIST:
        return isinstance(value, (list, tuple))
    if data_type == DataType.MAP:
        return isinstance(value, dict)
    return True


def check_schema(schema: Any, schema_name: str = "inputParameters") -> List[str]:
    """Structural problems of a parameter schema mapping."""
    errors: List[str] = []
    if not isinstance(schema, Mapping):
        return [f"{schema_name} must be an object"]

    for name, config in schema.items():
        if not isinstance(config, Mapping):
            errors.append(f"{schema_name}.{name} must be an object")
            continue
        type_name = config.get("type")
        if type_name is not None:
            try:
                DataType(str(type_name).upper())
            except ValueError:
                errors.append(f"{schema_name}.{name} has invalid type: {type_name}")
        if "required" in config and not isinstance(config["required"], bool):
            errors.append(f"{schema_name}.{name}.required must be a boolean")
    return errors


def parse_schema(schema: Mapping[str, Any]) -> Dict[str, ParameterSpec]:
    """Parse a schema; entries with unknown types keep ``type=None``."""
    specs: Dict[str, ParameterSpec] = {}
    for name, config in (schema or {}).items():
        if not isinstance(config, Mapping):
            continue
        data_type = None
        if config.get("type") is not None:
            try:
                data_type = DataType(str(config["type"]).upper())
            except ValueError:
                data_type = None
        specs[name] = ParameterSpec(name, data_type, config.get("required") is True)
    return specs


def check_input(schema: Mapping[str, Any], values: Mapping[str, Any]) -> List[str]:
    """Missing required parameters and type mismatches of ``values``."""
    errors: List[str] = []
    for name, spec in parse_schema(schema).items():
        if name not in values:
            if spec.required:
                errors.append(f"Required parameter '{name}' is missing")
            continue
        if spec.type is not None and not is_valid_type(values[name], spec.type):
            errors.append(f"Parameter '{name}' has invalid type (expected: {spec.type.value.lower()})")
    return errors


def missing_required(schema: Mapping[str, Any], values: Mapping[str, Any]) -> List[str]:
    """Names of required parameters absent from ``values``."""
    return [
        name for name, spec in parse_schema(schema).items()
        if spec.required and name not in values
    ]
