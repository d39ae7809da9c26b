"""
Comparison and logical operators used by atom evaluation.

All functions are pure. Numeric comparisons coerce numbers as-is and
strings by parsing them as floats; anything else, or a string that does
not parse, makes the comparison evaluate to ``False`` instead of raising.
"""

import re
from typing import Any, Callable, Iterable, List, Optional

from .models import ComparisonOperator, LogicalOperator


def to_number(value: Any) -> Optional[float]:
    """Coerce a value to float, or ``None`` when it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def to_bool(value: Any) -> bool:
    """Coerce an operand for logical combination."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _compare_numbers(actual: Any, expected: Any, comparison: Callable[[float, float], bool]) -> bool:
    actual_num = to_number(actual)
    expected_num = to_number(expected)
    if actual_num is None or expected_num is None:
        return False
    return comparison(actual_num, expected_num)


def _range_bounds(expected: Any) -> Optional[List[Any]]:
    if isinstance(expected, (list, tuple)) and len(expected) == 2:
        return list(expected)
    return None


def _in_range(actual: Any, expected: Any) -> Optional[bool]:
    bounds = _range_bounds(expected)
    if bounds is None:
        return None
    actual_num = to_number(actual)
    low, high = to_number(bounds[0]), to_number(bounds[1])
    if actual_num is None or low is None or high is None:
        return None
    return low <= actual_num <= high


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _matches(actual: Any, pattern: Any) -> Optional[bool]:
    text, regex = _text(actual), _text(pattern)
    if text is None or regex is None:
        return None
    try:
        return re.fullmatch(regex, text) is not None
    except re.error:
        return None


def _membership(actual: Any, expected: Any) -> Optional[bool]:
    if isinstance(expected, (list, tuple, set, frozenset)):
        return actual in expected
    return None


def compare(actual: Any, expected: Any, operator: ComparisonOperator) -> bool:
    """Evaluate ``actual <operator> expected``."""
    if operator == ComparisonOperator.EQUALS:
        return actual == expected

    elif operator == ComparisonOperator.NOT_EQUALS:
        return actual != expected

    elif operator == ComparisonOperator.GREATER_THAN:
        return _compare_numbers(actual, expected, lambda a, e: a > e)

    elif operator == ComparisonOperator.GREATER_THAN_OR_EQUAL:
        return _compare_numbers(actual, expected, lambda a, e: a >= e)

    elif operator == ComparisonOperator.LESS_THAN:
        return _compare_numbers(actual, expected, lambda a, e: a < e)

    elif operator == ComparisonOperator.LESS_THAN_OR_EQUAL:
        return _compare_numbers(actual, expected, lambda a, e: a <= e)

    elif operator == ComparisonOperator.BETWEEN:
        return _in_range(actual, expected) is True

    elif operator == ComparisonOperator.NOT_BETWEEN:
        return _in_range(actual, expected) is False

    elif operator in (ComparisonOperator.CONTAINS, ComparisonOperator.NOT_CONTAINS,
                      ComparisonOperator.STARTS_WITH, ComparisonOperator.ENDS_WITH):
        text, needle = _text(actual), _text(expected)
        if text is None or needle is None:
            return False
        if operator == ComparisonOperator.CONTAINS:
            return needle in text
        if operator == ComparisonOperator.NOT_CONTAINS:
            return needle not in text
        if operator == ComparisonOperator.STARTS_WITH:
            return text.startswith(needle)
        return text.endswith(needle)

    elif operator == ComparisonOperator.MATCHES:
        return _matches(actual, expected) is True

    elif operator == ComparisonOperator.NOT_MATCHES:
        return _matches(actual, expected) is False

    elif operator == ComparisonOperator.IN:
        return _membership(actual, expected) is True

    elif operator == ComparisonOperator.NOT_IN:
        return _membership(actual, expected) is not True

    elif operator == ComparisonOperator.IS_NULL:
        return actual is None

    elif operator == ComparisonOperator.IS_NOT_NULL:
        return actual is not None

    return False


def combine(operator: LogicalOperator, operands: Iterable[Any]) -> bool:
    """Combine operands with a logical operator after boolean coercion."""
    values = [to_bool(v) for v in operands]

    if operator == LogicalOperator.AND:
        return all(values)
    elif operator == LogicalOperator.OR:
        return any(values)
    elif operator == LogicalOperator.NOT:
        return len(values) == 1 and not values[0]
    elif operator == LogicalOperator.XOR:
        return sum(1 for v in values if v) == 1
    elif operator == LogicalOperator.NAND:
        return not all(values)
    elif operator == LogicalOperator.NOR:
        return not any(values)

    return False


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_fmt(v) for v in value) + "]"
    text = _text(value)
    return "null" if text is None else text


def explain(field: str, actual: Any, operator: ComparisonOperator, expected: Any, matched: bool) -> str:
    """Human readable reason for a condition outcome."""
    if actual is None and operator not in (ComparisonOperator.IS_NULL, ComparisonOperator.IS_NOT_NULL):
        return f"{field} is missing"

    if not matched:
        actual_num = to_number(actual)
        if actual_num is not None:
            if operator in (ComparisonOperator.BETWEEN, ComparisonOperator.NOT_BETWEEN):
                bounds = _range_bounds(expected)
                if bounds is not None and operator == ComparisonOperator.BETWEEN:
                    low, high = to_number(bounds[0]), to_number(bounds[1])
                    if high is not None and actual_num > high:
                        return f"{field} {_fmt(actual)} above maximum {_fmt(bounds[1])}"
                    if low is not None and actual_num < low:
                        return f"{field} {_fmt(actual)} below minimum {_fmt(bounds[0])}"
            elif operator in (ComparisonOperator.GREATER_THAN, ComparisonOperator.GREATER_THAN_OR_EQUAL):
                return f"{field} {_fmt(actual)} below minimum {_fmt(expected)}"
            elif operator in (ComparisonOperator.LESS_THAN, ComparisonOperator.LESS_THAN_OR_EQUAL):
                return f"{field} {_fmt(actual)} above maximum {_fmt(expected)}"
        return f"{field} {_fmt(actual)} does not satisfy {operator.value} {_fmt(expected)}"

    return f"{field} satisfies {operator.value} {_fmt(expected)}"
