"""
Unit tests for comparison and logical operators.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_eligibility.app.atoms.models import ComparisonOperator as Op, LogicalOperator
from service_eligibility.app.atoms.operators import combine, compare, explain, to_bool, to_number


class TestCoercion:
    """Test cases for operand coercion."""

    def test_to_number(self):
        """Test numbers pass through and numeric strings are parsed."""
        assert to_number(5) == 5.0
        assert to_number(2.5) == 2.5
        assert to_number(" 42 ") == 42.0
        assert to_number("abc") is None
        assert to_number(None) is None
        assert to_number(True) is None
        assert to_number([1]) is None

    def test_to_bool(self):
        """Test boolean coercion of logical operands."""
        assert to_bool(True) is True
        assert to_bool(0) is False
        assert to_bool(3) is True
        assert to_bool("  ") is False
        assert to_bool("yes") is True
        assert to_bool(None) is False
        assert to_bool({"a": 1}) is True


class TestCompare:
    """Test cases for comparison operators."""

    def test_equality(self):
        """Test value equality."""
        assert compare("US", "US", Op.EQUALS) is True
        assert compare("US", "CA", Op.EQUALS) is False
        assert compare("US", "CA", Op.NOT_EQUALS) is True

    def test_numeric_comparisons(self):
        """Test numeric comparisons coerce numeric strings."""
        assert compare(20, 18, Op.GREATER_THAN) is True
        assert compare("20", 18, Op.GREATER_THAN) is True
        assert compare(18, 18, Op.GREATER_THAN_OR_EQUAL) is True
        assert compare(17.5, "18", Op.LESS_THAN) is True
        assert compare(18, 18, Op.LESS_THAN_OR_EQUAL) is True

    @pytest.mark.parametrize("actual", ["abc", None, True, [20]])
    def test_numeric_comparison_fails_closed(self, actual):
        """Test non-numeric operands make numeric comparisons false."""
        assert compare(actual, 18, Op.GREATER_THAN) is False
        assert compare(actual, 18, Op.LESS_THAN) is False

    def test_between(self):
        """Test inclusive range checks."""
        assert compare(30, [18, 65], Op.BETWEEN) is True
        assert compare(18, [18, 65], Op.BETWEEN) is True
        assert compare(70, [18, 65], Op.BETWEEN) is False
        assert compare(70, [18, 65], Op.NOT_BETWEEN) is True
        assert compare(30, [18, 65], Op.NOT_BETWEEN) is False

    def test_between_fails_closed(self):
        """Test malformed ranges and operands make range checks false."""
        assert compare(30, [18], Op.BETWEEN) is False
        assert compare(30, "18-65", Op.BETWEEN) is False
        assert compare("abc", [18, 65], Op.BETWEEN) is False
        assert compare("abc", [18, 65], Op.NOT_BETWEEN) is False

    def test_string_operators(self):
        """Test string operators use the text form of operands."""
        assert compare("hello world", "world", Op.CONTAINS) is True
        assert compare("hello world", "moon", Op.NOT_CONTAINS) is True
        assert compare("premium-gold", "premium", Op.STARTS_WITH) is True
        assert compare("user@example.com", ".com", Op.ENDS_WITH) is True
        assert compare(12345, "234", Op.CONTAINS) is True
        assert compare(None, "x", Op.CONTAINS) is False
        assert compare(None, "x", Op.NOT_CONTAINS) is False

    def test_matches(self):
        """Test regular expressions must match the whole value."""
        assert compare("US", r"[A-Z]{2}", Op.MATCHES) is True
        assert compare("USA", r"[A-Z]{2}", Op.MATCHES) is False
        assert compare("USA", r"[A-Z]{2}", Op.NOT_MATCHES) is True

    def test_invalid_regex_fails_closed(self):
        """Test an invalid pattern never matches nor not-matches."""
        assert compare("US", "[", Op.MATCHES) is False
        assert compare("US", "[", Op.NOT_MATCHES) is False

    def test_membership(self):
        """Test list membership."""
        assert compare("US", ["US", "CA"], Op.IN) is True
        assert compare("FR", ["US", "CA"], Op.IN) is False
        assert compare("FR", ["US", "CA"], Op.NOT_IN) is True
        assert compare("US", "US", Op.IN) is False
        assert compare("US", "US", Op.NOT_IN) is True

    def test_null_checks(self):
        """Test null checks."""
        assert compare(None, None, Op.IS_NULL) is True
        assert compare(0, None, Op.IS_NULL) is False
        assert compare(0, None, Op.IS_NOT_NULL) is True


class TestCombine:
    """Test cases for logical operators."""

    def test_and_or(self):
        """Test AND and OR."""
        assert combine(LogicalOperator.AND, [True, True]) is True
        assert combine(LogicalOperator.AND, [True, False]) is False
        assert combine(LogicalOperator.OR, [False, True]) is True
        assert combine(LogicalOperator.OR, [False, False]) is False

    def test_not_requires_single_operand(self):
        """Test NOT negates exactly one operand."""
        assert combine(LogicalOperator.NOT, [False]) is True
        assert combine(LogicalOperator.NOT, [True]) is False
        assert combine(LogicalOperator.NOT, [False, False]) is False

    def test_xor_nand_nor(self):
        """Test XOR, NAND and NOR."""
        assert combine(LogicalOperator.XOR, [True, False, False]) is True
        assert combine(LogicalOperator.XOR, [True, True]) is False
        assert combine(LogicalOperator.NAND, [True, True]) is False
        assert combine(LogicalOperator.NAND, [True, False]) is True
        assert combine(LogicalOperator.NOR, [False, False]) is True
        assert combine(LogicalOperator.NOR, [False, True]) is False

    def test_operands_are_coerced(self):
        """Test non-boolean operands are coerced."""
        assert combine(LogicalOperator.AND, [1, "x", {"a": 1}]) is True
        assert combine(LogicalOperator.OR, [0, "  ", None]) is False


class TestExplain:
    """Test cases for reason strings."""

    def test_range_violations(self):
        """Test range violations name the violated bound."""
        assert explain("age", 70, Op.BETWEEN, [18, 65], False) == "age 70 above maximum 65"
        assert explain("age", 10, Op.BETWEEN, [18, 65], False) == "age 10 below minimum 18"

    def test_bound_violations(self):
        """Test single bound violations."""
        assert explain("age", 16, Op.GREATER_THAN_OR_EQUAL, 18, False) == "age 16 below minimum 18"
        assert explain("age", 70, Op.LESS_THAN_OR_EQUAL, 65, False) == "age 70 above maximum 65"

    def test_missing_field(self):
        """Test an absent field is reported as missing."""
        assert explain("age", None, Op.BETWEEN, [18, 65], False) == "age is missing"

    def test_other_outcomes(self):
        """Test generic success and failure phrasing."""
        assert explain("age", 30, Op.BETWEEN, [18, 65], True) == "age satisfies BETWEEN [18, 65]"
        assert explain("country", "FR", Op.IN, ["US", "CA"], False) == \
            "country FR does not satisfy IN [US, CA]"
