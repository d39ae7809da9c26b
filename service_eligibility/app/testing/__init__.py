"""
Replay of an atom's declared test cases.
"""

from .harness import TestCaseResult, TestHarness, TestReport

__all__ = ["TestCaseResult", "TestHarness", "TestReport"]
