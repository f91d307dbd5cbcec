"""Evaluation — the decision algorithm and its result types."""

from sqla_rls.evaluation._evaluator import PolicyEvaluator
from sqla_rls.evaluation._models import (
    EvaluationResult,
    FilterResult,
    PolicyTestResult,
    PolicyTrace,
)

__all__ = [
    "EvaluationResult",
    "FilterResult",
    "PolicyEvaluator",
    "PolicyTestResult",
    "PolicyTrace",
]
