"""Assertion helpers for testing sqla-rls policy behavior."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqla_rls.context._auth import PolicyEvaluationContext
from sqla_rls.evaluation._evaluator import PolicyEvaluator
from sqla_rls.evaluation._models import EvaluationResult

__all__ = ["assert_allowed", "assert_denied", "assert_filters"]


async def assert_allowed(
    evaluator: PolicyEvaluator,
    table: str,
    operation: str,
    ctx: PolicyEvaluationContext,
    *,
    policy_name: str | None = None,
) -> EvaluationResult:
    """Assert that *operation* on *table* is allowed for *ctx*.

    Args:
        evaluator: The evaluator under test.
        table: Table name.
        operation: Operation to evaluate.
        ctx: Evaluation context.
        policy_name: If given, also assert that this policy decided.

    Returns:
        The ``EvaluationResult`` for further inspection.

    Example::

        await assert_allowed(evaluator, "posts", "read", make_context(make_admin()))
    """
    result = await evaluator.evaluate(table, operation, ctx)
    if not result.allowed:
        raise AssertionError(
            f"expected {operation} on {table} to be allowed, but it was denied\n{result}"
        )
    if policy_name is not None and result.policy_name != policy_name:
        raise AssertionError(
            f"expected policy {policy_name!r} to decide, got {result.policy_name!r}\n{result}"
        )
    return result


async def assert_denied(
    evaluator: PolicyEvaluator,
    table: str,
    operation: str,
    ctx: PolicyEvaluationContext,
    *,
    policy_name: str | None = None,
) -> EvaluationResult:
    """Assert that *operation* on *table* is denied for *ctx*.

    The inverse of ``assert_allowed``; covers explicit deny policies and
    ``default_deny`` tables alike.
    """
    result = await evaluator.evaluate(table, operation, ctx)
    if result.allowed:
        raise AssertionError(
            f"expected {operation} on {table} to be denied, but it was allowed\n{result}"
        )
    if policy_name is not None and result.policy_name != policy_name:
        raise AssertionError(
            f"expected policy {policy_name!r} to decide, got {result.policy_name!r}\n{result}"
        )
    return result


async def assert_filters(
    evaluator: PolicyEvaluator,
    table: str,
    ctx: PolicyEvaluationContext,
    expected: Mapping[str, Any],
    *,
    operation: str = "read",
) -> None:
    """Assert that the merged filter conditions equal *expected* exactly."""
    result = await evaluator.get_filters(table, operation, ctx)
    if dict(result.conditions) != dict(expected):
        raise AssertionError(
            f"expected filter conditions {dict(expected)!r} for {table}, "
            f"got {result.conditions!r} (applied: {result.applied_filters!r})"
        )
