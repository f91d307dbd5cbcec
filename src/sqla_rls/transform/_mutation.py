"""MutationGuard — row-level checks ahead of INSERT, UPDATE and DELETE."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqla_rls.context._auth import PolicyEvaluationContext
from sqla_rls.context._scope import resolve_context
from sqla_rls.evaluation._evaluator import PolicyEvaluator
from sqla_rls.evaluation._models import EvaluationResult
from sqla_rls.exceptions import AccessDeniedError, RLSError

__all__ = ["MutationGuard"]

logger = logging.getLogger("sqla_rls")


class MutationGuard:
    """Checks a single write against the registered policies.

    The guard never issues SQL itself: callers load the existing row
    (for updates and deletes), call the matching ``check_*`` method and
    only then execute their statement.

    Example::

        guard = MutationGuard(evaluator)
        await guard.check_update("posts", existing, {"title": "New"}, ctx)
        await session.execute(update(Post).where(...).values(title="New"))
    """

    def __init__(self, evaluator: PolicyEvaluator | None = None) -> None:
        self._evaluator = evaluator if evaluator is not None else PolicyEvaluator()

    @property
    def evaluator(self) -> PolicyEvaluator:
        return self._evaluator

    async def check(
        self,
        table: str,
        operation: str,
        ctx: PolicyEvaluationContext | None = None,
    ) -> EvaluationResult:
        """Evaluate *operation* on *table* and raise if it is denied.

        Returns:
            The allowing ``EvaluationResult``.

        Raises:
            AccessDeniedError: The operation was denied, or evaluation
                failed unexpectedly.
        """
        ctx = resolve_context(ctx)
        try:
            result = await self._evaluator.evaluate(table, operation, ctx)
        except RLSError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error evaluating %s on %s", operation, table)
            raise AccessDeniedError(
                table=table,
                operation=operation,
                reason=f"Policy evaluation failed: {exc}",
            ) from exc
        if not result.allowed:
            raise AccessDeniedError(
                table=table,
                operation=operation,
                reason=result.reason or "denied",
                policy_name=result.policy_name,
                result=result,
            )
        return result

    async def check_create(
        self,
        table: str,
        data: Mapping[str, Any],
        ctx: PolicyEvaluationContext | None = None,
    ) -> None:
        """Check an INSERT of *data*: the create decision, then validate policies.

        Raises:
            AccessDeniedError: Create is denied.
            ValidationError: A validate policy rejected *data*.
        """
        ctx = resolve_context(ctx).with_row(None, data)
        await self.check(table, "create", ctx)
        await self._validate(table, "create", ctx)

    async def check_update(
        self,
        table: str,
        existing_row: Mapping[str, Any],
        data: Mapping[str, Any],
        ctx: PolicyEvaluationContext | None = None,
    ) -> None:
        """Check an UPDATE of *existing_row* with *data*.

        Predicates see the current row as ``ctx.row`` and the new values
        as ``ctx.data``.
        """
        ctx = resolve_context(ctx).with_row(existing_row, data)
        await self.check(table, "update", ctx)
        await self._validate(table, "update", ctx)

    async def check_delete(
        self,
        table: str,
        existing_row: Mapping[str, Any],
        ctx: PolicyEvaluationContext | None = None,
    ) -> None:
        ctx = resolve_context(ctx).with_row(existing_row)
        await self.check(table, "delete", ctx)

    async def _validate(self, table: str, operation: str, ctx: PolicyEvaluationContext) -> None:
        try:
            await self._evaluator.validate_write(table, operation, ctx)
        except RLSError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error validating %s on %s", operation, table)
            raise AccessDeniedError(
                table=table,
                operation=operation,
                reason=f"Write validation failed: {exc}",
            ) from exc
