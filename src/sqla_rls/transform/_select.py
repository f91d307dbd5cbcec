"""authorize_select() — apply row-level policies to SELECT statements."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from sqlalchemy import Alias, ColumnElement, FromClause, Join, Select, false, literal_column

from sqla_rls.context._auth import PolicyEvaluationContext
from sqla_rls.context._scope import resolve_context
from sqla_rls.evaluation._evaluator import PolicyEvaluator
from sqla_rls.exceptions import AccessDeniedError

__all__ = ["apply_conditions", "authorize_select"]

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


async def authorize_select(
    stmt: Select[Any],
    table: str,
    ctx: PolicyEvaluationContext | None = None,
    *,
    evaluator: PolicyEvaluator | None = None,
) -> Select[Any]:
    """Apply row-level authorization to a SQLAlchemy SELECT statement.

    Evaluates ``read`` for *table*; a denial raises before any SQL is
    built. Otherwise the merged conditions of every active filter policy
    are ANDed onto the statement's WHERE clause.

    Args:
        stmt: A SQLAlchemy 2.0 Select statement.
        table: Name of the table the statement reads.
        ctx: Evaluation context. Defaults to the ambient ``rls_context``.
        evaluator: Optional evaluator. Defaults to one over the global registry.

    Returns:
        A new Select with the filter conditions applied.

    Raises:
        AccessDeniedError: The caller may not read *table*, or a filter
            policy could not be evaluated.
        ContextMissingError: No *ctx* and no ambient context.

    Example::

        stmt = select(Post).where(Post.category == "tech")
        stmt = await authorize_select(stmt, "posts", ctx, evaluator=evaluator)
        # SQL: SELECT ... WHERE category = 'tech' AND posts.tenant_id = :tenant_id
    """
    ctx = resolve_context(ctx)
    target = evaluator if evaluator is not None else PolicyEvaluator()

    decision = await target.evaluate(table, "read", ctx)
    if not decision.allowed:
        raise AccessDeniedError(
            table=table,
            operation="read",
            reason=decision.reason or "denied",
            policy_name=decision.policy_name,
            result=decision,
        )

    filters = await target.get_filters(table, "read", ctx)
    return apply_conditions(stmt, table, filters.conditions)


def apply_conditions(
    stmt: Select[Any],
    table: str,
    conditions: Mapping[str, Any],
) -> Select[Any]:
    """AND ``{column: value}`` conditions onto *stmt*.

    ``None`` becomes ``IS NULL``, a list/tuple/set becomes ``IN`` (an
    empty one matches nothing), anything else becomes ``=``. A statement
    selecting from an alias of *table*, and not the table itself, is
    filtered on the alias.
    """
    if not conditions:
        return stmt
    source = _find_from(stmt, table)
    clauses = [_condition(source, table, column, value) for column, value in conditions.items()]
    return stmt.where(*clauses)


def _iter_froms(from_obj: FromClause) -> Iterator[FromClause]:
    if isinstance(from_obj, Join):
        yield from _iter_froms(from_obj.left)
        yield from _iter_froms(from_obj.right)
    else:
        yield from_obj


def _find_from(stmt: Select[Any], table: str) -> FromClause | None:
    """Return the FROM object for *table*, else the first alias of it."""
    aliased: FromClause | None = None
    for final in stmt.get_final_froms():
        for from_obj in _iter_froms(final):
            if getattr(from_obj, "name", None) == table:
                return from_obj
            if (
                aliased is None
                and isinstance(from_obj, Alias)
                and getattr(from_obj.element, "name", None) == table
            ):
                aliased = from_obj
    return aliased


def _column(source: FromClause | None, table: str, column: str) -> ColumnElement[Any]:
    if source is not None and column in source.c:
        return source.c[column]
    return literal_column(f"{table}.{column}")


def _condition(
    source: FromClause | None,
    table: str,
    column: str,
    value: Any,
) -> ColumnElement[bool]:
    col = _column(source, table, column)
    if value is None:
        return col.is_(None)
    if isinstance(value, _SEQUENCE_TYPES):
        if not value:
            return false()
        return col.in_(list(value))
    return col == value
