"""Factories for the four policy kinds: allow, deny, filter, validate."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from sqla_rls._types import (
    ALL_OPERATIONS,
    ActivationCondition,
    DecisionType,
    FilterFunction,
    PolicyPredicate,
)
from sqla_rls.exceptions import ConfigurationError
from sqla_rls.policy._base import PolicyDefinition

__all__ = ["allow", "deny", "filter", "validate"]

_FILTER_OPERATIONS: frozenset[str] = frozenset({"read", "all"})
_VALIDATE_OPERATIONS: frozenset[str] = frozenset({"create", "update", "all"})


def _normalize_operations(
    operation: str | Iterable[str],
    *,
    allowed: frozenset[str],
    kind: str,
) -> tuple[str, ...]:
    ops = (operation,) if isinstance(operation, str) else tuple(operation)
    if not ops:
        raise ConfigurationError(f"{kind} policy needs at least one operation")
    for op in ops:
        if op not in allowed:
            raise ConfigurationError(
                f"{kind} policy cannot target operation {op!r}; "
                f"expected one of {sorted(allowed)!r}",
                details={"operation": op, "kind": kind},
            )
    # Drop duplicates, keep declaration order.
    return tuple(dict.fromkeys(ops))


def _build(
    decision_type: DecisionType,
    operations: tuple[str, ...],
    fn: Any,
    *,
    name: str,
    priority: int,
    hints: Mapping[str, Any] | None,
    condition: ActivationCondition | None,
    description: str | None,
) -> PolicyDefinition:
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError(f"{decision_type} policy requires a non-empty name")
    if not callable(fn):
        raise ConfigurationError(
            f"{decision_type} policy {name!r} needs a callable, got {type(fn).__name__}"
        )
    # bool is an int subclass, but True/False as a priority is always a mistake.
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ConfigurationError(f"priority of policy {name!r} must be an int, got {priority!r}")
    return PolicyDefinition(
        decision_type=decision_type,
        operations=operations,
        fn=fn,
        name=name,
        priority=priority,
        activation_condition=condition,
        hints=MappingProxyType(dict(hints or {})),
        description=description if description is not None else (fn.__doc__ or "").strip(),
    )


def _always_true(ctx: Any) -> bool:
    return True


def allow(
    operation: str | Iterable[str],
    predicate: PolicyPredicate,
    *,
    name: str,
    priority: int = 0,
    hints: Mapping[str, Any] | None = None,
    condition: ActivationCondition | None = None,
    description: str | None = None,
) -> PolicyDefinition:
    """Grant access when *predicate* returns true.

    Args:
        operation: One operation or a sequence of them (``"all"`` matches any).
        predicate: ``ctx -> bool``; may return an awaitable.
        name: Unique (per table) policy name.
        priority: Higher runs first. Defaults to ``0``.
        hints: Opaque metadata kept on the definition.
        condition: Activation condition over ``PolicyActivationContext``.
        description: Defaults to the predicate's docstring.

    Example::

        allow("read", lambda ctx: ctx.auth.user_id == ctx.row["owner_id"],
              name="owner-read")
    """
    ops = _normalize_operations(operation, allowed=ALL_OPERATIONS, kind="allow")
    return _build(
        "allow",
        ops,
        predicate,
        name=name,
        priority=priority,
        hints=hints,
        condition=condition,
        description=description,
    )


def deny(
    operation: str | Iterable[str],
    predicate: PolicyPredicate | None = None,
    *,
    name: str,
    priority: int = 0,
    hints: Mapping[str, Any] | None = None,
    condition: ActivationCondition | None = None,
    description: str | None = None,
) -> PolicyDefinition:
    """Block access when *predicate* returns true.

    Without a predicate the policy always matches.

    Example::

        deny("delete", name="no-delete", priority=200)
        deny("all", lambda ctx: ctx.auth.attributes.get("banned"), name="banned")
    """
    ops = _normalize_operations(operation, allowed=ALL_OPERATIONS, kind="deny")
    return _build(
        "deny",
        ops,
        predicate if predicate is not None else _always_true,
        name=name,
        priority=priority,
        hints=hints,
        condition=condition,
        description=description,
    )


def filter(  # noqa: A001
    operation: str | Iterable[str],
    filter_fn: FilterFunction,
    *,
    name: str,
    priority: int = 0,
    hints: Mapping[str, Any] | None = None,
    condition: ActivationCondition | None = None,
    description: str | None = None,
) -> PolicyDefinition:
    """Add ``column = value`` conditions to read queries.

    Only ``"read"`` (or ``"all"``, normalized to ``"read"``) is accepted.
    When two active filters return the same key, the higher priority
    filter's value wins; see ``PolicyEvaluator.get_filters``.

    Example::

        filter("read", lambda ctx: {"tenant_id": ctx.auth.tenant_id},
               name="tenant-filter", priority=100)
    """
    _normalize_operations(operation, allowed=_FILTER_OPERATIONS, kind="filter")
    return _build(
        "filter",
        ("read",),
        filter_fn,
        name=name,
        priority=priority,
        hints=hints,
        condition=condition,
        description=description,
    )


def validate(
    operation: str | Iterable[str],
    validate_fn: PolicyPredicate,
    *,
    name: str,
    priority: int = 0,
    hints: Mapping[str, Any] | None = None,
    condition: ActivationCondition | None = None,
    description: str | None = None,
) -> PolicyDefinition:
    """Check the proposed payload (``ctx.data``) of create/update operations.

    ``"all"`` expands to ``("create", "update")``.

    Example::

        validate("create", lambda ctx: ctx.data["owner_id"] == ctx.auth.user_id,
                 name="own-rows-only")
    """
    ops = _normalize_operations(operation, allowed=_VALIDATE_OPERATIONS, kind="validate")
    if "all" in ops:
        ops = ("create", "update")
    return _build(
        "validate",
        ops,
        validate_fn,
        name=name,
        priority=priority,
        hints=hints,
        condition=condition,
        description=description,
    )
