"""PolicyDefinition and TableSchema — immutable policy values."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from sqla_rls._types import ActivationCondition, DecisionType
from sqla_rls.context._auth import PolicyActivationContext

__all__ = ["PolicyDefinition", "TableSchema"]


@dataclass(frozen=True, slots=True)
class PolicyDefinition:
    """A single named, prioritized rule for one table.

    ``decision_type`` is the tag that says how ``fn`` is used:

    - ``allow`` / ``deny``: ``fn(ctx) -> bool``; first match decides.
    - ``filter``: ``fn(ctx) -> {column: value}`` merged into the WHERE clause.
    - ``validate``: ``fn(ctx) -> bool`` checked against ``ctx.data`` on writes.

    Attributes:
        decision_type: One of ``allow``, ``deny``, ``filter``, ``validate``.
        operations: Operations this policy targets (may include ``"all"``).
        fn: The kind-specific policy function.
        name: Unique name within a table.
        priority: Higher values are evaluated first.
        activation_condition: Optional gate over the activation context.
        hints: Opaque data for callers (index hints, documentation).
        description: Human-readable description.
    """

    decision_type: DecisionType
    operations: tuple[str, ...]
    fn: Callable[..., Any]
    name: str
    priority: int = 0
    activation_condition: ActivationCondition | None = None
    hints: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)
    description: str = ""

    def applies_to(self, operation: str) -> bool:
        """Return True if this policy targets *operation* (directly or via ``all``)."""
        return operation in self.operations or "all" in self.operations

    def is_active(self, activation: PolicyActivationContext) -> bool:
        if self.activation_condition is None:
            return True
        return bool(self.activation_condition(activation))


@dataclass(frozen=True, slots=True)
class TableSchema:
    """Declarative RLS configuration for one table.

    Attributes:
        policies: The table's policies, in declaration order.
        default_deny: Result used when no allow/deny policy matches.
        skip_for: Roles that bypass every row-level check on this table.

    Example::

        TableSchema(
            policies=[
                filter("read", lambda ctx: {"tenant_id": ctx.auth.tenant_id},
                       name="tenant-filter"),
                deny("delete", name="no-delete", priority=200),
            ],
            skip_for={"admin"},
        )
    """

    policies: tuple[PolicyDefinition, ...] = ()
    default_deny: bool = False
    skip_for: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not isinstance(self.policies, tuple):
            object.__setattr__(self, "policies", tuple(self.policies))
        if isinstance(self.skip_for, str):
            object.__setattr__(self, "skip_for", frozenset({self.skip_for}))
        elif not isinstance(self.skip_for, frozenset):
            object.__setattr__(self, "skip_for", frozenset(self.skip_for))
