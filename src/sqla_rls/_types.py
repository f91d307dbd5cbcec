"""Shared literals and type aliases for sqla-rls."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, Literal, Union

if TYPE_CHECKING:
    from sqla_rls.context._auth import PolicyActivationContext, PolicyEvaluationContext

__all__ = [
    "ALL_OPERATIONS",
    "ActivationCondition",
    "DecisionType",
    "FieldDefault",
    "FilterFunction",
    "MaybeAwaitable",
    "OnUnregisteredTable",
    "Operation",
    "PolicyPredicate",
]

# Operations a policy can target. "all" matches every concrete operation.
Operation = Literal["create", "read", "update", "delete", "all"]

ALL_OPERATIONS: frozenset[str] = frozenset({"create", "read", "update", "delete", "all"})

# Discriminant of a PolicyDefinition.
DecisionType = Literal["allow", "deny", "filter", "validate"]

# Fallback access for fields without explicit configuration.
FieldDefault = Literal["allow", "deny"]

# Valid values for RLSConfig.on_unregistered_table.
OnUnregisteredTable = Literal["allow", "deny", "raise"]

MaybeAwaitable = Union[Any, Awaitable[Any]]

# allow / deny / validate predicates: ctx -> bool (or awaitable bool).
PolicyPredicate = Callable[["PolicyEvaluationContext"], MaybeAwaitable]

# filter functions: ctx -> {column: value} (or awaitable mapping).
FilterFunction = Callable[["PolicyEvaluationContext"], Union[Mapping[str, Any], Awaitable[Mapping[str, Any]]]]

# Activation conditions are plain synchronous predicates.
ActivationCondition = Callable[["PolicyActivationContext"], bool]
