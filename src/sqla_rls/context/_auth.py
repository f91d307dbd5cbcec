"""Per-request context values consumed by the policy engine."""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any

__all__ = ["AuthContext", "PolicyActivationContext", "PolicyEvaluationContext"]


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Identity of the caller for one logical operation.

    Attributes:
        user_id: Identifier of the caller.
        tenant_id: Tenant the request is scoped to, if any.
        roles: Role names held by the caller.
        is_system: System callers bypass every row- and field-level check.
        organization_ids: Organizations the caller belongs to.
        attributes: Free-form attributes (plan, flags, resolved data).

    Instances are hashable; ``attributes`` does not take part in the hash.

    Example::

        auth = AuthContext(user_id=1, tenant_id="t-1", roles={"editor"})
        assert auth.has_role("editor")
    """

    user_id: int | str | None
    tenant_id: int | str | None = None
    roles: frozenset[str] = frozenset()
    is_system: bool = False
    organization_ids: tuple[int | str, ...] = ()
    attributes: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)

    def __post_init__(self) -> None:
        if isinstance(self.roles, str):
            object.__setattr__(self, "roles", frozenset({self.roles}))
        elif not isinstance(self.roles, frozenset):
            object.__setattr__(self, "roles", frozenset(self.roles))
        if not isinstance(self.organization_ids, tuple):
            object.__setattr__(self, "organization_ids", tuple(self.organization_ids))
        if not isinstance(self.attributes, MappingProxyType):
            object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def has_role(self, *roles: str) -> bool:
        """Return True if the caller holds any of *roles*."""
        return any(role in self.roles for role in roles)

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return not self.roles.isdisjoint(roles)


@dataclass(frozen=True, slots=True)
class PolicyEvaluationContext:
    """Everything a predicate may look at while deciding.

    ``row`` is the existing row (updates, deletes, field checks) and
    ``data`` the proposed write payload. ``meta`` carries precomputed
    results from collaborators that run before evaluation, such as
    relationship checks.
    """

    auth: AuthContext
    table: str | None = None
    operation: str | None = None
    row: Mapping[str, Any] | None = field(default=None, hash=False)
    data: Mapping[str, Any] | None = field(default=None, hash=False)
    meta: Mapping[str, Any] | None = field(default=None, hash=False)

    def bind(self, table: str, operation: str) -> PolicyEvaluationContext:
        """Return a copy targeting *table* and *operation*."""
        if self.table == table and self.operation == operation:
            return self
        return replace(self, table=table, operation=operation)

    def with_row(
        self,
        row: Mapping[str, Any] | None,
        data: Mapping[str, Any] | None = None,
    ) -> PolicyEvaluationContext:
        return replace(self, row=row, data=data if data is not None else self.data)


@dataclass(frozen=True, slots=True)
class PolicyActivationContext:
    """Inputs that decide whether a policy participates at all.

    Attributes:
        environment: Deployment environment (``"production"``, ``"staging"``...).
        features: Either a mapping of flag name to value, or a collection
            of enabled flag names.
        timestamp: Moment of evaluation. Its hour drives time-range policies.
    """

    environment: str = "production"
    features: Mapping[str, Any] | Collection[str] = field(default=frozenset(), hash=False)
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def now(
        cls,
        environment: str = "production",
        features: Mapping[str, Any] | Collection[str] = frozenset(),
    ) -> PolicyActivationContext:
        return cls(environment=environment, features=features, timestamp=datetime.now())

    def is_feature_enabled(self, name: str) -> bool:
        """Return True if the flag *name* is enabled.

        Mappings are checked for a truthy value; any other collection is
        treated as the set of enabled flag names.
        """
        features = self.features
        if isinstance(features, Mapping):
            return bool(features.get(name))
        if isinstance(features, str):
            return features == name
        return name in features
