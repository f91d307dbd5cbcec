"""Reusable policy bundles for common multi-tenant patterns."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from sqla_rls.context._auth import PolicyEvaluationContext
from sqla_rls.exceptions import ConfigurationError
from sqla_rls.policy._base import PolicyDefinition
from sqla_rls.policy._builder import allow, deny, filter, validate

__all__ = [
    "admin_access",
    "compose_policies",
    "extend_policy",
    "override_policy",
    "ownership",
    "soft_delete",
    "status_access",
    "tenant_isolation",
]


def tenant_isolation(
    column: str = "tenant_id",
    *,
    priority: int = 1000,
    validate_writes: bool = True,
) -> list[PolicyDefinition]:
    """Scope reads to the caller's tenant and keep writes inside it.

    Returns a read filter on *column* plus, when *validate_writes* is set,
    validate policies that reject creates for another tenant and updates
    that move a row to another tenant.
    """

    def tenant_filter(ctx: PolicyEvaluationContext) -> dict[str, object]:
        return {column: ctx.auth.tenant_id}

    policies = [filter("read", tenant_filter, name="tenant-isolation-filter", priority=priority)]
    if not validate_writes:
        return policies

    def same_tenant_on_create(ctx: PolicyEvaluationContext) -> bool:
        data = ctx.data or {}
        return data.get(column) == ctx.auth.tenant_id

    def tenant_unchanged_on_update(ctx: PolicyEvaluationContext) -> bool:
        data = ctx.data or {}
        if column not in data:
            return True
        return data[column] == ctx.auth.tenant_id

    policies.append(
        validate("create", same_tenant_on_create, name="tenant-isolation-validate-create")
    )
    policies.append(
        validate("update", tenant_unchanged_on_update, name="tenant-isolation-validate-update")
    )
    return policies


def ownership(
    column: str = "user_id",
    *,
    operations: Iterable[str] = ("read", "update", "delete"),
    priority: int = 0,
) -> list[PolicyDefinition]:
    """Allow the row owner (``row[column] == auth.user_id``) to act on it."""

    def is_owner(ctx: PolicyEvaluationContext) -> bool:
        row = ctx.row or {}
        return str(row.get(column)) == str(ctx.auth.user_id)

    return [allow(tuple(operations), is_owner, name="ownership-allow", priority=priority)]


def soft_delete(column: str = "deleted_at", *, priority: int = 0) -> list[PolicyDefinition]:
    """Hide soft-deleted rows from reads (``column IS NULL``)."""

    def not_deleted(ctx: PolicyEvaluationContext) -> dict[str, object]:
        return {column: None}

    return [filter("read", not_deleted, name="soft-delete-filter", priority=priority)]


def admin_access(roles: Iterable[str], *, priority: int = 500) -> list[PolicyDefinition]:
    """Allow every operation to callers holding one of *roles*."""
    role_set = frozenset(roles)

    def has_admin_role(ctx: PolicyEvaluationContext) -> bool:
        return ctx.auth.has_any_role(role_set)

    return [allow("all", has_admin_role, name="admin-access", priority=priority)]


def status_access(
    column: str = "status",
    *,
    public_statuses: Iterable[str] = (),
    editable_statuses: Iterable[str] = (),
    deletable_statuses: Iterable[str] = (),
    priority: int = 100,
) -> list[PolicyDefinition]:
    """Gate access on the row's *column* value.

    - Rows whose status is in *public_statuses* are readable by anyone.
    - Updates are denied unless the status is in *editable_statuses*.
    - Deletes are denied unless the status is in *deletable_statuses*.

    An empty collection leaves that operation unconstrained.

    Example::

        status_access(
            public_statuses={"published"},
            editable_statuses={"draft"},
            deletable_statuses={"draft", "archived"},
        )
    """
    public = frozenset(public_statuses)
    editable = frozenset(editable_statuses)
    deletable = frozenset(deletable_statuses)

    def status_of(ctx: PolicyEvaluationContext) -> object:
        return (ctx.row or {}).get(column)

    policies: list[PolicyDefinition] = []
    if public:
        policies.append(
            allow("read", lambda ctx: status_of(ctx) in public, name="status-public-read")
        )
    if editable:
        policies.append(
            deny(
                "update",
                lambda ctx: status_of(ctx) not in editable,
                name="status-restrict-update",
                priority=priority,
            )
        )
    if deletable:
        policies.append(
            deny(
                "delete",
                lambda ctx: status_of(ctx) not in deletable,
                name="status-restrict-delete",
                priority=priority,
            )
        )
    return policies


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def _check_unique(policies: list[PolicyDefinition]) -> list[PolicyDefinition]:
    seen: set[str] = set()
    for p in policies:
        if p.name in seen:
            raise ConfigurationError(
                f"Duplicate policy name {p.name!r} in composed policies",
                details={"policy": p.name},
            )
        seen.add(p.name)
    return policies


def compose_policies(*groups: Iterable[PolicyDefinition]) -> list[PolicyDefinition]:
    """Concatenate policy bundles, keeping their order.

    Raises:
        ConfigurationError: If two bundles define the same policy name.

    Example::

        posts = compose_policies(tenant_isolation(), soft_delete(), admin_access(["admin"]))
    """
    return _check_unique([p for group in groups for p in group])


def extend_policy(
    base: Iterable[PolicyDefinition],
    additional: Iterable[PolicyDefinition],
) -> list[PolicyDefinition]:
    """Append *additional* policies to the *base* bundle."""
    return compose_policies(base, additional)


def override_policy(
    base: Iterable[PolicyDefinition],
    overrides: Mapping[str, PolicyDefinition],
) -> list[PolicyDefinition]:
    """Replace policies of *base* by name, keeping their position.

    Names in *overrides* that match nothing in *base* are ignored.

    Example::

        override_policy(
            tenant_isolation(),
            {"tenant-isolation-validate-update": validate("update", lambda ctx: True,
                                                          name="tenant-update-open")},
        )
    """
    return _check_unique([overrides.get(p.name, p) for p in base])
