"""Field access configuration types and reusable field patterns."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from sqla_rls._types import FieldDefault, PolicyPredicate
from sqla_rls.context._auth import PolicyEvaluationContext
from sqla_rls.exceptions import ConfigurationError

__all__ = [
    "FieldAccessConfig",
    "TableFieldAccess",
    "masked_field",
    "never_accessible",
    "owner_only",
    "owner_or_roles",
    "public_read_restricted_write",
    "read_only",
    "roles_only",
]


@dataclass(frozen=True, slots=True)
class FieldAccessConfig:
    """Read/write rules for one column.

    Attributes:
        read: Predicate deciding read access. ``None`` means always readable.
        write: Predicate deciding write access. ``None`` means always writable.
        mask_fn: Applied to the original value when read is denied.
        masked_value: Substitute for a hidden value when there is no ``mask_fn``.
        omit_when_hidden: Drop the key entirely instead of masking it.
    """

    read: PolicyPredicate | None = None
    write: PolicyPredicate | None = None
    mask_fn: Callable[[Any], Any] | None = None
    masked_value: Any = None
    omit_when_hidden: bool = False

    def __post_init__(self) -> None:
        for attr in ("read", "write", "mask_fn"):
            value = getattr(self, attr)
            if value is not None and not callable(value):
                raise ConfigurationError(f"FieldAccessConfig.{attr} must be callable, got {value!r}")


_FIELD_KEYS: frozenset[str] = frozenset({"read", "write", "mask_fn", "masked_value", "omit_when_hidden"})


def _coerce_field(name: str, value: FieldAccessConfig | Mapping[str, Any]) -> FieldAccessConfig:
    if isinstance(value, FieldAccessConfig):
        return value
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            f"Field {name!r} must be configured with a FieldAccessConfig or mapping, got {value!r}"
        )
    unknown = set(value) - _FIELD_KEYS
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in field access for field {name!r}: {sorted(unknown)!r}",
            details={"field": name, "keys": sorted(unknown)},
        )
    return FieldAccessConfig(**value)


@dataclass(frozen=True, slots=True)
class TableFieldAccess:
    """Field access rules for one table.

    Attributes:
        default: Access for fields without explicit configuration.
        skip_for: Roles that bypass every field check on this table.
        fields: Column name to ``FieldAccessConfig``, or to a mapping of its
            keyword arguments (``{"read": ..., "omit_when_hidden": True}``).
    """

    default: FieldDefault = "allow"
    skip_for: frozenset[str] = frozenset()
    fields: Mapping[str, FieldAccessConfig] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )

    def __post_init__(self) -> None:
        if self.default not in ("allow", "deny"):
            raise ConfigurationError(
                f"Field access default must be 'allow' or 'deny', got {self.default!r}"
            )
        if isinstance(self.skip_for, str):
            object.__setattr__(self, "skip_for", frozenset({self.skip_for}))
        elif not isinstance(self.skip_for, frozenset):
            object.__setattr__(self, "skip_for", frozenset(self.skip_for))
        object.__setattr__(
            self,
            "fields",
            MappingProxyType({name: _coerce_field(name, fc) for name, fc in self.fields.items()}),
        )


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------


def _never(ctx: PolicyEvaluationContext) -> bool:
    return False


def _always(ctx: PolicyEvaluationContext) -> bool:
    return True


def _is_owner(ctx: PolicyEvaluationContext, owner_field: str) -> bool:
    row = ctx.row or {}
    return str(ctx.auth.user_id) == str(row.get(owner_field))


def never_accessible() -> FieldAccessConfig:
    """Field is never readable or writable, and omitted from masked rows.

    Example::

        TableFieldAccess(fields={"password_hash": never_accessible()})
    """
    return FieldAccessConfig(read=_never, write=_never, omit_when_hidden=True)


def owner_only(owner_field: str = "id") -> FieldAccessConfig:
    """Only the row owner (``row[owner_field] == auth.user_id``) can access the field.

    Ids are compared as strings so ``1`` and ``"1"`` match.
    """

    def check(ctx: PolicyEvaluationContext) -> bool:
        return _is_owner(ctx, owner_field)

    return FieldAccessConfig(read=check, write=check)


def owner_or_roles(roles: Iterable[str], owner_field: str = "id") -> FieldAccessConfig:
    """The row owner or a caller holding one of *roles* can access the field."""
    role_set = frozenset(roles)

    def check(ctx: PolicyEvaluationContext) -> bool:
        return _is_owner(ctx, owner_field) or ctx.auth.has_any_role(role_set)

    return FieldAccessConfig(read=check, write=check)


def roles_only(roles: Iterable[str]) -> FieldAccessConfig:
    role_set = frozenset(roles)

    def check(ctx: PolicyEvaluationContext) -> bool:
        return ctx.auth.has_any_role(role_set)

    return FieldAccessConfig(read=check, write=check)


def read_only(read_condition: PolicyPredicate | None = None) -> FieldAccessConfig:
    """Field can never be written; reads follow *read_condition* (default: always)."""
    return FieldAccessConfig(read=read_condition or _always, write=_never)


def public_read_restricted_write(write_condition: PolicyPredicate) -> FieldAccessConfig:
    return FieldAccessConfig(read=_always, write=write_condition)


def masked_field(
    mask_fn: Callable[[Any], Any],
    read_condition: PolicyPredicate,
) -> FieldAccessConfig:
    """Show the real value when *read_condition* holds, else ``mask_fn(value)``.

    *read_condition* also gates writes.

    Example::

        email = masked_field(
            lambda v: v[:2] + "***" if v else v,
            lambda ctx: str(ctx.auth.user_id) == str(ctx.row["id"]),
        )
    """
    return FieldAccessConfig(read=read_condition, write=read_condition, mask_fn=mask_fn)
