"""FieldAccessRegistry — compiled per-table, per-column access rules."""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from sqla_rls._types import FieldDefault, PolicyPredicate
from sqla_rls.context._auth import PolicyEvaluationContext
from sqla_rls.exceptions import ConfigurationError
from sqla_rls.field_access._config import FieldAccessConfig, TableFieldAccess

__all__ = [
    "CompiledFieldAccess",
    "CompiledTableFieldAccess",
    "FieldAccessRegistry",
    "define_field_access_schema",
]

logger = logging.getLogger("sqla_rls.field_access")

_TABLE_KEYS: frozenset[str] = frozenset({"default", "skip_for", "fields"})


def _always(ctx: PolicyEvaluationContext) -> bool:
    return True


@dataclass(frozen=True, slots=True)
class CompiledFieldAccess:
    """A column's rules with the ``None`` predicates resolved."""

    field: str
    can_read: PolicyPredicate
    can_write: PolicyPredicate
    mask_fn: Callable[[Any], Any] | None
    masked_value: Any
    omit_when_hidden: bool


@dataclass(frozen=True, slots=True)
class CompiledTableFieldAccess:
    table: str
    default_access: FieldDefault
    skip_for: frozenset[str]
    fields: Mapping[str, CompiledFieldAccess]


def _coerce_table(table: str, value: TableFieldAccess | Mapping[str, Any]) -> TableFieldAccess:
    if isinstance(value, TableFieldAccess):
        return value
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            f"Field access for table {table!r} must be a TableFieldAccess or mapping, "
            f"got {type(value).__name__}"
        )
    unknown = set(value) - _TABLE_KEYS
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in field access for table {table!r}: {sorted(unknown)!r}",
            details={"table": table, "keys": sorted(unknown)},
        )
    return TableFieldAccess(
        default=value.get("default", "allow"),
        skip_for=value.get("skip_for", frozenset()),
        fields=value.get("fields", {}),
    )


def define_field_access_schema(
    schema: Mapping[str, TableFieldAccess | Mapping[str, Any]],
) -> dict[str, TableFieldAccess]:
    """Validate a declarative ``{table: {default, skip_for, fields}}`` mapping.

    Example::

        schema = define_field_access_schema({
            "users": {
                "default": "allow",
                "fields": {
                    "email": owner_or_roles(["admin"], "id"),
                    "password_hash": never_accessible(),
                },
            },
        })
    """
    return {table: _coerce_table(table, value) for table, value in schema.items()}


async def _check(
    predicate: PolicyPredicate,
    ctx: PolicyEvaluationContext,
    *,
    table: str,
    field: str,
    mode: str,
) -> bool:
    try:
        result = predicate(ctx)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)
    except Exception:
        logger.warning(
            "Error checking %s access for %s.%s; denying",
            mode,
            table,
            field,
            exc_info=True,
        )
        return False


class FieldAccessRegistry:
    """Column-level access rules for every configured table.

    Independent from ``PolicyRegistry``: it is consulted after the
    row-level decision, to mask what a caller may see of a row and to
    gate which columns they may write.

    Example::

        registry = FieldAccessRegistry({
            "users": {"fields": {"password_hash": never_accessible()}},
        })
        await registry.can_read_field("users", "password_hash", ctx)  # False
    """

    def __init__(
        self,
        schema: Mapping[str, TableFieldAccess | Mapping[str, Any]] | None = None,
    ) -> None:
        self._tables: dict[str, CompiledTableFieldAccess] = {}
        self._lock = threading.Lock()
        if schema is not None:
            self.load_schema(schema)

    def load_schema(self, schema: Mapping[str, TableFieldAccess | Mapping[str, Any]]) -> None:
        for table, config in define_field_access_schema(schema).items():
            self.register_table(table, config)

    def register_table(
        self,
        table: str,
        config: TableFieldAccess | Mapping[str, Any],
    ) -> CompiledTableFieldAccess:
        """Compile and store field rules for *table*.

        Raises:
            ConfigurationError: If *table* is already registered.
        """
        normalized = _coerce_table(table, config)
        compiled = CompiledTableFieldAccess(
            table=table,
            default_access=normalized.default,
            skip_for=normalized.skip_for,
            fields=MappingProxyType(
                {name: _compile_field(name, fc) for name, fc in normalized.fields.items()}
            ),
        )
        with self._lock:
            if table in self._tables:
                raise ConfigurationError(
                    f"Field access for table {table!r} is already registered",
                    details={"table": table},
                )
            self._tables[table] = compiled
        logger.debug(
            "Registered field access for %s: %d field(s), default=%s",
            table,
            len(compiled.fields),
            compiled.default_access,
        )
        return compiled

    def bypasses(self, table: str, ctx: PolicyEvaluationContext) -> bool:
        """Return True if *ctx* skips every field check on *table*.

        That is the case for system callers, callers holding a ``skip_for``
        role, and tables without field configuration.
        """
        if ctx.auth.is_system:
            return True
        config = self._tables.get(table)
        if config is None:
            return True
        return ctx.auth.has_any_role(config.skip_for)

    async def can_read_field(self, table: str, field: str, ctx: PolicyEvaluationContext) -> bool:
        """Return True if *ctx* may read *field*; the row is ``ctx.row``.

        Unconfigured fields follow the table's default. A raising
        predicate counts as a denial.
        """
        if self.bypasses(table, ctx):
            return True
        config = self._tables[table]
        fc = config.fields.get(field)
        if fc is None:
            return config.default_access == "allow"
        return await _check(fc.can_read, ctx.bind(table, "read"), table=table, field=field, mode="read")

    async def can_write_field(self, table: str, field: str, ctx: PolicyEvaluationContext) -> bool:
        if self.bypasses(table, ctx):
            return True
        config = self._tables[table]
        fc = config.fields.get(field)
        if fc is None:
            return config.default_access == "allow"
        operation = ctx.operation or "update"
        return await _check(fc.can_write, ctx.bind(table, operation), table=table, field=field, mode="write")

    def get_table_config(self, table: str) -> CompiledTableFieldAccess | None:
        return self._tables.get(table)

    def get_field_config(self, table: str, field: str) -> CompiledFieldAccess | None:
        config = self._tables.get(table)
        if config is None:
            return None
        return config.fields.get(field)

    def has_table(self, table: str) -> bool:
        return table in self._tables

    def tables(self) -> list[str]:
        return list(self._tables)

    def configured_fields(self, table: str) -> list[str]:
        """Return the explicitly configured field names of *table*."""
        config = self._tables.get(table)
        return list(config.fields) if config is not None else []

    def clear(self) -> None:
        with self._lock:
            self._tables.clear()


def _compile_field(name: str, config: FieldAccessConfig) -> CompiledFieldAccess:
    return CompiledFieldAccess(
        field=name,
        can_read=config.read or _always,
        can_write=config.write or _always,
        mask_fn=config.mask_fn,
        masked_value=config.masked_value,
        omit_when_hidden=config.omit_when_hidden,
    )
