"""PolicyRegistry — compiles and stores per-table policy sets."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqla_rls.exceptions import ConfigurationError
from sqla_rls.policy._base import PolicyDefinition, TableSchema

__all__ = [
    "CompiledTable",
    "PolicyRegistry",
    "define_schema",
    "get_default_registry",
    "merge_schemas",
]

logger = logging.getLogger(__name__)

_SCHEMA_KEYS: frozenset[str] = frozenset({"policies", "default_deny", "skip_for"})


@dataclass(frozen=True, slots=True)
class CompiledTable:
    """A registered table: policies pre-sorted by priority, highest first.

    Ties keep declaration order (stable sort).
    """

    table: str
    policies: tuple[PolicyDefinition, ...]
    default_deny: bool
    skip_for: frozenset[str]


def _coerce_table_schema(table: str, value: TableSchema | Mapping[str, Any]) -> TableSchema:
    if isinstance(value, TableSchema):
        schema = value
    elif isinstance(value, Mapping):
        unknown = set(value) - _SCHEMA_KEYS
        if unknown:
            raise ConfigurationError(
                f"Unknown keys in schema for table {table!r}: {sorted(unknown)!r}",
                details={"table": table, "keys": sorted(unknown)},
            )
        schema = TableSchema(
            policies=tuple(value.get("policies", ())),
            default_deny=bool(value.get("default_deny", False)),
            skip_for=value.get("skip_for", frozenset()),
        )
    else:
        raise ConfigurationError(
            f"Schema for table {table!r} must be a TableSchema or mapping, "
            f"got {type(value).__name__}"
        )

    seen: set[str] = set()
    for p in schema.policies:
        if not isinstance(p, PolicyDefinition):
            raise ConfigurationError(
                f"Table {table!r} contains a non-policy entry: {p!r}",
                details={"table": table},
            )
        if p.name in seen:
            raise ConfigurationError(
                f"Duplicate policy name {p.name!r} on table {table!r}",
                details={"table": table, "policy": p.name},
            )
        seen.add(p.name)
    return schema


def define_schema(
    schema: Mapping[str, TableSchema | Mapping[str, Any]],
) -> dict[str, TableSchema]:
    """Validate and normalize a declarative ``{table: schema}`` mapping.

    Each value may be a ``TableSchema`` or a mapping with the keys
    ``policies``, ``default_deny`` and ``skip_for``. Duplicate policy
    names raise ``ConfigurationError`` here, before anything is registered.

    Example::

        schema = define_schema({
            "users": {
                "policies": [
                    filter("read", lambda ctx: {"tenant_id": ctx.auth.tenant_id},
                           name="tenant-filter", priority=100),
                ],
                "skip_for": ["admin"],
            },
        })
        registry = PolicyRegistry(schema)
    """
    return {table: _coerce_table_schema(table, value) for table, value in schema.items()}


def merge_schemas(
    *schemas: Mapping[str, TableSchema | Mapping[str, Any]],
) -> dict[str, TableSchema]:
    """Combine several declarative schemas into one.

    Tables appearing in more than one schema get their policies
    concatenated in argument order, the union of their ``skip_for``
    roles, and ``default_deny`` if any part sets it. Policy names must
    still be unique per table across the merged parts.

    Example::

        schema = merge_schemas(
            {"posts": {"policies": tenant_isolation()}},
            {"posts": {"policies": soft_delete(), "default_deny": True}},
        )
    """
    merged: dict[str, TableSchema] = {}
    for schema in schemas:
        for table, part in define_schema(schema).items():
            current = merged.get(table)
            if current is None:
                merged[table] = part
                continue
            merged[table] = TableSchema(
                policies=current.policies + part.policies,
                default_deny=current.default_deny or part.default_deny,
                skip_for=current.skip_for | part.skip_for,
            )
    return define_schema(merged)


class PolicyRegistry:
    """Registry mapping table names to compiled policy sets.

    Built once at startup, read-only afterwards. Registration is
    serialized with a lock; lookups take no lock and return copies, so
    concurrent evaluations never observe partial state.

    Example::

        registry = PolicyRegistry()
        registry.register("posts", TableSchema(policies=[deny("delete", name="no-delete")]))
        registry.get_policies_for("posts", "delete")
    """

    def __init__(self, schema: Mapping[str, TableSchema | Mapping[str, Any]] | None = None) -> None:
        self._tables: dict[str, CompiledTable] = {}
        self._lock = threading.Lock()
        if schema is not None:
            self.load_schema(schema)

    def register(self, table: str, schema: TableSchema | Mapping[str, Any]) -> CompiledTable:
        """Compile and store the schema for *table*.

        Args:
            table: Table name.
            schema: A ``TableSchema`` or equivalent mapping.

        Returns:
            The compiled table entry.

        Raises:
            ConfigurationError: If *table* is already registered or two
                of its policies share a name.
        """
        normalized = _coerce_table_schema(table, schema)
        compiled = CompiledTable(
            table=table,
            policies=tuple(sorted(normalized.policies, key=lambda p: -p.priority)),
            default_deny=normalized.default_deny,
            skip_for=normalized.skip_for,
        )
        with self._lock:
            if table in self._tables:
                raise ConfigurationError(
                    f"Table {table!r} is already registered",
                    details={"table": table},
                )
            self._tables[table] = compiled
        logger.debug(
            "Registered RLS table %s: %d policy(ies), default_deny=%s",
            table,
            len(compiled.policies),
            compiled.default_deny,
        )
        return compiled

    def load_schema(self, schema: Mapping[str, TableSchema | Mapping[str, Any]]) -> None:
        """Register every table of a declarative schema mapping."""
        for table, table_schema in define_schema(schema).items():
            self.register(table, table_schema)

    def get_policies_for(self, table: str, operation: str) -> list[PolicyDefinition]:
        """Return the table's policies targeting *operation* or ``all``.

        The list is in evaluation order (priority descending, stable) and
        is a copy; mutating it does not affect the registry.
        """
        compiled = self._tables.get(table)
        if compiled is None:
            return []
        return [p for p in compiled.policies if p.applies_to(operation)]

    def get_table_config(self, table: str) -> CompiledTable | None:
        return self._tables.get(table)

    def has_table(self, table: str) -> bool:
        return table in self._tables

    def tables(self) -> list[str]:
        """Return registered table names in registration order."""
        return list(self._tables)

    def get_skip_for(self, table: str) -> frozenset[str]:
        compiled = self._tables.get(table)
        return compiled.skip_for if compiled is not None else frozenset()

    def has_default_deny(self, table: str) -> bool:
        compiled = self._tables.get(table)
        return compiled.default_deny if compiled is not None else False

    def find_policy(self, table: str, name: str) -> PolicyDefinition | None:
        compiled = self._tables.get(table)
        if compiled is None:
            return None
        for p in compiled.policies:
            if p.name == name:
                return p
        return None

    def list_policies(self, table: str) -> dict[str, list[str]]:
        """Return policy names grouped by decision type, in evaluation order.

        Example::

            registry.list_policies("posts")
            # {"allow": [...], "deny": ["no-delete"], "filter": [...], "validate": []}
        """
        grouped: dict[str, list[str]] = {"allow": [], "deny": [], "filter": [], "validate": []}
        compiled = self._tables.get(table)
        if compiled is not None:
            for p in compiled.policies:
                grouped[p.decision_type].append(p.name)
        return grouped

    def clear(self) -> None:
        """Remove all registered tables.

        Primarily useful in test teardown.
        """
        with self._lock:
            self._tables.clear()


# Module-level default registry (singleton).
_default_registry = PolicyRegistry()


def get_default_registry() -> PolicyRegistry:
    """Return the global default (singleton) policy registry.

    Used by ``PolicyEvaluator`` and friends when no explicit registry is
    provided.
    """
    return _default_registry
