"""FieldAccessProcessor — mask rows and gate column writes."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sqla_rls.context._auth import PolicyEvaluationContext
from sqla_rls.context._scope import resolve_context
from sqla_rls.exceptions import AccessDeniedError
from sqla_rls.field_access._registry import FieldAccessRegistry

__all__ = ["FieldAccessProcessor", "MaskedRow"]

logger = logging.getLogger("sqla_rls.field_access")


@dataclass(frozen=True, slots=True)
class MaskedRow:
    """A row after field masking.

    Attributes:
        data: The visible row. Hidden values are masked or absent.
        masked_fields: Keys whose value was replaced.
        omitted_fields: Keys removed because the field is omitted when hidden.
    """

    data: dict[str, Any]
    masked_fields: list[str] = field(default_factory=list)
    omitted_fields: list[str] = field(default_factory=list)


class FieldAccessProcessor:
    """Applies a ``FieldAccessRegistry`` to rows and write payloads.

    Every method takes an explicit ``ctx``; when it is omitted the ambient
    ``rls_context`` is used, and when neither exists ``ContextMissingError``
    is raised rather than returning unmasked data.

    Example::

        processor = FieldAccessProcessor(registry)
        result = await processor.mask_row("users", row, ctx=ctx)
        result.data            # row with masked fields
        result.masked_fields   # ["email"]
        result.omitted_fields  # ["password_hash"]
    """

    def __init__(self, registry: FieldAccessRegistry, *, default_mask_value: Any = None) -> None:
        self._registry = registry
        self._default_mask_value = default_mask_value

    @property
    def registry(self) -> FieldAccessRegistry:
        return self._registry

    async def mask_row(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        ctx: PolicyEvaluationContext | None = None,
        include_fields: Collection[str] | None = None,
        exclude_fields: Collection[str] | None = None,
        throw_on_denied: bool = False,
    ) -> MaskedRow:
        """Mask the fields of *row* the caller may not read.

        Args:
            table: Table the row belongs to.
            row: Column name to value.
            ctx: Evaluation context. Defaults to the ambient ``rls_context``.
            include_fields: When given, only these keys are kept.
            exclude_fields: Keys dropped from the output.
            throw_on_denied: Raise instead of masking the first hidden field.

        Returns:
            A ``MaskedRow``. Keys keep their input order.

        Raises:
            AccessDeniedError: A field is hidden and *throw_on_denied* is set.
            ContextMissingError: No *ctx* and no ambient context.
        """
        ctx = resolve_context(ctx).bind(table, "read").with_row(row)

        keys = [
            key
            for key in row
            if (include_fields is None or key in include_fields)
            and (exclude_fields is None or key not in exclude_fields)
        ]
        if self._registry.bypasses(table, ctx):
            return MaskedRow(data={key: row[key] for key in keys})

        data: dict[str, Any] = {}
        masked: list[str] = []
        omitted: list[str] = []
        for key in keys:
            value = row[key]
            if await self._registry.can_read_field(table, key, ctx):
                data[key] = value
                continue
            if throw_on_denied:
                raise AccessDeniedError(
                    table=table,
                    operation="read",
                    field=key,
                    reason=f"Cannot read field {key!r}",
                )
            fc = self._registry.get_field_config(table, key)
            if fc is not None and fc.omit_when_hidden:
                omitted.append(key)
                continue
            data[key] = self._mask_value(table, key, value)
            masked.append(key)

        return MaskedRow(data=data, masked_fields=masked, omitted_fields=omitted)

    async def mask_rows(
        self,
        table: str,
        rows: Iterable[Mapping[str, Any]],
        *,
        ctx: PolicyEvaluationContext | None = None,
        include_fields: Collection[str] | None = None,
        exclude_fields: Collection[str] | None = None,
        throw_on_denied: bool = False,
    ) -> list[MaskedRow]:
        """Mask each row in turn; the result is index-aligned with *rows*."""
        ctx = resolve_context(ctx)
        return [
            await self.mask_row(
                table,
                row,
                ctx=ctx,
                include_fields=include_fields,
                exclude_fields=exclude_fields,
                throw_on_denied=throw_on_denied,
            )
            for row in rows
        ]

    async def validate_write(
        self,
        table: str,
        data: Mapping[str, Any],
        *,
        ctx: PolicyEvaluationContext | None = None,
        existing_row: Mapping[str, Any] | None = None,
    ) -> None:
        """Raise ``AccessDeniedError`` naming the first key of *data* that is not writable.

        Predicates see *existing_row* as ``ctx.row`` and *data* as ``ctx.data``.
        """
        ctx = self._write_context(table, data, ctx, existing_row)
        if self._registry.bypasses(table, ctx):
            return
        for key in data:
            if not await self._registry.can_write_field(table, key, ctx):
                raise AccessDeniedError(
                    table=table,
                    operation=ctx.operation or "update",
                    field=key,
                    reason=f"Cannot write field {key!r}",
                )

    async def filter_writable_fields(
        self,
        table: str,
        data: Mapping[str, Any],
        *,
        ctx: PolicyEvaluationContext | None = None,
        existing_row: Mapping[str, Any] | None = None,
    ) -> tuple[dict[str, Any], list[str]]:
        """Drop the keys of *data* the caller may not write.

        Returns:
            ``(writable_data, removed_fields)``.
        """
        ctx = self._write_context(table, data, ctx, existing_row)
        if self._registry.bypasses(table, ctx):
            return dict(data), []
        kept: dict[str, Any] = {}
        removed: list[str] = []
        for key, value in data.items():
            if await self._registry.can_write_field(table, key, ctx):
                kept[key] = value
            else:
                removed.append(key)
        return kept, removed

    async def get_readable_fields(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        ctx: PolicyEvaluationContext | None = None,
    ) -> list[str]:
        """Return the keys of *row* the caller may read, in row order."""
        ctx = resolve_context(ctx).bind(table, "read").with_row(row)
        return [key for key in row if await self._registry.can_read_field(table, key, ctx)]

    async def get_writable_fields(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        ctx: PolicyEvaluationContext | None = None,
    ) -> list[str]:
        ctx = resolve_context(ctx).bind(table, "update").with_row(row)
        return [key for key in row if await self._registry.can_write_field(table, key, ctx)]

    def _write_context(
        self,
        table: str,
        data: Mapping[str, Any],
        ctx: PolicyEvaluationContext | None,
        existing_row: Mapping[str, Any] | None,
    ) -> PolicyEvaluationContext:
        ctx = resolve_context(ctx)
        operation = ctx.operation or ("create" if existing_row is None else "update")
        return ctx.bind(table, operation).with_row(existing_row, data)

    def _mask_value(self, table: str, key: str, value: Any) -> Any:
        fc = self._registry.get_field_config(table, key)
        if fc is None:
            return self._default_mask_value
        if fc.mask_fn is not None:
            try:
                return fc.mask_fn(value)
            except Exception:
                logger.warning("mask_fn failed for %s.%s; using mask value", table, key, exc_info=True)
                return self._default_mask_value
        if fc.masked_value is not None:
            return fc.masked_value
        return self._default_mask_value
