"""Field access — column-level masking and write gating."""

from sqla_rls.field_access._config import (
    FieldAccessConfig,
    TableFieldAccess,
    masked_field,
    never_accessible,
    owner_only,
    owner_or_roles,
    public_read_restricted_write,
    read_only,
    roles_only,
)
from sqla_rls.field_access._processor import FieldAccessProcessor, MaskedRow
from sqla_rls.field_access._registry import (
    CompiledFieldAccess,
    CompiledTableFieldAccess,
    FieldAccessRegistry,
    define_field_access_schema,
)

__all__ = [
    "CompiledFieldAccess",
    "CompiledTableFieldAccess",
    "FieldAccessConfig",
    "FieldAccessProcessor",
    "FieldAccessRegistry",
    "MaskedRow",
    "TableFieldAccess",
    "define_field_access_schema",
    "masked_field",
    "never_accessible",
    "owner_only",
    "owner_or_roles",
    "public_read_restricted_write",
    "read_only",
    "roles_only",
]
