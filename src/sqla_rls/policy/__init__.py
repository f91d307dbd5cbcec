"""Policy model — builders, activation wrappers, and the registry."""

from sqla_rls.policy._activation import (
    when_condition,
    when_environment,
    when_feature,
    when_time_range,
)
from sqla_rls.policy._base import PolicyDefinition, TableSchema
from sqla_rls.policy._builder import allow, deny, filter, validate
from sqla_rls.policy._patterns import (
    admin_access,
    compose_policies,
    extend_policy,
    override_policy,
    ownership,
    soft_delete,
    status_access,
    tenant_isolation,
)
from sqla_rls.policy._registry import (
    CompiledTable,
    PolicyRegistry,
    define_schema,
    get_default_registry,
    merge_schemas,
)

__all__ = [
    "CompiledTable",
    "PolicyDefinition",
    "PolicyRegistry",
    "TableSchema",
    "admin_access",
    "allow",
    "compose_policies",
    "define_schema",
    "deny",
    "extend_policy",
    "filter",
    "get_default_registry",
    "merge_schemas",
    "override_policy",
    "ownership",
    "soft_delete",
    "status_access",
    "tenant_isolation",
    "validate",
    "when_condition",
    "when_environment",
    "when_feature",
    "when_time_range",
]
