"""sqla-rls — Policy-based row- and field-level security for SQLAlchemy 2.0.

Declare per-table allow/deny/filter/validate policies once, then apply
them to SELECT statements, writes, and result rows. Everything runs in
process against an explicit per-request context.

Example::

    from sqla_rls import (
        AuthContext, PolicyEvaluationContext, PolicyEvaluator, PolicyRegistry,
        authorize_select, deny, filter,
    )

    registry = PolicyRegistry({
        "posts": {
            "policies": [
                filter("read", lambda ctx: {"tenant_id": ctx.auth.tenant_id},
                       name="tenant", priority=1000),
                deny("delete", lambda ctx: not ctx.auth.has_role("admin"),
                     name="no-delete"),
            ],
        },
    })
    evaluator = PolicyEvaluator(registry)

    ctx = PolicyEvaluationContext(auth=AuthContext(user_id=1, tenant_id="t-1"))
    stmt = await authorize_select(select(Post), "posts", ctx, evaluator=evaluator)
    result = await session.execute(stmt)
"""

from importlib.metadata import PackageNotFoundError, version

from sqla_rls._audit import AuditLogger, LoggingAuditLogger
from sqla_rls.config._config import RLSConfig, configure, get_global_config
from sqla_rls.context._auth import (
    AuthContext,
    PolicyActivationContext,
    PolicyEvaluationContext,
)
from sqla_rls.context._scope import rls_context
from sqla_rls.evaluation._evaluator import PolicyEvaluator
from sqla_rls.evaluation._models import (
    EvaluationResult,
    FilterResult,
    PolicyTestResult,
    PolicyTrace,
)
from sqla_rls.exceptions import (
    AccessDeniedError,
    ConfigurationError,
    ContextMissingError,
    PredicateError,
    RLSError,
    ValidationError,
)
from sqla_rls.field_access import (
    FieldAccessConfig,
    FieldAccessProcessor,
    FieldAccessRegistry,
    MaskedRow,
    TableFieldAccess,
    define_field_access_schema,
    masked_field,
    never_accessible,
    owner_only,
    owner_or_roles,
    public_read_restricted_write,
    read_only,
    roles_only,
)
from sqla_rls.policy import (
    PolicyDefinition,
    PolicyRegistry,
    TableSchema,
    admin_access,
    allow,
    compose_policies,
    define_schema,
    deny,
    extend_policy,
    filter,
    get_default_registry,
    merge_schemas,
    override_policy,
    ownership,
    soft_delete,
    status_access,
    tenant_isolation,
    validate,
    when_condition,
    when_environment,
    when_feature,
    when_time_range,
)
from sqla_rls.transform import MutationGuard, apply_conditions, authorize_select

try:
    __version__ = version("sqla-rls")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "__version__",
    "AccessDeniedError",
    "AuditLogger",
    "AuthContext",
    "ConfigurationError",
    "ContextMissingError",
    "EvaluationResult",
    "FieldAccessConfig",
    "FieldAccessProcessor",
    "FieldAccessRegistry",
    "FilterResult",
    "LoggingAuditLogger",
    "MaskedRow",
    "MutationGuard",
    "PolicyActivationContext",
    "PolicyDefinition",
    "PolicyEvaluationContext",
    "PolicyEvaluator",
    "PolicyRegistry",
    "PolicyTestResult",
    "PolicyTrace",
    "PredicateError",
    "RLSConfig",
    "RLSError",
    "TableFieldAccess",
    "TableSchema",
    "ValidationError",
    "admin_access",
    "allow",
    "apply_conditions",
    "authorize_select",
    "compose_policies",
    "configure",
    "define_field_access_schema",
    "define_schema",
    "deny",
    "extend_policy",
    "filter",
    "get_default_registry",
    "get_global_config",
    "masked_field",
    "merge_schemas",
    "never_accessible",
    "override_policy",
    "owner_only",
    "owner_or_roles",
    "ownership",
    "public_read_restricted_write",
    "read_only",
    "rls_context",
    "roles_only",
    "soft_delete",
    "status_access",
    "tenant_isolation",
    "validate",
    "when_condition",
    "when_environment",
    "when_feature",
    "when_time_range",
]
