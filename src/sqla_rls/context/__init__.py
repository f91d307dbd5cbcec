"""Context values and the ambient per-operation scope."""

from sqla_rls.context._auth import (
    AuthContext,
    PolicyActivationContext,
    PolicyEvaluationContext,
)
from sqla_rls.context._scope import (
    RLSScope,
    get_current_scope,
    get_current_scope_or_none,
    resolve_context,
    rls_context,
)

__all__ = [
    "AuthContext",
    "PolicyActivationContext",
    "PolicyEvaluationContext",
    "RLSScope",
    "get_current_scope",
    "get_current_scope_or_none",
    "resolve_context",
    "rls_context",
]
