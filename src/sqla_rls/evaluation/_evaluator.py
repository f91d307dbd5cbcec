"""PolicyEvaluator — the decision algorithm over a PolicyRegistry."""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any

from sqla_rls._audit import AuditLogger, log_policy_decision, notify_audit
from sqla_rls.config._config import RLSConfig, get_global_config
from sqla_rls.context._auth import (
    AuthContext,
    PolicyActivationContext,
    PolicyEvaluationContext,
)
from sqla_rls.context._scope import get_current_scope_or_none
from sqla_rls.evaluation._models import (
    EvaluationResult,
    FilterResult,
    PolicyTestResult,
    PolicyTrace,
)
from sqla_rls.exceptions import (
    AccessDeniedError,
    ConfigurationError,
    PredicateError,
    ValidationError,
)
from sqla_rls.policy._base import PolicyDefinition
from sqla_rls.policy._registry import PolicyRegistry, get_default_registry

__all__ = ["PolicyEvaluator"]

SYSTEM_BYPASS_REASON = "System user bypass"
EXCLUDED_TABLE_REASON = "Excluded table"
BYPASS_ROLE_REASON = "Bypass role"
SKIP_FOR_REASON = "skipFor role"
DEFAULT_REASON = "default"

_WRITE_OPERATIONS: frozenset[str] = frozenset({"create", "update"})


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class PolicyEvaluator:
    """Evaluates registered policies against a per-request context.

    All methods are coroutines because predicates may await external
    lookups. Predicates are awaited one at a time in priority order, so
    "first matching policy wins" and the trace are deterministic.

    The evaluator holds no per-request state; one instance can serve any
    number of concurrent requests.

    Example::

        evaluator = PolicyEvaluator(registry)
        result = await evaluator.evaluate("users", "delete", ctx)
        if not result.allowed:
            print(result.policy_name, result.reason)
    """

    def __init__(
        self,
        registry: PolicyRegistry | None = None,
        *,
        audit: AuditLogger | None = None,
        config: RLSConfig | None = None,
    ) -> None:
        self._registry = registry if registry is not None else get_default_registry()
        self._audit = audit
        self._config = config

    @property
    def registry(self) -> PolicyRegistry:
        return self._registry

    @property
    def config(self) -> RLSConfig:
        """The evaluator's config, or the global config when none was given."""
        return self._config if self._config is not None else get_global_config()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def evaluate(
        self,
        table: str,
        operation: str,
        ctx: PolicyEvaluationContext,
        *,
        activation: PolicyActivationContext | None = None,
    ) -> EvaluationResult:
        """Decide whether *ctx* may perform *operation* on *table*.

        1. System callers are allowed without further evaluation.
        2. So are tables in ``config.exclude_tables``, callers holding one of
           ``config.bypass_roles``, and callers holding a ``skip_for`` role.
        3. Active allow/deny policies are walked in priority order; the
           first predicate returning true decides. A raising predicate is
           recorded in the trace as a non-match.
        4. Otherwise the table's ``default_deny`` flag decides.

        Args:
            table: Table name.
            operation: ``"create"``, ``"read"``, ``"update"`` or ``"delete"``.
            ctx: The caller's evaluation context (``row``/``data`` optional).
            activation: Activation context; defaults to the ambient scope's,
                then to one built from the config at the current time.

        Returns:
            An ``EvaluationResult`` including the evaluation trace.
        """
        config = self.config
        ctx = ctx.bind(table, operation)

        bypass = self._bypass_reason(table, ctx.auth, config)
        if bypass is not None:
            result = EvaluationResult(allowed=True, decision_type="allow", reason=bypass)
            self._report(table, operation, ctx.auth, result, config, bypassed=True)
            return result

        default_deny = self._default_deny(table, config)
        activation = self._activation_for(activation, config)

        trace: list[PolicyTrace] = []
        decided: EvaluationResult | None = None
        for p in self._registry.get_policies_for(table, operation):
            if p.decision_type not in ("allow", "deny"):
                continue
            active, error = self._check_active(p, activation, table, operation)
            if not active:
                trace.append(PolicyTrace(p.name, p.decision_type, False, False, error))
                continue
            matched, error = await self._call(p, ctx, table, operation)
            trace.append(PolicyTrace(p.name, p.decision_type, True, matched, error))
            if matched:
                decided = EvaluationResult(
                    allowed=p.decision_type == "allow",
                    decision_type=p.decision_type,
                    reason=f"Matched {p.decision_type} policy {p.name!r}",
                    policy_name=p.name,
                    evaluated_policies=tuple(trace),
                )
                break

        if decided is None:
            decided = EvaluationResult(
                allowed=not default_deny,
                decision_type="deny" if default_deny else "allow",
                reason=DEFAULT_REASON,
                evaluated_policies=tuple(trace),
            )

        self._report(table, operation, ctx.auth, decided, config, bypassed=False)
        return decided

    async def get_filters(
        self,
        table: str,
        operation: str,
        ctx: PolicyEvaluationContext,
        *,
        activation: PolicyActivationContext | None = None,
    ) -> FilterResult:
        """Merge the conditions of every active filter policy.

        Merge order: ascending priority, ties in declaration order. Each
        filter's keys overwrite earlier ones, so on a key collision the
        **higher priority filter wins** (and, at equal priority, the one
        declared last).

        A filter that raises, or returns something other than a mapping,
        is never skipped: dropping it would widen the result set, so an
        ``AccessDeniedError`` is raised instead.

        Bypassing callers (system, excluded table, bypass or ``skip_for``
        role) receive no conditions.
        """
        config = self.config
        ctx = ctx.bind(table, operation)

        if self._bypass_reason(table, ctx.auth, config) is not None:
            return FilterResult()
        self._default_deny(table, config)
        activation = self._activation_for(activation, config)

        active: list[PolicyDefinition] = []
        for p in self._registry.get_policies_for(table, operation):
            if p.decision_type != "filter":
                continue
            is_active, error = self._check_active(p, activation, table, operation)
            if error is not None:
                raise self._filter_failure(table, operation, p, error)
            if is_active:
                active.append(p)

        conditions: dict[str, Any] = {}
        applied: list[str] = []
        for p in sorted(active, key=lambda policy: policy.priority):
            try:
                produced = await _resolve(p.fn(ctx))
            except Exception as exc:
                error = PredicateError(
                    table=table, operation=operation, policy_name=p.name, original=exc
                )
                raise self._filter_failure(table, operation, p, error) from exc
            if not isinstance(produced, Mapping):
                error = PredicateError(
                    table=table,
                    operation=operation,
                    policy_name=p.name,
                    original=TypeError(f"filter returned {type(produced).__name__}, not a mapping"),
                )
                raise self._filter_failure(table, operation, p, error)
            conditions.update(produced)
            applied.append(p.name)

        return FilterResult(conditions=conditions, applied_filters=applied)

    async def validate_write(
        self,
        table: str,
        operation: str,
        ctx: PolicyEvaluationContext,
        *,
        activation: PolicyActivationContext | None = None,
    ) -> None:
        """Run active validate policies for a create/update payload.

        Fail-fast: the first policy returning false (or raising) raises
        ``ValidationError``. Other operations return immediately.
        """
        if operation not in _WRITE_OPERATIONS:
            return
        config = self.config
        ctx = ctx.bind(table, operation)

        if self._bypass_reason(table, ctx.auth, config) is not None:
            return
        self._default_deny(table, config)
        activation = self._activation_for(activation, config)

        for p in self._registry.get_policies_for(table, operation):
            if p.decision_type != "validate":
                continue
            is_active, error = self._check_active(p, activation, table, operation)
            if error is not None:
                raise ValidationError(
                    table=table, operation=operation, policy_name=p.name
                ) from error
            if not is_active:
                continue
            passed, error = await self._call(p, ctx, table, operation)
            if not passed:
                raise ValidationError(table=table, operation=operation, policy_name=p.name) from error

    async def test_policy(
        self,
        table: str,
        name: str,
        ctx: PolicyEvaluationContext,
    ) -> PolicyTestResult:
        """Invoke a single named policy directly, ignoring activation.

        For unit-testing a policy in isolation. Exceptions raised by the
        policy function propagate to the caller.

        Returns:
            ``PolicyTestResult(found=False)`` if no such policy exists,
            otherwise ``found=True`` with the function's return value
            (a bool, or a mapping for filter policies).
        """
        p = self._registry.find_policy(table, name)
        if p is None:
            return PolicyTestResult(found=False)
        operation = ctx.operation if ctx.operation is not None else p.operations[0]
        value = await _resolve(p.fn(ctx.bind(table, operation)))
        if p.decision_type != "filter":
            value = bool(value)
        return PolicyTestResult(found=True, result=value)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _bypass_reason(self, table: str, auth: AuthContext, config: RLSConfig) -> str | None:
        if auth.is_system:
            return SYSTEM_BYPASS_REASON
        if table in config.exclude_tables:
            return EXCLUDED_TABLE_REASON
        if auth.has_any_role(config.bypass_roles):
            return BYPASS_ROLE_REASON
        if auth.has_any_role(self._registry.get_skip_for(table)):
            return SKIP_FOR_REASON
        return None

    def _default_deny(self, table: str, config: RLSConfig) -> bool:
        """Return the table's fallback verdict, applying ``on_unregistered_table``."""
        if self._registry.has_table(table):
            return self._registry.has_default_deny(table)
        if config.on_unregistered_table == "raise":
            raise ConfigurationError(
                f"No RLS schema registered for table {table!r}",
                details={"table": table},
            )
        return config.on_unregistered_table == "deny"

    def _activation_for(
        self,
        activation: PolicyActivationContext | None,
        config: RLSConfig,
    ) -> PolicyActivationContext:
        if activation is not None:
            return activation
        scope = get_current_scope_or_none()
        if scope is not None and scope.activation is not None:
            return scope.activation
        return PolicyActivationContext.now(environment=config.environment, features=config.features)

    def _check_active(
        self,
        p: PolicyDefinition,
        activation: PolicyActivationContext,
        table: str,
        operation: str,
    ) -> tuple[bool, PredicateError | None]:
        try:
            return p.is_active(activation), None
        except Exception as exc:
            return False, PredicateError(
                table=table, operation=operation, policy_name=p.name, original=exc
            )

    async def _call(
        self,
        p: PolicyDefinition,
        ctx: PolicyEvaluationContext,
        table: str,
        operation: str,
    ) -> tuple[bool, PredicateError | None]:
        try:
            return bool(await _resolve(p.fn(ctx))), None
        except Exception as exc:
            return False, PredicateError(
                table=table, operation=operation, policy_name=p.name, original=exc
            )

    def _filter_failure(
        self,
        table: str,
        operation: str,
        p: PolicyDefinition,
        error: PredicateError,
    ) -> AccessDeniedError:
        return AccessDeniedError(
            table=table,
            operation=operation,
            policy_name=p.name,
            reason=f"Filter policy {p.name!r} could not be evaluated: {error.original}",
        )

    def _report(
        self,
        table: str,
        operation: str,
        auth: AuthContext,
        result: EvaluationResult,
        config: RLSConfig,
        *,
        bypassed: bool,
    ) -> None:
        if config.log_policy_decisions:
            log_policy_decision(table=table, operation=operation, auth=auth, result=result)
        if self._audit is None or (bypassed and not config.audit_bypasses):
            return
        notify_audit(self._audit, result=result, table=table, operation=operation, auth=auth)
