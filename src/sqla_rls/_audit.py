"""Decision logging and the audit collaborator protocol."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sqla_rls.context._auth import AuthContext
    from sqla_rls.evaluation._models import EvaluationResult

__all__ = [
    "AuditLogger",
    "LoggingAuditLogger",
    "log_policy_decision",
    "notify_audit",
]

logger = logging.getLogger("sqla_rls")

# Strong references to in-flight audit tasks; the event loop only keeps weak ones.
_pending_audit_tasks: set[asyncio.Task[Any]] = set()


@runtime_checkable
class AuditLogger(Protocol):
    """Receives decision events from the evaluator.

    Implementations own buffering and persistence. Methods may be plain
    functions or coroutines; coroutines are scheduled and never awaited
    by the evaluator.
    """

    def log_allow(
        self,
        operation: str,
        table: str,
        policy_name: str | None,
        extra: Mapping[str, Any],
    ) -> Any: ...

    def log_deny(
        self,
        operation: str,
        table: str,
        policy_name: str | None,
        extra: Mapping[str, Any],
    ) -> Any: ...


class LoggingAuditLogger:
    """Audit collaborator that writes one record per decision to a logger.

    Allow decisions go out at INFO, denials at WARNING, on
    ``sqla_rls.audit`` unless another logger is given.

    Example::

        evaluator = PolicyEvaluator(registry, audit=LoggingAuditLogger())
    """

    def __init__(self, audit_logger: logging.Logger | None = None) -> None:
        self._logger = audit_logger or logging.getLogger("sqla_rls.audit")

    def log_allow(
        self,
        operation: str,
        table: str,
        policy_name: str | None,
        extra: Mapping[str, Any],
    ) -> None:
        self._logger.info(
            "ALLOW %s on %s policy=%s %s",
            operation,
            table,
            policy_name or "<default>",
            dict(extra),
        )

    def log_deny(
        self,
        operation: str,
        table: str,
        policy_name: str | None,
        extra: Mapping[str, Any],
    ) -> None:
        self._logger.warning(
            "DENY %s on %s policy=%s %s",
            operation,
            table,
            policy_name or "<default>",
            dict(extra),
        )


def _log_task_failure(task: asyncio.Task[Any]) -> None:
    _pending_audit_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Audit logger failed asynchronously", exc_info=exc)


def notify_audit(
    audit: AuditLogger,
    *,
    result: EvaluationResult,
    table: str,
    operation: str,
    auth: AuthContext,
) -> None:
    """Hand a decision to the audit collaborator, fire-and-forget.

    Failures in the collaborator are logged and never change the decision.
    """
    extra: dict[str, Any] = {
        "reason": result.reason,
        "user_id": auth.user_id,
        "tenant_id": auth.tenant_id,
    }
    method = audit.log_allow if result.allowed else audit.log_deny
    try:
        outcome = method(operation, table, result.policy_name, extra)
    except Exception:
        logger.exception("Audit logger raised for %s on %s", operation, table)
        return
    if inspect.isawaitable(outcome):
        task = asyncio.ensure_future(outcome)
        _pending_audit_tasks.add(task)
        task.add_done_callback(_log_task_failure)


def log_policy_decision(
    *,
    table: str,
    operation: str,
    auth: AuthContext,
    result: EvaluationResult,
) -> None:
    """Log a policy evaluation decision.

    Logging levels:
    - INFO: Verdict summary (table, operation, policy, reason)
    - DEBUG: Full trace of evaluated policies
    - WARNING: A predicate raised during evaluation
    """
    logger.info(
        "Policy evaluation: %s.%s -> %s (policy=%s, reason=%s) for user %r",
        table,
        operation,
        "ALLOW" if result.allowed else "DENY",
        result.policy_name,
        result.reason,
        auth.user_id,
    )

    for trace in result.evaluated_policies:
        if trace.error is not None:
            logger.warning("Predicate failure on %s.%s: %s", table, operation, trace.error)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Trace for %s.%s: %s",
            table,
            operation,
            [t.to_dict() for t in result.evaluated_policies],
        )
