"""Exception hierarchy for sqla-rls."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqla_rls.evaluation._models import EvaluationResult

__all__ = [
    "AccessDeniedError",
    "ConfigurationError",
    "ContextMissingError",
    "PredicateError",
    "RLSError",
    "ValidationError",
]


class RLSError(Exception):
    """Base exception for all sqla-rls errors."""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {"error": type(self).__name__, "message": str(self)}


class ConfigurationError(RLSError):
    """A schema or policy definition is invalid.

    Raised synchronously at registration time (duplicate table, duplicate
    policy name, malformed policy). Never caught inside the engine: it
    signals a programming mistake and should abort startup.

    Example::

        registry.register("users", TableSchema(policies=[...]))
        registry.register("users", TableSchema(policies=[...]))  # raises
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.details = dict(details or {})
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "details": self.details}


class PredicateError(RLSError):
    """A policy predicate raised while being evaluated.

    Never propagated out of the evaluator. Instances are stored on the
    ``PolicyTrace`` of the failing policy, which is treated as a non-match.

    Attributes:
        table: Table being evaluated.
        operation: Operation being evaluated.
        policy_name: Name of the policy whose predicate raised.
        original: The exception raised by the predicate.
    """

    def __init__(
        self,
        *,
        table: str,
        operation: str,
        policy_name: str,
        original: BaseException,
    ) -> None:
        self.table = table
        self.operation = operation
        self.policy_name = policy_name
        self.original = original
        super().__init__(
            f"Policy {policy_name!r} raised during {operation} on {table}: "
            f"{type(original).__name__}: {original}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "table": self.table,
            "operation": self.operation,
            "policy_name": self.policy_name,
            "original": {"type": type(self.original).__name__, "message": str(self.original)},
        }


class AccessDeniedError(RLSError):
    """Row- or field-level access was denied.

    Permanent failure; callers must not retry.

    Attributes:
        table: Table the operation targeted.
        operation: Operation that was denied (``"read"``, ``"update"``, ...).
        policy_name: Policy that produced the denial, if any.
        reason: Human-readable reason.
        field: Offending column for field-level denials.
        result: Full evaluation result (with trace) for row-level denials.

    Example::

        try:
            await guard.check_delete("posts", row, ctx)
        except AccessDeniedError as exc:
            print(exc.policy_name, exc.reason)
    """

    def __init__(
        self,
        *,
        table: str,
        operation: str,
        reason: str,
        policy_name: str | None = None,
        field: str | None = None,
        result: EvaluationResult | None = None,
        message: str | None = None,
    ) -> None:
        self.table = table
        self.operation = operation
        self.reason = reason
        self.policy_name = policy_name
        self.field = field
        self.result = result
        if message is None:
            message = f"Access denied: {operation} on {table} - {reason}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            **super().to_dict(),
            "table": self.table,
            "operation": self.operation,
            "reason": self.reason,
        }
        if self.policy_name is not None:
            data["policy_name"] = self.policy_name
        if self.field is not None:
            data["field"] = self.field
        return data


class ValidationError(RLSError):
    """A ``validate`` policy rejected the proposed write payload.

    Attributes:
        table: Table being written.
        operation: ``"create"`` or ``"update"``.
        policy_name: Name of the failing validate policy.
        field: Offending field, when known.
    """

    def __init__(
        self,
        *,
        table: str,
        operation: str,
        policy_name: str,
        field: str | None = None,
        message: str | None = None,
    ) -> None:
        self.table = table
        self.operation = operation
        self.policy_name = policy_name
        self.field = field
        if message is None:
            message = f"Validation failed: {operation} on {table} rejected by {policy_name!r}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            **super().to_dict(),
            "table": self.table,
            "operation": self.operation,
            "policy_name": self.policy_name,
        }
        if self.field is not None:
            data["field"] = self.field
        return data


class ContextMissingError(RLSError):
    """No explicit context was passed and no ambient ``rls_context`` is active."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message or "No RLS context found. Pass ctx= explicitly or run inside rls_context()."
        )
