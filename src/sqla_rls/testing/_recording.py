"""An in-memory audit collaborator for asserting on audit events."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

__all__ = ["AuditEvent", "RecordingAuditLogger"]


@dataclass(frozen=True, slots=True)
class AuditEvent:
    decision: str
    operation: str
    table: str
    policy_name: str | None
    extra: Mapping[str, Any] = field(default_factory=dict)


class RecordingAuditLogger:
    """Audit collaborator that keeps every event in ``events``.

    Example::

        audit = RecordingAuditLogger()
        evaluator = PolicyEvaluator(registry, audit=audit)
        await evaluator.evaluate("posts", "delete", ctx)
        assert audit.denials()[0].policy_name == "no-delete"
    """

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def log_allow(
        self,
        operation: str,
        table: str,
        policy_name: str | None,
        extra: Mapping[str, Any],
    ) -> None:
        self.events.append(AuditEvent("allow", operation, table, policy_name, dict(extra)))

    def log_deny(
        self,
        operation: str,
        table: str,
        policy_name: str | None,
        extra: Mapping[str, Any],
    ) -> None:
        self.events.append(AuditEvent("deny", operation, table, policy_name, dict(extra)))

    def allows(self) -> list[AuditEvent]:
        return [e for e in self.events if e.decision == "allow"]

    def denials(self) -> list[AuditEvent]:
        return [e for e in self.events if e.decision == "deny"]

    def clear(self) -> None:
        self.events.clear()
