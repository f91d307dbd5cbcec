"""Result types produced by the policy evaluator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqla_rls.exceptions import PredicateError

__all__ = ["EvaluationResult", "FilterResult", "PolicyTestResult", "PolicyTrace"]


@dataclass(frozen=True, slots=True)
class PolicyTrace:
    """What happened to one policy during an evaluation.

    Attributes:
        name: Policy name.
        decision_type: The policy's kind.
        active: False when the activation condition switched it off.
        matched: True when the predicate returned true.
        error: Set when the predicate (or activation condition) raised.
    """

    name: str
    decision_type: str
    active: bool
    matched: bool
    error: PredicateError | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "decision_type": self.decision_type,
            "active": self.active,
            "matched": self.matched,
            "error": str(self.error) if self.error is not None else None,
        }


@dataclass(frozen=True, slots=True)
class EvaluationResult:
    """Outcome of ``PolicyEvaluator.evaluate``.

    Attributes:
        allowed: The verdict.
        decision_type: ``"allow"`` or ``"deny"``.
        reason: Why (``"System user bypass"``, ``"skipFor role"``,
            ``"default"``, or the matching policy).
        policy_name: The policy that decided, if one matched.
        evaluated_policies: Trace of allow/deny policies in evaluation order.
    """

    allowed: bool
    decision_type: str
    reason: str | None = None
    policy_name: str | None = None
    evaluated_policies: tuple[PolicyTrace, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "allowed": self.allowed,
            "decision_type": self.decision_type,
            "reason": self.reason,
            "policy_name": self.policy_name,
            "evaluated_policies": [t.to_dict() for t in self.evaluated_policies],
        }

    def __str__(self) -> str:
        """Return a human-readable multi-line explanation."""
        verdict = "ALLOWED" if self.allowed else "DENIED"
        lines = [f"Access Check: {verdict}"]
        lines.append(f"  Decision: {self.decision_type} ({self.reason})")
        if self.policy_name is not None:
            lines.append(f"  Policy: {self.policy_name}")
        if self.evaluated_policies:
            lines.append("  Policy Results:")
            for t in self.evaluated_policies:
                if not t.active:
                    status = "INACTIVE"
                elif t.error is not None:
                    status = "ERROR"
                else:
                    status = "MATCH" if t.matched else "NO MATCH"
                lines.append(f"    - {t.name} <{t.decision_type}> [{status}]")
                if t.error is not None:
                    lines.append(f"      {t.error}")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class FilterResult:
    """Merged WHERE conditions from all active filter policies."""

    conditions: dict[str, Any] = field(default_factory=dict)
    applied_filters: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PolicyTestResult:
    """Outcome of ``PolicyEvaluator.test_policy``."""

    found: bool
    result: Any = None
