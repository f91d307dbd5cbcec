"""Conditional activation wrappers: environment, feature flag, time range."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace

from sqla_rls._types import ActivationCondition
from sqla_rls.context._auth import PolicyActivationContext
from sqla_rls.exceptions import ConfigurationError
from sqla_rls.policy._base import PolicyDefinition

__all__ = ["when_condition", "when_environment", "when_feature", "when_time_range"]

PolicySource = PolicyDefinition | Callable[[], PolicyDefinition]


def _resolve(policy: PolicySource) -> PolicyDefinition:
    if isinstance(policy, PolicyDefinition):
        return policy
    built = policy()
    if not isinstance(built, PolicyDefinition):
        raise ConfigurationError(
            f"policy factory must return a PolicyDefinition, got {type(built).__name__}"
        )
    return built


def _and_condition(policy: PolicySource, condition: ActivationCondition) -> PolicyDefinition:
    """Return a copy of *policy* gated by *condition* AND any existing gate."""
    base = _resolve(policy)
    existing = base.activation_condition
    if existing is None:
        combined = condition
    else:

        def combined(ctx: PolicyActivationContext) -> bool:
            return bool(condition(ctx)) and bool(existing(ctx))

    return replace(base, activation_condition=combined)


def when_environment(environments: str | Iterable[str], policy: PolicySource) -> PolicyDefinition:
    """Activate *policy* only in the given environments.

    Example::

        when_environment(["staging", "production"],
                         filter("read", tenant_filter, name="tenant-filter"))
    """
    envs = frozenset({environments} if isinstance(environments, str) else environments)

    def in_environment(ctx: PolicyActivationContext) -> bool:
        return ctx.environment in envs

    return _and_condition(policy, in_environment)


def when_feature(feature: str, policy: PolicySource) -> PolicyDefinition:
    """Activate *policy* only while the feature flag is enabled.

    ``ctx.features`` may be a mapping (flag -> truthy value) or a
    collection of enabled flag names.
    """

    def feature_enabled(ctx: PolicyActivationContext) -> bool:
        return ctx.is_feature_enabled(feature)

    return _and_condition(policy, feature_enabled)


def when_time_range(start_hour: int, end_hour: int, policy: PolicySource) -> PolicyDefinition:
    """Activate *policy* while the hour of ``ctx.timestamp`` is in ``[start, end)``.

    When ``start_hour > end_hour`` the range crosses midnight: ``(22, 6)``
    is active at 23:00 and 02:00 and inactive at 10:00. Equal bounds
    describe an empty range.
    """
    for label, hour in (("start_hour", start_hour), ("end_hour", end_hour)):
        if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
            raise ConfigurationError(f"{label} must be an int in 0..23, got {hour!r}")

    def in_time_range(ctx: PolicyActivationContext) -> bool:
        hour = ctx.timestamp.hour
        if start_hour > end_hour:
            return hour >= start_hour or hour < end_hour
        return start_hour <= hour < end_hour

    return _and_condition(policy, in_time_range)


def when_condition(condition: ActivationCondition, policy: PolicySource) -> PolicyDefinition:
    """Activate *policy* only when *condition* holds for the activation context."""
    if not callable(condition):
        raise ConfigurationError("when_condition() needs a callable condition")
    return _and_condition(policy, condition)
