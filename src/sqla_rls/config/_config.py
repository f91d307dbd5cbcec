"""Layered configuration for sqla-rls."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from sqla_rls._types import OnUnregisteredTable

__all__ = [
    "RLSConfig",
    "configure",
    "get_global_config",
    "_reset_global_config",
    "_set_global_config",
]

_VALID_UNREGISTERED_TABLE: set[str] = {"allow", "deny", "raise"}


@dataclass(frozen=True, slots=True)
class RLSConfig:
    """Layered configuration with merge semantics (global -> evaluator -> call).

    Attributes:
        log_policy_decisions: Emit decision summaries on the ``sqla_rls`` logger.
        environment: Environment name used to build activation contexts
            when the caller supplies none.
        features: Feature flags enabled by default in activation contexts.
        on_unregistered_table: Behavior when a table has no schema.
            ``"allow"`` evaluates as an empty, default-allow table.
            ``"deny"`` evaluates as an empty, default-deny table.
            ``"raise"`` raises ``ConfigurationError``.
        audit_bypasses: Also send bypass decisions (system, excluded table,
            bypass role, skip_for) to the audit collaborator.
        exclude_tables: Tables that are never policed; every check allows.
        bypass_roles: Roles that bypass row-level checks on every table.

    Example::

        config = RLSConfig(environment="staging")
        merged = config.merge(on_unregistered_table="raise")
    """

    log_policy_decisions: bool = False
    environment: str = "production"
    features: frozenset[str] = frozenset()
    on_unregistered_table: OnUnregisteredTable = "allow"
    audit_bypasses: bool = False
    exclude_tables: frozenset[str] = frozenset()
    bypass_roles: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if self.on_unregistered_table not in _VALID_UNREGISTERED_TABLE:
            raise ValueError(
                f"on_unregistered_table must be one of {_VALID_UNREGISTERED_TABLE!r}, "
                f"got {self.on_unregistered_table!r}"
            )
        if not isinstance(self.environment, str):
            raise ValueError(f"environment must be a string, got {self.environment!r}")
        if not isinstance(self.features, frozenset):
            # Use object.__setattr__ because the dataclass is frozen
            object.__setattr__(self, "features", frozenset(self.features))
        for attr in ("exclude_tables", "bypass_roles"):
            value = getattr(self, attr)
            if isinstance(value, str):
                object.__setattr__(self, attr, frozenset({value}))
            elif not isinstance(value, frozenset):
                object.__setattr__(self, attr, frozenset(value))

    def merge(
        self,
        *,
        log_policy_decisions: bool | None = None,
        environment: str | None = None,
        features: Iterable[str] | None = None,
        on_unregistered_table: OnUnregisteredTable | None = None,
        audit_bypasses: bool | None = None,
        exclude_tables: Iterable[str] | None = None,
        bypass_roles: Iterable[str] | None = None,
    ) -> RLSConfig:
        """Return a new config with non-None overrides applied.

        Args:
            log_policy_decisions: Override for log_policy_decisions (ignored if None).
            environment: Override for environment (ignored if None).
            features: Override for features (ignored if None).
            on_unregistered_table: Override for on_unregistered_table (ignored if None).
            audit_bypasses: Override for audit_bypasses (ignored if None).
            exclude_tables: Override for exclude_tables (ignored if None).
            bypass_roles: Override for bypass_roles (ignored if None).

        Returns:
            A new ``RLSConfig`` with overrides merged.
        """
        return RLSConfig(
            log_policy_decisions=(
                log_policy_decisions
                if log_policy_decisions is not None
                else self.log_policy_decisions
            ),
            environment=environment if environment is not None else self.environment,
            features=frozenset(features) if features is not None else self.features,
            on_unregistered_table=(
                on_unregistered_table
                if on_unregistered_table is not None
                else self.on_unregistered_table
            ),
            audit_bypasses=audit_bypasses if audit_bypasses is not None else self.audit_bypasses,
            exclude_tables=(
                frozenset(exclude_tables) if exclude_tables is not None else self.exclude_tables
            ),
            bypass_roles=frozenset(bypass_roles) if bypass_roles is not None else self.bypass_roles,
        )


# ---------------------------------------------------------------------------
# Global configuration singleton
# ---------------------------------------------------------------------------

_global_config = RLSConfig()


def get_global_config() -> RLSConfig:
    """Return the current global configuration."""
    return _global_config


def configure(
    *,
    log_policy_decisions: bool | None = None,
    environment: str | None = None,
    features: Iterable[str] | None = None,
    on_unregistered_table: OnUnregisteredTable | None = None,
    audit_bypasses: bool | None = None,
    exclude_tables: Iterable[str] | None = None,
    bypass_roles: Iterable[str] | None = None,
) -> RLSConfig:
    """Update the global configuration by merging overrides.

    Only non-None values are applied. Returns the new global config.

    Example::

        configure(environment="staging", log_policy_decisions=True)
    """
    global _global_config
    _global_config = _global_config.merge(
        log_policy_decisions=log_policy_decisions,
        environment=environment,
        features=features,
        on_unregistered_table=on_unregistered_table,
        audit_bypasses=audit_bypasses,
        exclude_tables=exclude_tables,
        bypass_roles=bypass_roles,
    )
    return _global_config


def _set_global_config(cfg: RLSConfig) -> None:
    """Replace global config with an exact snapshot. For testing only."""
    global _global_config
    _global_config = cfg


def _reset_global_config() -> None:
    """Reset global config to defaults. For testing only."""
    global _global_config
    _global_config = RLSConfig()
