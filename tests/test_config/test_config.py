"""Tests for RLSConfig — layered configuration."""

from __future__ import annotations

import pytest

from sqla_rls.config._config import (
    RLSConfig,
    _reset_global_config,
    configure,
    get_global_config,
)


class TestRLSConfigDefaults:
    """Test default configuration values."""

    def test_defaults(self) -> None:
        config = RLSConfig()
        assert config.log_policy_decisions is False
        assert config.environment == "production"
        assert config.features == frozenset()
        assert config.on_unregistered_table == "allow"
        assert config.audit_bypasses is False
        assert config.exclude_tables == frozenset()
        assert config.bypass_roles == frozenset()


class TestRLSConfigValidation:
    def test_invalid_on_unregistered_table(self) -> None:
        with pytest.raises(ValueError, match="on_unregistered_table"):
            RLSConfig(on_unregistered_table="ignore")  # type: ignore[arg-type]

    def test_invalid_environment(self) -> None:
        with pytest.raises(ValueError, match="environment"):
            RLSConfig(environment=3)  # type: ignore[arg-type]

    def test_table_and_role_sets_normalized(self) -> None:
        config = RLSConfig(exclude_tables="migrations", bypass_roles=["superuser"])  # type: ignore[arg-type]
        assert config.exclude_tables == frozenset({"migrations"})
        assert config.bypass_roles == frozenset({"superuser"})

    def test_features_normalized(self) -> None:
        config = RLSConfig(features=["beta", "beta"])  # type: ignore[arg-type]
        assert config.features == frozenset({"beta"})


class TestRLSConfigFrozen:
    def test_cannot_set(self) -> None:
        config = RLSConfig()
        with pytest.raises(AttributeError):
            config.environment = "staging"  # type: ignore[misc]


class TestRLSConfigMerge:
    """Test merge semantics for layered configuration."""

    def test_merge_overrides(self) -> None:
        merged = RLSConfig().merge(environment="staging", features={"beta"})
        assert merged.environment == "staging"
        assert merged.features == frozenset({"beta"})
        assert merged.on_unregistered_table == "allow"  # unchanged

    def test_merge_with_no_overrides(self) -> None:
        config = RLSConfig(audit_bypasses=True)
        assert config.merge() == config

    def test_merge_bypass_settings(self) -> None:
        merged = RLSConfig(bypass_roles={"admin"}).merge(exclude_tables=["audit_log"])
        assert merged.exclude_tables == frozenset({"audit_log"})
        assert merged.bypass_roles == frozenset({"admin"})

    def test_merge_false_is_applied(self) -> None:
        merged = RLSConfig(log_policy_decisions=True).merge(log_policy_decisions=False)
        assert merged.log_policy_decisions is False


class TestGlobalConfig:
    def setup_method(self) -> None:
        _reset_global_config()

    def teardown_method(self) -> None:
        _reset_global_config()

    def test_configure_merges_into_global(self) -> None:
        result = configure(on_unregistered_table="deny")
        assert result is get_global_config()
        assert get_global_config().on_unregistered_table == "deny"

        configure(environment="staging")
        assert get_global_config().on_unregistered_table == "deny"
        assert get_global_config().environment == "staging"

    def test_reset(self) -> None:
        configure(log_policy_decisions=True)
        _reset_global_config()
        assert get_global_config() == RLSConfig()
