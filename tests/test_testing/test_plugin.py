"""Tests for sqla_rls.testing._plugin — pytest plugin registration."""

from __future__ import annotations

from sqla_rls.testing import _plugin


class TestPluginExports:
    """The plugin module re-exports fixture functions for auto-discovery."""

    def test_exports_rls_registry(self) -> None:
        assert hasattr(_plugin, "rls_registry")

    def test_exports_rls_config(self) -> None:
        assert hasattr(_plugin, "rls_config")

    def test_exports_isolated_rls_state(self) -> None:
        assert hasattr(_plugin, "isolated_rls_state")
