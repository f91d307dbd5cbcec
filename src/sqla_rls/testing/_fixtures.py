"""Pytest fixtures for testing sqla-rls policies."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from sqla_rls.config._config import RLSConfig
from sqla_rls.policy._registry import PolicyRegistry

__all__ = ["isolated_rls_state", "rls_config", "rls_registry"]


@pytest.fixture()
def rls_registry() -> PolicyRegistry:
    """Provide a fresh, isolated ``PolicyRegistry`` for each test.

    The registry is not shared with the global default registry.

    Example::

        def test_my_policy(rls_registry):
            rls_registry.register("posts", TableSchema(policies=[deny("delete", name="no-delete")]))
            assert rls_registry.has_table("posts")
    """
    return PolicyRegistry()


@pytest.fixture()
def rls_config() -> RLSConfig:
    """Provide a default ``RLSConfig`` for testing."""
    return RLSConfig()


@pytest.fixture()
def isolated_rls_state() -> Generator[tuple[RLSConfig, PolicyRegistry], None, None]:
    """Isolate the global config and default registry for one test.

    Example::

        def test_something(isolated_rls_state):
            cfg, registry = isolated_rls_state
            registry.register("posts", {"policies": []})
    """
    from sqla_rls.testing._isolation import isolated_rls

    with isolated_rls() as state:
        yield state
