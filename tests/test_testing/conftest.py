"""Import fixtures from sqla_rls.testing for test discovery."""

from sqla_rls.testing._fixtures import isolated_rls_state, rls_config, rls_registry

__all__ = ["isolated_rls_state", "rls_config", "rls_registry"]
