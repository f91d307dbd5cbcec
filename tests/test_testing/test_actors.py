"""Tests for sqla_rls.testing._actors — AuthContext factories."""

from __future__ import annotations

from sqla_rls.context._auth import AuthContext, PolicyEvaluationContext
from sqla_rls.testing._actors import (
    make_admin,
    make_anonymous,
    make_auth,
    make_context,
    make_system,
)


class TestFactories:
    def test_make_auth(self) -> None:
        auth = make_auth(7, tenant_id="t-1", roles=["editor"], attributes={"plan": "pro"})
        assert isinstance(auth, AuthContext)
        assert auth.user_id == 7
        assert auth.tenant_id == "t-1"
        assert auth.roles == frozenset({"editor"})
        assert auth.attributes["plan"] == "pro"
        assert auth.is_system is False

    def test_make_system(self) -> None:
        assert make_system().is_system is True

    def test_make_admin(self) -> None:
        assert make_admin().has_role("admin")
        assert make_admin(role="superuser").has_role("superuser")

    def test_make_anonymous(self) -> None:
        anon = make_anonymous()
        assert anon.user_id is None
        assert anon.roles == frozenset()

    def test_make_context(self) -> None:
        ctx = make_context(row={"id": 1})
        assert isinstance(ctx, PolicyEvaluationContext)
        assert ctx.auth.user_id == 1
        assert ctx.row == {"id": 1}
