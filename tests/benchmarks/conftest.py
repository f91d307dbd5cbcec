"""Benchmark fixtures — registries, contexts, and an event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Generator

import pytest
from sqlalchemy import Integer, Select, String, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from sqla_rls.context._auth import AuthContext, PolicyEvaluationContext
from sqla_rls.field_access._config import never_accessible, owner_only
from sqla_rls.field_access._registry import FieldAccessRegistry
from sqla_rls.policy._base import TableSchema
from sqla_rls.policy._builder import allow, deny, filter
from sqla_rls.policy._patterns import soft_delete, tenant_isolation
from sqla_rls.policy._registry import PolicyRegistry

# ---------------------------------------------------------------------------
# Benchmark-local models (separate DeclarativeBase to avoid conflicts)
# ---------------------------------------------------------------------------


class BenchBase(DeclarativeBase):
    pass


class BenchPost(BenchBase):
    __tablename__ = "bench_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(50))
    title: Mapped[str] = mapped_column(String(200))
    author_id: Mapped[int] = mapped_column(Integer)


def _make_wide_registry(n: int) -> PolicyRegistry:
    """Registry with *n* non-matching allow policies ahead of a matching one."""
    policies = [
        allow("read", lambda ctx, _i=i: ctx.auth.user_id == -_i - 1, name=f"miss-{i}", priority=n - i)
        for i in range(n)
    ]
    policies.append(allow("read", lambda ctx: True, name="hit", priority=-1))
    registry = PolicyRegistry()
    registry.register("bench_posts", TableSchema(policies=policies, default_deny=True))
    return registry


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def loop() -> Generator[asyncio.AbstractEventLoop, None, None]:
    event_loop = asyncio.new_event_loop()
    yield event_loop
    event_loop.close()


@pytest.fixture()
def bench_ctx() -> PolicyEvaluationContext:
    return PolicyEvaluationContext(
        auth=AuthContext(user_id=1, tenant_id="tenant-1", roles=frozenset({"user"})),
        row={"id": 1, "author_id": 1},
    )


@pytest.fixture()
def simple_registry() -> PolicyRegistry:
    registry = PolicyRegistry()
    registry.register(
        "bench_posts",
        TableSchema(
            policies=[
                *tenant_isolation(),
                *soft_delete(),
                deny("delete", name="no-delete", priority=200),
                allow("all", lambda ctx: True, name="allow-all"),
            ]
        ),
    )
    return registry


@pytest.fixture()
def wide_registry() -> PolicyRegistry:
    return _make_wide_registry(50)


@pytest.fixture()
def filter_registry() -> PolicyRegistry:
    registry = PolicyRegistry()
    registry.register(
        "bench_posts",
        TableSchema(
            policies=[
                filter("read", lambda ctx, _i=i: {f"col_{_i}": _i}, name=f"f{i}", priority=i)
                for i in range(20)
            ]
        ),
    )
    return registry


@pytest.fixture()
def field_registry() -> FieldAccessRegistry:
    return FieldAccessRegistry(
        {
            "bench_posts": {
                "fields": {
                    "title": owner_only("author_id"),
                    "secret": never_accessible(),
                }
            }
        }
    )


@pytest.fixture()
def bench_stmt() -> Select:
    return select(BenchPost)
