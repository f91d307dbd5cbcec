"""Shared test fixtures for sqla-rls tests."""

from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import DateTime, ForeignKey, Integer, String, create_engine
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    sessionmaker,
)

from sqla_rls.context._auth import AuthContext, PolicyEvaluationContext
from sqla_rls.evaluation._evaluator import PolicyEvaluator
from sqla_rls.policy._registry import PolicyRegistry
from sqla_rls.testing._recording import RecordingAuditLogger

# ---------------------------------------------------------------------------
# Test models
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(50))
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(200))
    password_hash: Mapped[str] = mapped_column(String(200), default="x")


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(50))
    title: Mapped[str] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(20), default="draft")
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


# ---------------------------------------------------------------------------
# Context helpers
# ---------------------------------------------------------------------------


def ctx_for(
    user_id: int | str | None = 1,
    *,
    tenant_id: str | None = "tenant-1",
    roles: tuple[str, ...] = (),
    is_system: bool = False,
    row: dict | None = None,
    data: dict | None = None,
) -> PolicyEvaluationContext:
    """Build a PolicyEvaluationContext in one call."""
    return PolicyEvaluationContext(
        auth=AuthContext(
            user_id=user_id,
            tenant_id=tenant_id,
            roles=frozenset(roles),
            is_system=is_system,
        ),
        row=row,
        data=data,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def registry() -> PolicyRegistry:
    """Fresh registry per test to avoid cross-test pollution."""
    return PolicyRegistry()


@pytest.fixture()
def audit() -> RecordingAuditLogger:
    return RecordingAuditLogger()


@pytest.fixture()
def evaluator(registry: PolicyRegistry, audit: RecordingAuditLogger) -> PolicyEvaluator:
    return PolicyEvaluator(registry, audit=audit)


@pytest.fixture()
def engine():
    """Create an in-memory SQLite engine with all tables."""
    eng = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture()
def session(engine):
    """Provide a transactional session that rolls back after each test."""
    factory = sessionmaker(bind=engine)
    sess = factory()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()


@pytest.fixture()
def sample_data(session: Session) -> dict[str, list]:
    """Seed two tenants with users and posts."""
    alice = User(id=1, tenant_id="tenant-1", name="Alice", email="alice@example.com")
    bob = User(id=2, tenant_id="tenant-1", name="Bob", email="bob@example.com")
    carol = User(id=3, tenant_id="tenant-2", name="Carol", email="carol@example.com")
    session.add_all([alice, bob, carol])

    posts = [
        Post(id=1, tenant_id="tenant-1", title="T1 published", status="published", author_id=1),
        Post(id=2, tenant_id="tenant-1", title="T1 draft", status="draft", author_id=2),
        Post(
            id=3,
            tenant_id="tenant-1",
            title="T1 deleted",
            status="published",
            author_id=1,
            deleted_at=datetime(2024, 1, 1),
        ),
        Post(id=4, tenant_id="tenant-2", title="T2 published", status="published", author_id=3),
    ]
    session.add_all(posts)
    session.flush()
    return {"users": [alice, bob, carol], "posts": posts}
