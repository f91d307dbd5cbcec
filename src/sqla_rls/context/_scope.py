"""Ambient, task-local RLS context.

A convenience layered over explicit parameter passing: every engine entry
point still accepts ``ctx=`` directly, and an explicit argument always
wins. The scope lives in a ``ContextVar`` so concurrent asyncio tasks and
threads never observe each other's context.
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator, Mapping
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

from sqla_rls.context._auth import (
    AuthContext,
    PolicyActivationContext,
    PolicyEvaluationContext,
)
from sqla_rls.exceptions import ContextMissingError

__all__ = [
    "RLSScope",
    "get_current_scope",
    "get_current_scope_or_none",
    "resolve_context",
    "rls_context",
]


@dataclass(frozen=True, slots=True)
class RLSScope:
    """Values visible to nested helpers for one logical operation."""

    auth: AuthContext
    meta: Mapping[str, Any] | None = None
    activation: PolicyActivationContext | None = None

    def evaluation_context(self) -> PolicyEvaluationContext:
        return PolicyEvaluationContext(auth=self.auth, meta=self.meta)


_current_scope: ContextVar[RLSScope | None] = ContextVar("sqla_rls_scope", default=None)


@contextlib.contextmanager
def rls_context(
    auth: AuthContext,
    *,
    meta: Mapping[str, Any] | None = None,
    activation: PolicyActivationContext | None = None,
) -> Generator[RLSScope, None, None]:
    """Make *auth* the ambient context for the enclosed block.

    The previous scope is restored on exit, even if the body raises.

    Example::

        with rls_context(AuthContext(user_id=1, roles={"user"})):
            masked = await processor.mask_row("users", row)
    """
    scope = RLSScope(auth=auth, meta=meta, activation=activation)
    token = _current_scope.set(scope)
    try:
        yield scope
    finally:
        _current_scope.reset(token)


def get_current_scope_or_none() -> RLSScope | None:
    return _current_scope.get()


def get_current_scope() -> RLSScope:
    """Return the ambient scope or raise ``ContextMissingError``."""
    scope = _current_scope.get()
    if scope is None:
        raise ContextMissingError()
    return scope


def resolve_context(ctx: PolicyEvaluationContext | None) -> PolicyEvaluationContext:
    """Return *ctx* if given, else a context built from the ambient scope."""
    if ctx is not None:
        return ctx
    return get_current_scope().evaluation_context()
