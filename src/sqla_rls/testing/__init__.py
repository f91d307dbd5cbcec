"""sqla-rls testing utilities — auth factories, assertions, and fixtures.

Provides test helpers for verifying row- and field-level policies:

- **Factories**: ``make_auth``, ``make_system``, ``make_admin``,
  ``make_anonymous``, ``make_context``.
- **Assertion helpers**: ``assert_allowed``, ``assert_denied``,
  ``assert_filters`` (all coroutines).
- **RecordingAuditLogger**: keeps audit events in memory.
- **Fixtures**: ``rls_registry``, ``rls_config``, ``isolated_rls_state``.

Example::

    from sqla_rls.testing import assert_denied, make_auth, make_context

    async def test_no_delete(evaluator):
        await assert_denied(evaluator, "posts", "delete", make_context(make_auth()))
"""

from sqla_rls.testing._actors import (
    make_admin,
    make_anonymous,
    make_auth,
    make_context,
    make_system,
)
from sqla_rls.testing._assertions import assert_allowed, assert_denied, assert_filters
from sqla_rls.testing._fixtures import isolated_rls_state, rls_config, rls_registry
from sqla_rls.testing._isolation import isolated_rls
from sqla_rls.testing._recording import AuditEvent, RecordingAuditLogger

__all__ = [
    "AuditEvent",
    "RecordingAuditLogger",
    "assert_allowed",
    "assert_denied",
    "assert_filters",
    "isolated_rls",
    "isolated_rls_state",
    "make_admin",
    "make_anonymous",
    "make_auth",
    "make_context",
    "make_system",
    "rls_config",
    "rls_registry",
]
