"""Edge case tests for sqla-rls — boundary conditions and unusual inputs."""

from __future__ import annotations

import pytest
from sqlalchemy import literal_column, select

from sqla_rls.evaluation._evaluator import PolicyEvaluator
from sqla_rls.field_access._processor import FieldAccessProcessor
from sqla_rls.field_access._registry import FieldAccessRegistry
from sqla_rls.policy._base import TableSchema
from sqla_rls.policy._builder import allow, filter
from sqla_rls.policy._registry import PolicyRegistry
from sqla_rls.transform._select import apply_conditions
from tests.conftest import ctx_for


class TestApplyConditionsWithoutFrom:
    """A statement with no FROM object for the table still gets qualified columns."""

    def test_literal_select(self):
        stmt = apply_conditions(select(literal_column("1")), "posts", {"tenant_id": "t"})
        sql = str(stmt.compile(compile_kwargs={"literal_binds": True}))
        assert "posts.tenant_id = 't'" in sql

    def test_tuple_and_set_values(self):
        stmt = apply_conditions(select(literal_column("1")), "posts", {"a": (1,), "b": frozenset({2})})
        sql = str(stmt.compile(compile_kwargs={"literal_binds": True}))
        assert "posts.a IN (1)" in sql
        assert "posts.b IN (2)" in sql


class TestEmptySchemas:
    @pytest.mark.asyncio
    async def test_table_without_policies(self):
        registry = PolicyRegistry({"posts": {}})
        evaluator = PolicyEvaluator(registry)
        result = await evaluator.evaluate("posts", "delete", ctx_for())
        assert result.allowed
        assert result.evaluated_policies == ()
        assert (await evaluator.get_filters("posts", "read", ctx_for())).conditions == {}

    @pytest.mark.asyncio
    async def test_empty_row(self):
        processor = FieldAccessProcessor(FieldAccessRegistry({"users": {"default": "deny"}}))
        result = await processor.mask_row("users", {}, ctx=ctx_for())
        assert result.data == {}
        assert result.masked_fields == []


class TestFilterReturningEmptyMapping:
    @pytest.mark.asyncio
    async def test_counts_as_applied(self):
        registry = PolicyRegistry({"posts": {"policies": [filter("read", lambda ctx: {}, name="noop")]}})
        result = await PolicyEvaluator(registry).get_filters("posts", "read", ctx_for())
        assert result.conditions == {}
        assert result.applied_filters == ["noop"]


class TestTruthyPredicateValues:
    """Predicate results are coerced with bool()."""

    @pytest.mark.asyncio
    async def test_truthy_object(self):
        registry = PolicyRegistry(
            {"posts": {"policies": [allow("read", lambda ctx: [1], name="truthy")], "default_deny": True}}
        )
        result = await PolicyEvaluator(registry).evaluate("posts", "read", ctx_for())
        assert result.allowed

    @pytest.mark.asyncio
    async def test_none_is_no_match(self):
        registry = PolicyRegistry(
            {"posts": TableSchema(policies=[allow("read", lambda ctx: None, name="none")], default_deny=True)}
        )
        result = await PolicyEvaluator(registry).evaluate("posts", "read", ctx_for())
        assert not result.allowed
