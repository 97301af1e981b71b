# tests/unit/logging/test_log_context.py — v1
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from syndication.logging.context import (
    clear_context,
    get_context,
    set_execution_context,
    set_task_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.execution_id is None
        assert ctx.partner is None

    def test_set_execution_context(self):
        set_execution_context("exec-1", "A1")
        ctx = get_context()
        assert ctx.execution_id == "exec-1"
        assert ctx.asset_id == "A1"

    def test_set_task_context(self):
        set_task_context("ACE", "Metadata")
        ctx = get_context()
        assert ctx.partner == "ACE"
        assert ctx.task == "Metadata"

    def test_as_dict_filters_none(self):
        set_execution_context("exec-1", "A1")
        d = get_context().as_dict()
        assert d == {"execution_id": "exec-1", "asset_id": "A1"}

    def test_clear(self):
        set_execution_context("exec-1", "A1")
        set_task_context("ACE")
        clear_context()
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_tasks_do_not_share_context(self):
        seen: dict[str, str | None] = {}

        async def branch(partner: str) -> None:
            set_task_context(partner)
            await asyncio.sleep(0)
            seen[partner] = get_context().partner

        await asyncio.gather(branch("ACE"), branch("OtherProvider"))
        assert seen == {"ACE": "ACE", "OtherProvider": "OtherProvider"}
        assert get_context().partner is None
