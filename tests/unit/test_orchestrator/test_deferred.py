"""Unit tests for best-effort deferred writes."""

import logging
from unittest.mock import AsyncMock

import pytest

from atlas.orchestrator.deferred import DeferredWrite, run_deferred


@pytest.mark.unit
class TestDeferredWrite:
    @pytest.mark.asyncio
    async def test_success(self):
        func = AsyncMock()

        assert await DeferredWrite("interaction_memory", func).run() is True
        func.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, caplog):
        write = DeferredWrite(
            "skill_gained",
            AsyncMock(side_effect=RuntimeError("store down")),
            details={"agent_id": "a1"},
        )

        with caplog.at_level(logging.WARNING, logger="atlas.orchestrator.deferred"):
            assert await write.run() is False

        record = caplog.records[-1]
        assert "skill_gained" in record.getMessage()
        assert record.agent_id == "a1"
        assert record.exc_info is not None

    @pytest.mark.asyncio
    async def test_run_deferred_continues_after_failure(self):
        calls = []

        async def ok():
            calls.append("ok")

        writes = [
            DeferredWrite("first", AsyncMock(side_effect=ValueError("bad"))),
            DeferredWrite("second", ok),
            DeferredWrite("third", ok),
        ]

        assert await run_deferred(writes) == 2
        assert calls == ["ok", "ok"]

    @pytest.mark.asyncio
    async def test_run_deferred_empty(self):
        assert await run_deferred([]) == 0
