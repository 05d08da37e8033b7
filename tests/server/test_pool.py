"""Tests for TaskPool."""

from __future__ import annotations

import asyncio
import logging

import pytest

from claude_shell.server.pool import TaskPool


class TestTaskPool:
    def test_rejects_zero(self) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            TaskPool(0)

    async def test_spawn_returns_immediately(self) -> None:
        pool = TaskPool(2)
        gate = asyncio.Event()

        async def work() -> str:
            await gate.wait()
            return "done"

        task = pool.spawn(work(), name="w")
        assert not task.done()
        assert pool.in_flight == 1
        gate.set()
        assert await task == "done"
        await pool.join()
        assert pool.in_flight == 0

    async def test_concurrency_bounded(self) -> None:
        pool = TaskPool(2)
        running = 0
        peak = 0

        async def work() -> None:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        for _ in range(6):
            pool.spawn(work())
        await pool.join()
        assert peak == 2

    async def test_join_waits_for_late_spawns(self) -> None:
        pool = TaskPool()
        order: list[str] = []

        async def child() -> None:
            await asyncio.sleep(0.01)
            order.append("child")

        async def parent() -> None:
            pool.spawn(child())
            order.append("parent")

        pool.spawn(parent())
        await pool.join()
        assert order == ["parent", "child"]

    async def test_failures_are_logged_not_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        pool = TaskPool()

        async def boom() -> None:
            raise RuntimeError("kaput")

        with caplog.at_level(logging.ERROR, logger="claude_shell.server.pool"):
            pool.spawn(boom(), name="boom-task")
            await pool.join()
        assert "Task boom-task failed" in caplog.text

    async def test_shutdown_cancels(self) -> None:
        pool = TaskPool(1)
        started = asyncio.Event()

        async def forever() -> None:
            started.set()
            await asyncio.sleep(3600)

        first = pool.spawn(forever())
        queued = pool.spawn(forever())
        await started.wait()

        await pool.shutdown()
        assert first.cancelled()
        assert queued.cancelled()
        assert pool.in_flight == 0
