"""TaskPool — one asyncio task per tool call, bounded by a semaphore.

``spawn()`` returns immediately so the read loop never waits on a call.
The semaphore limits how many calls run their external process at once;
calls over the limit wait inside their own task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class TaskPool:
    """Tracks in-flight tool-call tasks."""

    def __init__(self, max_concurrency: int = 8) -> None:
        if max_concurrency < 1:
            msg = "max_concurrency must be at least 1"
            raise ValueError(msg)
        self._max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
        """Schedule *coro* and return its task without waiting."""
        task = asyncio.create_task(self._bounded(coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug("Spawned %s (%d in flight)", task.get_name(), len(self._tasks))
        return task

    async def join(self) -> None:
        """Wait until every spawned task, including ones spawned meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel every in-flight task and wait for the cancellations."""
        tasks = list(self._tasks)
        if not tasks:
            return
        logger.info("Cancelling %d in-flight call(s)", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _bounded(self, coro: Coroutine[Any, Any, Any]) -> Any:
        try:
            async with self._semaphore:
                return await coro
        finally:
            # Cancelled before acquiring the semaphore: never started.
            coro.close()

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Task %s failed", task.get_name(), exc_info=exc)
