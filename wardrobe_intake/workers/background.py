"""Detached fire-and-forget tasks with their own error sink."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable

from wardrobe_intake.db.models import utcnow
from wardrobe_intake.metrics.prometheus_exporter import background_task_failures_total

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class BackgroundFailure:
    name: str
    error: str
    occurred_at: datetime


class BackgroundTaskRunner:
    """Runs coroutines detached from the request that started them.

    Failures never reach the caller: they are logged, counted and kept in a
    bounded in-memory log for inspection.
    """

    def __init__(self, max_failures: int = 100) -> None:
        self._tasks: set[asyncio.Task] = set()
        self.failures: deque[BackgroundFailure] = deque(maxlen=max_failures)

    def spawn(self, coro: Awaitable[object], name: str) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        # Event loop only keeps weak references to tasks.
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        background_task_failures_total.inc()
        self.failures.append(
            BackgroundFailure(name=task.get_name(), error=repr(exc), occurred_at=utcnow())
        )
        logger.error("Background task %s failed", task.get_name(), exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight task; used on shutdown and in tests."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
