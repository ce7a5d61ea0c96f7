"""Registry for fire-and-forget onboarding tasks.

Holding a reference keeps running tasks from being garbage collected. Tasks
are never cancelled during normal operation; they end on their own attempt
budget. ``abandon()`` is called on process shutdown.
"""

from __future__ import annotations

import asyncio
from typing import Coroutine, Any

from ..observability.logging import get_logger

logger = get_logger(__name__)


class BackgroundTaskRegistry:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "background_task_failed",
                task=task.get_name(),
                error=str(exc),
                exc_info=exc,
            )

    async def drain(self) -> None:
        """Wait for every registered task to finish (used by tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def abandon(self) -> int:
        """Cancel whatever is still running; returns how many were pending."""
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.info("background_tasks_abandoned", count=len(pending))
        return len(pending)
