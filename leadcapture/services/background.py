from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Set

from leadcapture.core.logging import get_structlog_logger

logger = get_structlog_logger(__name__)


class BackgroundTaskRegistry:
    """Keeps a reference to every fire-and-forget task until it finishes.

    Results are discarded and failures are logged. ``drain`` is called on shutdown
    so pending work runs to completion instead of being dropped with the loop.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("background_task.cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "background_task.failed",
                task=task.get_name(),
                error_type=type(exc).__name__,
                error=str(exc),
            )

    async def drain(self, timeout: float) -> None:
        if not self._tasks:
            return
        pending = set(self._tasks)
        logger.info("background_tasks.draining", pending=len(pending), timeout_seconds=timeout)
        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
            logger.warning("background_tasks.abandoned", count=len(still_pending))
