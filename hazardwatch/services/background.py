"""Tracking for fire-and-forget tasks.

Channel sends and persistence writes run as background tasks so they
never hold up the handler that triggered them. The group keeps a strong
reference to each task until it finishes and lets shutdown (and tests)
wait for whatever is still in flight.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from hazardwatch.logging_config import get_logger

logger = get_logger(__name__)


class BackgroundTaskGroup:
    """Set of in-flight background tasks."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        """Schedule ``coro`` on the running loop without awaiting it.

        The coroutine must handle its own errors; anything that escapes
        is logged when the task completes.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task failed",
                task=task.get_name(),
                error=repr(exc),
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every task spawned so far, and any they spawn, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

