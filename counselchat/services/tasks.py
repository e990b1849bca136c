"""
Tracked fire-and-forget tasks

Keeps strong references to background coroutines so they are not garbage
collected mid-flight, logs their failures, and lets shutdown wait for them.
"""

import asyncio
import logging
from typing import Coroutine, Set

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Set of in-flight background tasks"""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine, name: str = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background task {task.get_name()} failed: {error}", exc_info=error)

    async def drain(self) -> None:
        """Wait until every pending task (including ones spawned meanwhile) finished"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def __len__(self) -> int:
        return len(self._tasks)
