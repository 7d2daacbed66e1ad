"""
Detached background tasks.

Fire-and-forget work (CRM dispatch) is submitted here instead of being left
unawaited. Submission never blocks the caller and exceptions never propagate
to it; they are logged when the task finishes.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional, Set

logger = logging.getLogger(__name__)


class DetachedTaskQueue:
    """Tracks detached asyncio tasks so they can be drained on shutdown or in tests."""

    def __init__(self, name: str = "detached"):
        self.name = name
        self._tasks: Set[asyncio.Task] = set()
        self.submitted = 0
        self.failed = 0

    def submit(self, coro: Coroutine[Any, Any, Any], label: Optional[str] = None) -> asyncio.Task:
        """
        Schedule a coroutine on the running loop and return immediately.

        Must be called from within a running event loop.
        """
        task = asyncio.get_running_loop().create_task(coro, name=label)
        self._tasks.add(task)
        self.submitted += 1
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"[{self.name}] task {task.get_name()} cancelled")
            return
        error = task.exception()
        if error is not None:
            self.failed += 1
            logger.error(f"[{self.name}] task {task.get_name()} failed: {error!r}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding task; failures are already logged."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
