# summary_desk/core/tasks.py
"""Background tasks with an owner.

Anything started in the background (upload verification, server-side summary
polling) is spawned through an OwnedTasks group so it can be cancelled when its
owner (a session, the application) goes away.
"""
import asyncio
from typing import Coroutine, Optional, Set

from summary_desk.utils.logging import logger


class OwnedTasks:
    """Tracks asyncio tasks so they can be cancelled together."""

    def __init__(self, owner: str):
        self.owner = owner
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        """Schedule coro on the running loop and keep a handle to it."""
        if self._closed:
            coro.close()
            raise RuntimeError(f"Task group '{self.owner}' is closed")
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Background task failed: {task.get_name()}",
                exc_info=exc,
                extra={"owner": self.owner, "task": task.get_name()},
            )

    async def shutdown(self) -> None:
        """Cancel every pending task and wait for them to finish."""
        self._closed = True
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("Cancelled background tasks", extra={"owner": self.owner, "count": len(pending)})
