"""Supervised background tasks for post-check-in side effects."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class JobFailure:
    name: str
    error: BaseException


class BackgroundJobs:
    """Runs coroutines off the request path.

    Tasks are referenced until done so they are not garbage collected;
    failures are logged and kept in ``failures`` instead of being lost.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()
        self.failures: list[JobFailure] = []

    def spawn(self, name: str, coro: Awaitable[object]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background job %s failed", task.get_name(), exc_info=exc)
            self.failures.append(JobFailure(name=task.get_name(), error=exc))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every job spawned so far (and any they spawn)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)


_default_jobs: BackgroundJobs | None = None


def get_background_jobs() -> BackgroundJobs:
    """Process-wide runner used by the API."""
    global _default_jobs  # noqa: PLW0603
    if _default_jobs is None:
        _default_jobs = BackgroundJobs()
    return _default_jobs
