# -*- coding: utf-8 -*-
"""
Detached background work (cache writes, registry write-backs).

Work is spawned and logged, never awaited on the response path. Failures
land in ``errors`` instead of propagating.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Set, Union

from utils.helpers import print_warning


@dataclass
class BackgroundFailure:
    description: str
    error: BaseException


class BackgroundTasks:
    """Spawn-and-log task group bound to the running event loop."""

    def __init__(self):
        self._pending: Set[asyncio.Task] = set()
        self.errors: List[BackgroundFailure] = []
        self.completed = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def spawn(self, work: Union[Awaitable[Any], Callable[[], Any]], description: str) -> asyncio.Task:
        """Schedule ``work``; plain callables run in a worker thread."""
        if inspect.isawaitable(work):
            coro = work
        else:
            coro = asyncio.to_thread(work)
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(lambda t: self._finish(t, description))
        return task

    def _finish(self, task: asyncio.Task, description: str):
        self._pending.discard(task)
        if task.cancelled():
            print_warning(f"Background task cancelled: {description}")
            return
        error = task.exception()
        if error is not None:
            self.errors.append(BackgroundFailure(description, error))
            print_warning(f"Background task failed ({description}): {error}")
            return
        self.completed += 1

    async def drain(self, timeout: float = 10.0):
        """Wait for outstanding work, e.g. before the loop shuts down."""
        if not self._pending:
            return
        await asyncio.wait(set(self._pending), timeout=timeout)
