# -*- coding: utf-8 -*-
"""
Batch Scheduler
---------------
Runs one async worker per item in fixed-size waves. Within a wave every
item runs concurrently and settles on its own; a failing item never
cancels its siblings. Waves are strictly sequential with a fixed delay
between them, which bounds the combined request rate against all
providers.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from utils.helpers import print_info, print_warning

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class SchedulerMetrics:
    """Counters for the last ``run``."""

    total_items: int = 0
    waves: int = 0
    failures: int = 0
    peak_in_flight: int = 0
    total_time: float = 0.0


class BatchScheduler:
    """Throttled wave executor with settle-all semantics."""

    def __init__(
        self,
        batch_size: int = 50,
        batch_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._sleep = sleep
        self._in_flight = 0
        self.metrics = SchedulerMetrics()

    def waves_for(self, count: int) -> int:
        return -(-count // self.batch_size)

    async def _tracked(self, worker: Callable[[T], Awaitable[R]], item: T) -> R:
        self._in_flight += 1
        self.metrics.peak_in_flight = max(self.metrics.peak_in_flight, self._in_flight)
        try:
            return await worker(item)
        finally:
            self._in_flight -= 1

    async def run(
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
        on_error: Optional[Callable[[T, BaseException], R]] = None,
    ) -> List[R]:
        """Returns one result per item.

        Exceptions escaping ``worker`` are handed to ``on_error``, whose return
        value stands in for that item; without ``on_error`` the item is dropped.
        """
        items = list(items)
        self.metrics = SchedulerMetrics(total_items=len(items))
        started = time.monotonic()
        results: List[R] = []
        total_waves = self.waves_for(len(items))

        for wave, start in enumerate(range(0, len(items), self.batch_size)):
            if wave:
                await self._sleep(self.batch_delay)
            batch = items[start : start + self.batch_size]
            if total_waves > 1:
                print_info(f"Processing batch {wave + 1}/{total_waves} ({len(batch)} items)")
            outcomes = await asyncio.gather(
                *[self._tracked(worker, item) for item in batch], return_exceptions=True
            )
            self.metrics.waves += 1
            for item, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    self.metrics.failures += 1
                    if isinstance(outcome, asyncio.CancelledError):
                        raise outcome
                    print_warning(f"Batch item failed: {outcome}")
                    if on_error is not None:
                        results.append(on_error(item, outcome))
                    continue
                results.append(outcome)

        self.metrics.total_time = time.monotonic() - started
        return results
