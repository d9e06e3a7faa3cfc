"""Concurrency primitives for controlled parallel probing.

We want speed but not chaos - a counting permit pool keeps the number of
in-flight probes at or below the configured concurrency.
"""

import asyncio
import os
from typing import Optional


def resolve_concurrency(value: Optional[int]) -> int:
    """Unset or non-positive concurrency means one slot per CPU."""
    if value is None or value <= 0:
        return os.cpu_count() or 1
    return value


class ConcurrencyLimiter:
    """Semaphore-backed permit pool with in-flight accounting.

    The dispatcher acquires a permit before popping work; the probe task it
    spawns releases the permit when it is done, whatever the outcome.
    """

    def __init__(self, max_workers: Optional[int] = None):
        """Initialize with max concurrent probes (<= 0 means CPU count)."""
        self.max_workers = resolve_concurrency(max_workers)
        self.semaphore = asyncio.Semaphore(self.max_workers)
        self.in_flight = 0
        self.peak_in_flight = 0

    async def acquire(self):
        """Wait for a free permit."""
        await self.semaphore.acquire()
        self.in_flight += 1
        if self.in_flight > self.peak_in_flight:
            self.peak_in_flight = self.in_flight

    def release(self):
        """Return a permit to the pool."""
        self.in_flight -= 1
        self.semaphore.release()

