"""Pending candidate queue with outstanding-work tracking.

Fresh candidates from the generator and candidates coming back from failed
or rate-limited probes share one FIFO. Retries go to the tail, so they
interleave with new work instead of hammering the same name.

Termination is NOT "queue looks empty". A probe that is still running can
put its candidate back at any moment, so the queue also counts outstanding
entries: +1 for every put, -1 when an entry is resolved via task_done().
A retry puts the fresh entry before resolving the old one, so the count
can only hit zero when nothing is queued, running, or waiting to re-enter.
"""

import asyncio
from typing import List

from slurp.util.types import Candidate


class PendingQueue:
    """Unbounded asyncio queue of Candidates; put() never blocks or refuses."""

    def __init__(self):
        self._queue: "asyncio.Queue[Candidate]" = asyncio.Queue()
        self.total_put = 0
        self._outstanding = 0

    def put(self, candidate: Candidate):
        """Add one candidate without blocking."""
        self._queue.put_nowait(candidate)
        self.total_put += 1
        self._outstanding += 1

    async def get(self, count: int = 1) -> List[Candidate]:
        """Wait for at least one candidate, then take up to count without waiting."""
        items = [await self._queue.get()]
        while len(items) < count and not self._queue.empty():
            items.append(self._queue.get_nowait())
        return items

    def task_done(self):
        """Mark one previously popped entry as resolved."""
        self._queue.task_done()
        self._outstanding -= 1

    async def join(self):
        """Wait until every entry ever put has been resolved."""
        await self._queue.join()

    @property
    def outstanding(self) -> int:
        """Entries queued or popped but not yet resolved."""
        return self._outstanding

    def __len__(self) -> int:
        return self._queue.qsize()
