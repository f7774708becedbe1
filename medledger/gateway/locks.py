"""
Write serialization for the mutation gateway.

``global`` mode runs one write at a time. ``record`` mode lets writes to
different records proceed concurrently, while operations without a record
key (creation, registration, pause toggles) run exclusively: they block new
record writes and wait for running ones to drain.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional


class WriteLocks:
    def __init__(self, mode: str = "global") -> None:
        if mode not in {"global", "record"}:
            raise ValueError(f"Unknown write lock mode: {mode}")
        self.mode = mode
        self._exclusive = asyncio.Lock()
        self._records: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}
        self._active = 0
        self._idle = asyncio.Condition()

    @asynccontextmanager
    async def hold(self, record_id: Optional[str] = None) -> AsyncIterator[None]:
        if self.mode == "global" or record_id is None:
            async with self._exclusive:
                async with self._idle:
                    await self._idle.wait_for(lambda: self._active == 0)
                yield
            return

        async with self._exclusive:
            self._active += 1
        lock = self._records.setdefault(record_id, asyncio.Lock())
        self._waiters[record_id] = self._waiters.get(record_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[record_id] -= 1
            if self._waiters[record_id] == 0:
                del self._waiters[record_id]
                del self._records[record_id]
            async with self._idle:
                self._active -= 1
                self._idle.notify_all()
