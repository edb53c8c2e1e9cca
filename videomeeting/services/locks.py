"""Per-room locks serializing session activation and deletion."""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Dict


class RoomLocks:
    """Registry of ``asyncio.Lock`` objects keyed by room id.

    Entries are dropped once nobody holds or waits on them.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}
        self._guard = asyncio.Lock()

    @asynccontextmanager
    async def hold(self, room_id: str) -> AsyncIterator[None]:
        async with self._guard:
            lock = self._locks.setdefault(room_id, asyncio.Lock())
            self._waiters[room_id] = self._waiters.get(room_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            async with self._guard:
                remaining = self._waiters.get(room_id, 1) - 1
                if remaining <= 0:
                    self._waiters.pop(room_id, None)
                    self._locks.pop(room_id, None)
                else:
                    self._waiters[room_id] = remaining

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._locks


room_locks = RoomLocks()
