"""
In-process mutexes keyed by resource id

Serializes read-check-write sequences on one event (or one venue) across
concurrent request handlers in the same process. The database row lock taken
inside each transaction covers PostgreSQL; this covers SQLite, which has no
SELECT ... FOR UPDATE.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable

logger = logging.getLogger(__name__)


class KeyedLock:
    def __init__(self, name: str):
        self.name = name
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._holders: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def lock(self, key: Hashable) -> AsyncIterator[None]:
        """
        Usage:
            async with event_locks.lock(event_id):
                ...  # only one coroutine per event_id runs here
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            # Drop the entry once nobody holds or waits on it
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def active_keys(self) -> int:
        return len(self._locks)


event_locks = KeyedLock("event")
venue_locks = KeyedLock("venue")
