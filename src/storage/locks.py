"""Keyed asyncio locks for serializing work on one document or media slot."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLock:
    """
    A lazily-populated map of asyncio locks, one per key.

    Holders of the same key run one at a time; different keys never
    contend. Entries are dropped once nobody holds or waits on them, so
    the map stays proportional to in-flight work rather than to every
    key ever seen.

    Usage:
        locks = KeyedLock()
        async with locks.hold(document_id):
            ...
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                self._locks.pop(key, None)

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
