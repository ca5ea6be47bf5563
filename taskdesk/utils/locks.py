"""Per-key asyncio locks."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class KeyedLock:
    """
    One asyncio.Lock per key, created on demand and dropped once no
    coroutine holds or waits for it.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


# Single-writer sections for project-scoped writes (cascade delete, task create)
_project_locks = KeyedLock()


def get_project_locks() -> KeyedLock:
    """Get the process-wide project lock table."""
    return _project_locks
