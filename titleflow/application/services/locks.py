"""Per-assignment exclusive locks for the asyncio host."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class AssignmentLocks:
    """One asyncio.Lock per assignment id, dropped once nobody holds or waits on it.

    Different assignment ids never contend. Must be shared by every use case
    instance that mutates assignments (one registry per process).
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, assignment_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(assignment_id, asyncio.Lock())
        self._users[assignment_id] = self._users.get(assignment_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[assignment_id] -= 1
            if self._users[assignment_id] == 0:
                del self._users[assignment_id]
                del self._locks[assignment_id]

    def is_locked(self, assignment_id: str) -> bool:
        lock = self._locks.get(assignment_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
