"""Per-key mutual exclusion for entity mutations."""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

LockKey = tuple[str, str]

# Sentinel guarding the "at most one default pipeline" invariant.
DEFAULT_PIPELINE_KEY: LockKey = ("pipeline", "is_default")


def entity_key(kind: str, entity_id: uuid.UUID | str) -> LockKey:
    return (kind, str(entity_id))


def unique_key(kind: str, field: str, value: object) -> LockKey:
    return (kind, f"{field}={value}")


class KeyedLocks:
    """Registry of asyncio locks, one per key, dropped when no longer in use.

    ``hold`` acquires a whole key set in sorted order so two callers holding
    overlapping sets can never deadlock.
    """

    def __init__(self) -> None:
        self._locks: dict[LockKey, asyncio.Lock] = {}
        self._users: dict[LockKey, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def locked(self, key: LockKey) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def _checkout(self, key: LockKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: LockKey) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    @asynccontextmanager
    async def hold(self, keys: Iterable[LockKey]) -> AsyncIterator[None]:
        acquired: list[LockKey] = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                try:
                    await lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
                self._checkin(key)
