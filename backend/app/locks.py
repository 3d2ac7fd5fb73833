from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any

from .exceptions import ConcurrencyConflict


class KeyedLock:
    """Per-key asyncio locks acquired together under a deadline.

    Keys are always taken in sorted order so two holders with overlapping
    key sets cannot deadlock. Locks for idle keys are discarded so the
    registry does not grow with the number of players ever touched.
    """

    def __init__(self) -> None:
        self._locks: dict[Any, asyncio.Lock] = {}
        self._users: dict[Any, int] = {}

    def _checkout(self, key: Any) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: Any) -> None:
        remaining = self._users.get(key, 0) - 1
        if remaining <= 0:
            self._users.pop(key, None)
            self._locks.pop(key, None)
        else:
            self._users[key] = remaining

    def locked(self, key: Any) -> bool:
        lock = self._locks.get(key)
        return bool(lock and lock.locked())

    @asynccontextmanager
    async def hold(self, keys: Iterable[Any], timeout: float) -> AsyncIterator[None]:
        ordered = sorted({k for k in keys if k})
        locks = [self._checkout(k) for k in ordered]
        acquired: list[asyncio.Lock] = []
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        try:
            for key, lock in zip(ordered, locks):
                remaining = deadline - loop.time()
                try:
                    if remaining <= 0:
                        raise asyncio.TimeoutError
                    await asyncio.wait_for(lock.acquire(), remaining)
                except asyncio.TimeoutError:
                    raise ConcurrencyConflict(
                        f"timed out after {timeout:.1f}s waiting for player '{key}'"
                    ) from None
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in ordered:
                self._checkin(key)


player_locks = KeyedLock()
