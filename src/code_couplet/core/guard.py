from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Hashable
from contextlib import asynccontextmanager
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IOGuard:
    """Serializes work per key: callers holding the same key run one at a time, first come first served.

    Keys are independent of each other. Re-entering a key from inside its own
    critical section deadlocks; callers must not nest.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._holders: dict[Hashable, int] = {}

    def is_busy(self, key: Hashable) -> bool:
        return key in self._locks

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        else:
            logger.debug("Blocking IO for %s", key)
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]
                logger.debug("Cleared IO block for %s", key)

    async def run(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        async with self.hold(key):
            return await fn()
