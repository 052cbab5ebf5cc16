"""Per-tenant serialization of lifecycle operations.

Two operations on the same tenant (for example a rename racing a move)
must not interleave. Callers choose the keys: a hierarchical subtree shares
the key of its top-level tenant and a store connection has a key of its own.
Operations on unrelated keys run concurrently; there is no global lock.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import AsyncExitStack, asynccontextmanager


class TenantLockRegistry:
    """Hands out one ``asyncio.Lock`` per key.

    Locks are reference counted and dropped once nobody holds or waits for
    them, so the registry does not grow with the number of tenants.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    @asynccontextmanager
    async def hold_all(self, keys: Iterable[str]) -> AsyncIterator[None]:
        """Hold the locks for several keys at once.

        Keys are taken in sorted order, so two callers asking for overlapping
        sets cannot deadlock.
        """
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self.hold(key))
            yield

    def is_locked(self, key: str) -> bool:
        """True while some operation holds the lock for ``key``."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
