"""
Expiring read-through cache.

Process-wide, read-mostly state. Entries are only ever populated on a miss
or dropped by invalidation; values are frozen dataclasses so readers get
snapshots that nobody can mutate underneath them.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

from loguru import logger

from app.config.constants import ACCOUNT_CACHE_TTL_SECONDS

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class ExpiringCache(Generic[K, V]):
    """
    TTL cache guarded by an asyncio.Lock.

    The loader runs outside the lock, so a slow chain read for one key
    does not block readers of other keys.
    """

    def __init__(
        self,
        ttl: float = ACCOUNT_CACHE_TTL_SECONDS,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize cache.

        Args:
            ttl: Entry lifetime in seconds
            name: Name used in log lines
            clock: Monotonic time source
        """
        self.ttl = ttl
        self.name = name
        self._clock = clock
        self._entries: dict[K, tuple[float, V]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: K) -> V | None:
        """Cached value, or None when missing or expired."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    async def set(self, key: K, value: V) -> None:
        async with self._lock:
            self._entries[key] = (self._clock() + self.ttl, value)

    async def get_or_load(self, key: K, loader: Callable[[], Awaitable[V]]) -> V:
        """
        Read-through lookup.

        Args:
            key: Cache key
            loader: Coroutine factory called on a miss

        Returns:
            Cached or freshly loaded value (loader errors propagate, nothing cached)
        """
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await loader()
        await self.set(key, value)
        return value

    async def invalidate(self, key: K) -> bool:
        """Drop one entry. Returns True if it existed."""
        async with self._lock:
            existed = self._entries.pop(key, None) is not None
        if existed:
            logger.debug(f"{self.name}: invalidated {key}")
        return existed

    async def invalidate_where(self, predicate: Callable[[K], bool]) -> int:
        """Drop every entry whose key matches predicate."""
        async with self._lock:
            keys = [k for k in self._entries if predicate(k)]
            for k in keys:
                del self._entries[k]
        if keys:
            logger.debug(f"{self.name}: invalidated {len(keys)} entries")
        return len(keys)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
