"""
Forecast Cache — TTL + capacity bounded, single-flight population.

- Reads never take a lock and never delete; an expired entry is simply a miss
- Writes (insert, cleanup, clear) are serialized by one asyncio.Lock
- At capacity, inserting a new key first evicts the oldest inserted entry
- get_or_fetch() holds a per-key lock while the producer runs, so concurrent
  misses on one key produce once while distinct keys proceed in parallel
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 3600
DEFAULT_CAPACITY = 100


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    stored_at: float

    def is_live(self, now: float, ttl_seconds: float) -> bool:
        return now - self.stored_at < ttl_seconds


class ForecastCache(Generic[T]):
    """In-memory cache keyed by string. Values must not be None."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], float] = time.time,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.capacity = capacity
        self._clock = clock
        # dict keeps insertion order, which doubles as eviction order
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._write_lock = asyncio.Lock()
        self._key_locks: Dict[str, asyncio.Lock] = {}
        self._key_users: Dict[str, int] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def _lookup(self, key: str, accept: Optional[Callable[[T], bool]] = None) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None or not entry.is_live(self._clock(), self.ttl_seconds):
            return None
        if accept is not None and not accept(entry.value):
            logger.debug("cache: rejected live entry for %s", key)
            return None
        return entry.value

    async def get(self, key: str) -> Optional[T]:
        """Live value for ``key`` or None (never written, or expired)."""
        value = self._lookup(key)
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        return value

    async def insert(self, key: str, value: T) -> None:
        """Store ``value``; a rewrite of an existing key moves it to the newest slot."""
        if value is None:
            raise ValueError("cannot cache None")
        async with self._write_lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.capacity:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self._evictions += 1
                logger.debug("cache: evicted %s (capacity %d)", oldest, self.capacity)
            self._entries[key] = CacheEntry(value, self._clock())

    async def get_or_fetch(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        accept: Optional[Callable[[T], bool]] = None,
    ) -> T:
        """Return the cached value or run ``producer`` once to fill it.

        Callers that arrive while a producer is running for the same key wait
        for it and then read its result. If the producer raises, nothing is
        cached, the error propagates, and the next caller tries again.

        ``accept`` can veto a live entry; a vetoed entry counts as a miss and
        is overwritten by the producer's result.
        """
        value = self._lookup(key, accept)
        if value is not None:
            self._hits += 1
            return value

        lock = self._checkout_lock(key)
        try:
            async with lock:
                value = self._lookup(key, accept)
                if value is not None:
                    self._hits += 1
                    return value
                self._misses += 1
                logger.debug("cache: miss for %s, producing", key)
                value = await producer()
                await self.insert(key, value)
                return value
        finally:
            self._return_lock(key)

    # Lock bookkeeping below never awaits, so it cannot interleave with
    # another task and stays consistent even when a caller is cancelled.
    def _checkout_lock(self, key: str) -> asyncio.Lock:
        lock = self._key_locks.get(key)
        if lock is None:
            lock = self._key_locks[key] = asyncio.Lock()
        self._key_users[key] = self._key_users.get(key, 0) + 1
        return lock

    def _return_lock(self, key: str) -> None:
        remaining = self._key_users[key] - 1
        if remaining:
            self._key_users[key] = remaining
        else:
            del self._key_users[key]
            del self._key_locks[key]

    async def cleanup(self) -> int:
        """Drop expired entries; returns how many were removed."""
        async with self._write_lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if not e.is_live(now, self.ttl_seconds)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("cache: cleanup removed %d expired entries", len(expired))
        return len(expired)

    async def clear(self) -> None:
        async with self._write_lock:
            self._entries.clear()

    def stats(self) -> dict:
        now = self._clock()
        valid = sum(1 for e in self._entries.values() if e.is_live(now, self.ttl_seconds))
        return {
            "total_entries": len(self._entries),
            "valid_entries": valid,
            "expired_entries": len(self._entries) - valid,
            "ttl_seconds": self.ttl_seconds,
            "capacity": self.capacity,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "inflight_keys": len(self._key_locks),
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self._lookup(key) is not None
