"""
Worker Pool — counting permit pool bounding concurrent day fetches.

Every per-day pipeline holds a permit while its provider calls are in
flight, so a request spanning many days never exceeds the configured
concurrency. A permit is released exactly once on every exit path.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_WORKER_COUNT = 3


def default_worker_count(env_value: Optional[str] = None, cpu_count: Optional[int] = None) -> int:
    """WORKER_THREADS (default 3) capped at CPU cores - 1, never below 1."""
    raw = env_value if env_value is not None else os.getenv("WORKER_THREADS")
    try:
        requested = int(raw) if raw else DEFAULT_WORKER_COUNT
    except ValueError:
        logger.warning("worker_pool: invalid WORKER_THREADS=%r, using %d", raw, DEFAULT_WORKER_COUNT)
        requested = DEFAULT_WORKER_COUNT
    cores = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
    return max(1, min(requested, cores - 1))


class WorkerPool:
    def __init__(self, size: int = DEFAULT_WORKER_COUNT):
        if size < 1:
            raise ValueError("worker pool size must be at least 1")
        self._size = size
        self._semaphore = asyncio.Semaphore(size)
        self._active = 0
        self._peak_active = 0

    @property
    def size(self) -> int:
        return self._size

    @property
    def active(self) -> int:
        return self._active

    @property
    def peak_active(self) -> int:
        """Highest number of permits held at once since creation."""
        return self._peak_active

    @property
    def available_permits(self) -> int:
        return self._size - self._active

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        await self._semaphore.acquire()
        self._active += 1
        self._peak_active = max(self._peak_active, self._active)
        try:
            yield
        finally:
            self._active -= 1
            self._semaphore.release()

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Await ``fn()`` while holding a permit."""
        async with self.permit():
            return await fn()

    def status(self) -> dict:
        return {
            "size": self._size,
            "active": self._active,
            "available_permits": self.available_permits,
            "peak_active": self._peak_active,
        }
