"""Async TTL cache with single-flight refresh."""

import asyncio
import time
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")


class TTLCache(Generic[T]):
    """
    Caches one value produced by an async fetcher for ``ttl`` seconds.

    Concurrent callers on a miss share a single fetch. A failed fetch is not
    cached; the next caller retries.
    """

    def __init__(self, fetcher: Callable[[], Awaitable[T]], ttl: float, timer: Callable[[], float] = time.monotonic):
        self.fetcher = fetcher
        self.ttl = ttl
        self._timer = timer
        self._lock = asyncio.Lock()
        self._value: T | None = None
        self._fetched_at: float | None = None

    def _is_valid(self) -> bool:
        return self._fetched_at is not None and self._timer() - self._fetched_at < self.ttl

    async def get(self) -> T:
        if self._is_valid():
            return self._value
        async with self._lock:
            if self._is_valid():
                return self._value
            value = await self.fetcher()
            self._value = value
            self._fetched_at = self._timer()
            return value

    def invalidate(self) -> None:
        self._fetched_at = None
