import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from .config import settings


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


class TTLCache:
    """Simple in-memory TTL cache.

    Entries are fresh while ``now - stored_at < ttl``. Stale entries read as
    absent but stay in place until overwritten; there is no size bound, so key
    cardinality is the caller's concern.
    """

    def __init__(self, ttl: float = 30, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl:
            return None
        return entry.value

    async def set(self, key: str, value: Any) -> None:
        self._cache[key] = CacheEntry(value=value, stored_at=self._clock())

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value or run ``fetch`` once for all concurrent misses.

        Callers missing on the same key while a fetch is running await the same
        task. A failed fetch is not cached; the next call fetches again.
        """
        entry = self._cache.get(key)
        if entry is not None and self._clock() - entry.stored_at < self.ttl:
            return entry.value

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, fetch))
            self._in_flight[key] = task
        return await asyncio.shield(task)

    async def _fetch_and_store(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await fetch()
            await self.set(key, value)
            return value
        finally:
            self._in_flight.pop(key, None)

    async def clear(self) -> None:
        self._cache.clear()

    def size(self) -> int:
        return len(self._cache)

    def in_flight(self) -> int:
        return len(self._in_flight)


def cache_key(operation: str, *args: Any) -> str:
    """Namespace an operation with its arguments: ``top-tokens-10``.

    Arguments are joined with ``-`` without escaping.
    """
    return "-".join([operation, *(str(arg) for arg in args)])


# Global cache instance
cache = TTLCache(ttl=settings.cache_ttl_seconds)
