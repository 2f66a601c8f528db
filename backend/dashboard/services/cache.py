"""Process-local TTL cache with in-flight request coalescing."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
Clock = Callable[[], float]

DEFAULT_MAX_ENTRIES = 2048


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    stored_at: float
    expires_at: float
    keep_stale: bool = True

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at

    def age(self, now: float) -> float:
        return max(now - self.stored_at, 0.0)


class ResultCache:
    """Memoize async computations per key for a TTL.

    Concurrent misses on the same key share a single computation. Expired
    entries stored with ``keep_stale`` are kept so callers can fall back to the
    last good value when recomputation fails; other expired entries are pruned
    on the next store. The map never holds more than ``max_entries`` entries,
    oldest first out.
    """

    def __init__(self, clock: Clock = time.monotonic, *, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._clock = clock
        self._max_entries = max_entries
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def now(self) -> float:
        return self._clock()

    def get_entry(self, key: str) -> CacheEntry[Any] | None:
        entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self._clock()):
            return None
        return entry

    def get_stale(self, key: str) -> CacheEntry[Any] | None:
        return self._entries.get(key)

    def is_inflight(self, key: str) -> bool:
        return key in self._inflight

    def invalidate(self, prefix: str = "") -> int:
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def prune(self) -> int:
        """Drop expired entries not kept for stale reads, then enforce the size cap."""

        now = self._clock()
        doomed = [key for key, entry in self._entries.items() if not entry.keep_stale and not entry.is_fresh(now)]
        overflow = len(self._entries) - len(doomed) - self._max_entries
        if overflow > 0:
            expired = set(doomed)
            survivors = sorted(
                (key for key in self._entries if key not in expired),
                key=lambda key: self._entries[key].stored_at,
            )
            doomed.extend(survivors[:overflow])
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug("Pruned %d cache entries", len(doomed))
        return len(doomed)

    async def get_or_compute(
        self,
        key: str,
        ttl: float,
        compute: Callable[[], Awaitable[T]],
        *,
        keep_stale: bool = True,
    ) -> T:
        entry = self.get_entry(key)
        if entry is not None:
            return entry.value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, ttl, compute, keep_stale))
            self._inflight[key] = task
        else:
            logger.debug("Joining in-flight computation for %s", key)
        # Shielded so one caller going away does not cancel the shared work
        return await asyncio.shield(task)

    async def _run(self, key: str, ttl: float, compute: Callable[[], Awaitable[T]], keep_stale: bool) -> T:
        try:
            value = await compute()
            now = self._clock()
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(value=value, stored_at=now, expires_at=now + ttl, keep_stale=keep_stale)
            self.prune()
            return value
        finally:
            self._inflight.pop(key, None)


__all__ = ["CacheEntry", "Clock", "DEFAULT_MAX_ENTRIES", "ResultCache"]
