"""POS revenue aggregation over arbitrary date ranges.

The koncern revenue endpoint only answers windows of up to two days, so longer
ranges are split into consecutive chunks and fetched with bounded concurrency.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Protocol

from dashboard.providers.onlinepos import RevenueFetch
from dashboard.services.cache import ResultCache
from dashboard.services.date_ranges import DateRange, day_bounds_unix, range_bounds_unix

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 2
DEFAULT_MAX_CONCURRENCY = 3
SECONDS_PER_DAY = 86_400


class RevenueClient(Protocol):
    def is_configured(self) -> bool:
        ...

    async def fetch_revenue(self, from_unix: int, to_unix: int) -> RevenueFetch:
        ...


@dataclass(frozen=True)
class RevenueRangeResult:
    total: float
    chunks: int

    def __add__(self, other: "RevenueRangeResult") -> "RevenueRangeResult":
        return RevenueRangeResult(total=self.total + other.total, chunks=self.chunks + other.chunks)


EMPTY_RESULT = RevenueRangeResult(total=0.0, chunks=0)


def plan_chunks(start: date, end: date, window_days: int = DEFAULT_WINDOW_DAYS) -> list[DateRange]:
    """Split ``[start, end]`` into non-overlapping windows of at most ``window_days``."""

    if window_days < 1:
        raise ValueError("window_days must be at least 1")
    chunks: list[DateRange] = []
    span = timedelta(days=window_days - 1)
    cursor = start
    while cursor <= end:
        chunk_end = min(cursor + span, end)
        chunks.append(DateRange(cursor, chunk_end))
        cursor = chunk_end + timedelta(days=1)
    return chunks


def plan_windows(
    start: date,
    end: date,
    timezone: str,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> list[tuple[int, int]]:
    """Unix ``(from, to)`` request windows covering ``[start, end]``.

    A chunk containing a 25-hour DST day exceeds the vendor limit in seconds,
    so it is requested one day at a time instead.
    """

    limit = window_days * SECONDS_PER_DAY
    windows: list[tuple[int, int]] = []
    for chunk in plan_chunks(start, end, window_days):
        from_unix, to_unix = range_bounds_unix(chunk.start, chunk.end, timezone)
        if to_unix - from_unix <= limit:
            windows.append((from_unix, to_unix))
            continue
        windows.extend(
            day_bounds_unix(chunk.start + timedelta(days=offset), timezone) for offset in range(chunk.days)
        )
    return windows


class RevenueAggregator:
    """Sum vendor revenue across a date range, one vendor call per window."""

    def __init__(
        self,
        client: RevenueClient,
        *,
        timezone: str,
        window_days: int = DEFAULT_WINDOW_DAYS,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self._client = client
        self._timezone = timezone
        self._window_days = window_days
        self._max_concurrency = max_concurrency

    @property
    def client(self) -> RevenueClient:
        return self._client

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    async def aggregate(
        self, start: date, end: date, *, limiter: asyncio.Semaphore | None = None
    ) -> RevenueRangeResult:
        """Fetch every window of ``[start, end]`` and sum the totals.

        Without ``limiter`` the call gets its own semaphore. Callers running
        several aggregations at once pass one shared limiter so the vendor
        never sees more than ``max_concurrency`` requests.
        """

        windows = plan_windows(start, end, self._timezone, self._window_days)
        if not windows:
            return EMPTY_RESULT

        semaphore = limiter or asyncio.Semaphore(self._max_concurrency)

        async def _fetch(window: tuple[int, int]) -> float:
            async with semaphore:
                result = await self._client.fetch_revenue(*window)
            return result.total

        totals = await asyncio.gather(*(_fetch(window) for window in windows))
        logger.debug("Aggregated POS revenue %s..%s over %d calls", start, end, len(windows))
        return RevenueRangeResult(total=sum(totals), chunks=len(windows))


class CachedRevenueSource:
    """Range sums served through the longer-lived POS cache tier."""

    def __init__(self, aggregator: RevenueAggregator, cache: ResultCache, *, ttl_seconds: float) -> None:
        self._aggregator = aggregator
        self._cache = cache
        self._ttl = ttl_seconds

    def is_configured(self) -> bool:
        return self._aggregator.client.is_configured()

    @property
    def max_concurrency(self) -> int:
        return self._aggregator.max_concurrency

    @staticmethod
    def cache_key(start: date, end: date) -> str:
        return f"pos:{start.isoformat()}:{end.isoformat()}"

    async def range_total(
        self, start: date, end: date, *, limiter: asyncio.Semaphore | None = None
    ) -> RevenueRangeResult:
        if start > end:
            return EMPTY_RESULT
        # POS sums never serve stale, so expired ones can be pruned
        return await self._cache.get_or_compute(
            self.cache_key(start, end),
            self._ttl,
            lambda: self._aggregator.aggregate(start, end, limiter=limiter),
            keep_stale=False,
        )

    async def day_total(self, day: date) -> float:
        return (await self.range_total(day, day)).total


__all__ = [
    "CachedRevenueSource",
    "DEFAULT_MAX_CONCURRENCY",
    "DEFAULT_WINDOW_DAYS",
    "EMPTY_RESULT",
    "RevenueAggregator",
    "RevenueClient",
    "RevenueRangeResult",
    "plan_chunks",
    "plan_windows",
]
