"""Range aggregation tests."""

from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest

from conftest import TIMEZONE, StubPosClient
from dashboard.core.errors import UpstreamError
from dashboard.services.cache import ResultCache
from dashboard.services.date_ranges import day_bounds_unix
from dashboard.services.revenue import CachedRevenueSource, RevenueAggregator, plan_chunks, plan_windows


def _daily_revenue(days: dict[date, float]):
    """Answer a Unix range with the sum of the local days it covers."""

    def revenue_for(from_unix: int, to_unix: int) -> float:
        total = 0.0
        for day, value in days.items():
            start, end = day_bounds_unix(day, TIMEZONE)
            if from_unix <= start and end <= to_unix:
                total += value
        return total

    return revenue_for


def test_plan_chunks_covers_range_without_gaps():
    start, end = date(2025, 1, 1), date(2025, 1, 31)
    chunks = plan_chunks(start, end, 2)

    assert len(chunks) == 16
    assert chunks[0].start == start
    assert chunks[-1].end == end
    assert all(chunk.days <= 2 for chunk in chunks)
    for previous, current in zip(chunks, chunks[1:]):
        assert current.start == previous.end + timedelta(days=1)


def test_plan_chunks_edge_cases():
    day = date(2025, 6, 16)
    assert len(plan_chunks(day, day)) == 1
    assert plan_chunks(day, day - timedelta(days=1)) == []
    assert len(plan_chunks(day, day + timedelta(days=6), 3)) == 3
    with pytest.raises(ValueError):
        plan_chunks(day, day, 0)


def test_plan_windows_split_the_dst_fall_back_weekend():
    saturday, sunday = date(2025, 10, 25), date(2025, 10, 26)
    windows = plan_windows(saturday, sunday, TIMEZONE, 2)

    assert windows == [day_bounds_unix(saturday, TIMEZONE), day_bounds_unix(sunday, TIMEZONE)]
    assert all(to_unix - from_unix <= 2 * 86_400 for from_unix, to_unix in windows)


def test_plan_windows_stay_within_limit_across_the_year():
    windows = plan_windows(date(2025, 1, 1), date(2025, 12, 31), TIMEZONE, 2)

    assert all(to_unix - from_unix <= 2 * 86_400 for from_unix, to_unix in windows)
    assert windows[0][0] == day_bounds_unix(date(2025, 1, 1), TIMEZONE)[0]
    assert windows[-1][1] == day_bounds_unix(date(2025, 12, 31), TIMEZONE)[1]
    for (_, previous_end), (next_start, _) in zip(windows, windows[1:]):
        assert next_start == previous_end + 1


@pytest.mark.asyncio
async def test_single_day_is_one_vendor_call():
    day = date(2025, 6, 16)
    client = StubPosClient(_daily_revenue({day: 500.0}))
    result = await RevenueAggregator(client, timezone=TIMEZONE).aggregate(day, day)

    assert result.total == 500.0
    assert result.chunks == 1
    assert client.calls == [day_bounds_unix(day, TIMEZONE)]


@pytest.mark.asyncio
async def test_reversed_range_makes_no_calls():
    client = StubPosClient()
    result = await RevenueAggregator(client, timezone=TIMEZONE).aggregate(date(2025, 6, 17), date(2025, 6, 16))
    assert (result.total, result.chunks) == (0.0, 0)
    assert client.calls == []


@pytest.mark.asyncio
async def test_split_ranges_sum_to_whole_range():
    start = date(2025, 3, 1)
    days = {start + timedelta(days=offset): 100.0 + offset for offset in range(20)}
    aggregator = RevenueAggregator(StubPosClient(_daily_revenue(days)), timezone=TIMEZONE)

    whole = await aggregator.aggregate(start, start + timedelta(days=19))
    first = await aggregator.aggregate(start, start + timedelta(days=6))
    rest = await aggregator.aggregate(start + timedelta(days=7), start + timedelta(days=19))

    assert whole.total == pytest.approx(sum(days.values()))
    assert (first + rest).total == pytest.approx(whole.total)
    assert whole.chunks == 10


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    active = 0
    peak = 0

    class SlowClient(StubPosClient):
        async def fetch_revenue(self, from_unix, to_unix):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await super().fetch_revenue(from_unix, to_unix)

    client = SlowClient(lambda a, b: 1.0)
    aggregator = RevenueAggregator(client, timezone=TIMEZONE, max_concurrency=3)
    result = await aggregator.aggregate(date(2025, 1, 1), date(2025, 1, 30))

    assert result.chunks == 15
    assert result.total == 15.0
    assert peak == 3


@pytest.mark.asyncio
async def test_chunk_failure_fails_the_aggregation():
    client = StubPosClient(fail_with=UpstreamError("vendor down", status_code=503))
    with pytest.raises(UpstreamError):
        await RevenueAggregator(client, timezone=TIMEZONE).aggregate(date(2025, 1, 1), date(2025, 1, 10))


@pytest.mark.asyncio
async def test_cached_source_reuses_range_results(fake_clock):
    day = date(2025, 6, 16)
    client = StubPosClient(_daily_revenue({day: 250.0}))
    source = CachedRevenueSource(
        RevenueAggregator(client, timezone=TIMEZONE), ResultCache(clock=fake_clock), ttl_seconds=300
    )

    assert await source.day_total(day) == 250.0
    assert await source.day_total(day) == 250.0
    assert len(client.calls) == 1
    assert source.cache_key(day, day) == "pos:2025-06-16:2025-06-16"

    fake_clock.advance(301)
    await source.day_total(day)
    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_dst_weekend_is_fetched_one_day_at_a_time():
    saturday, sunday = date(2025, 10, 25), date(2025, 10, 26)
    client = StubPosClient(_daily_revenue({saturday: 300.0, sunday: 450.0}))
    result = await RevenueAggregator(client, timezone=TIMEZONE).aggregate(saturday, sunday)

    assert result.total == 750.0
    assert result.chunks == 2
    assert client.calls == [day_bounds_unix(saturday, TIMEZONE), day_bounds_unix(sunday, TIMEZONE)]


@pytest.mark.asyncio
async def test_shared_limiter_bounds_concurrent_aggregations():
    active = peak = 0

    class SlowClient(StubPosClient):
        async def fetch_revenue(self, from_unix, to_unix):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await super().fetch_revenue(from_unix, to_unix)

    aggregator = RevenueAggregator(SlowClient(lambda a, b: 1.0), timezone=TIMEZONE, max_concurrency=3)
    limiter = asyncio.Semaphore(2)
    results = await asyncio.gather(
        aggregator.aggregate(date(2025, 1, 1), date(2025, 1, 10), limiter=limiter),
        aggregator.aggregate(date(2025, 2, 1), date(2025, 2, 10), limiter=limiter),
        aggregator.aggregate(date(2025, 3, 1), date(2025, 3, 10), limiter=limiter),
    )

    assert [result.total for result in results] == [5.0, 5.0, 5.0]
    assert peak == 2
