"""KPI snapshot composition.

Revenue for any window is POS revenue plus manually entered Wolt revenue. POS
revenue comes live from OnlinePOS when it is configured and from stored daily
inputs otherwise. Year-over-year figures are anchored on the same weekday 364
days earlier.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date, timedelta
from typing import Any, Callable, Iterable, Protocol

from dashboard.core.errors import UpstreamError
from dashboard.models import DailyInput
from dashboard.schemas import (
    CogsBlock,
    Comparison,
    Comparisons,
    DateRangeSchema,
    KpiMeta,
    KpiSnapshot,
    LaborBlock,
    RevenueBlock,
    WoltBlock,
    WoltDay,
)
from dashboard.services.cache import ResultCache
from dashboard.services.date_ranges import (
    DateRange,
    month_to_date,
    same_day_last_year,
    same_weekday_last_year,
    start_of_month,
    start_of_year,
    week_range,
    week_to_date,
)
from dashboard.services.revenue import DEFAULT_MAX_CONCURRENCY, RevenueRangeResult

logger = logging.getLogger(__name__)

WOLT_HISTORY_DAYS = 7


class RevenueSource(Protocol):
    def is_configured(self) -> bool:
        ...

    async def range_total(
        self, start: date, end: date, *, limiter: asyncio.Semaphore | None = None
    ) -> RevenueRangeResult:
        ...


class DailyInputReader(Protocol):
    async def list_daily_inputs(self) -> list[DailyInput]:
        ...


def _money(value: float) -> float:
    return round(value, 2)


def compare(current: float, last_year: float) -> Comparison:
    diff = _money(current - last_year)
    if diff > 0:
        direction = "up"
    elif diff < 0:
        direction = "down"
    else:
        direction = "flat"
    return Comparison(current=_money(current), last_year=_money(last_year), diff=diff, direction=direction)


def safe_ratio(cost: float, revenue: float) -> float | None:
    """Return ``cost / revenue`` or None when the ratio is undefined."""

    if not math.isfinite(revenue) or not math.isfinite(cost) or revenue == 0:
        return None
    return cost / revenue


class KpiEngine:
    def __init__(
        self,
        storage: DailyInputReader,
        revenue: RevenueSource | None,
        *,
        today: Callable[[], date],
        fallback_lookback_days: int = 3,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self._storage = storage
        self._revenue = revenue
        self._today = today
        self._lookback = fallback_lookback_days
        self._max_concurrency = max_concurrency

    @property
    def live(self) -> bool:
        return self._revenue is not None and self._revenue.is_configured()

    async def compute(self, day: date) -> KpiSnapshot:
        rows = await self._storage.list_daily_inputs()
        by_date = {row.date: row for row in rows}
        # One limiter for every window of this snapshot
        limiter = asyncio.Semaphore(self._max_concurrency)

        async def pos_total(period: DateRange) -> float:
            if self.live:
                assert self._revenue is not None
                return (await self._revenue.range_total(period.start, period.end, limiter=limiter)).total
            return sum(row.total_revenue or 0.0 for d, row in by_date.items() if period.contains(d))

        def wolt_total(period: DateRange) -> float:
            return sum(row.wolt_revenue or 0.0 for d, row in by_date.items() if period.contains(d))

        async def revenue(period: DateRange) -> float:
            return await pos_total(period) + wolt_total(period)

        ly_weekday = same_weekday_last_year(day)
        ly_day = same_day_last_year(day)
        ly_week = week_range(ly_weekday)
        # Year totals are the closed months plus month-to-date, so the
        # closed-month prefix stays cached for the whole month
        windows: dict[str, DateRange] = {
            "week": week_range(day),
            "week_to_date": week_to_date(day),
            "month": month_to_date(day),
            "year_before_month": DateRange(start_of_year(day), start_of_month(day) - timedelta(days=1)),
            "last_year_same_day": DateRange(ly_day, ly_day),
            "last_year_same_weekday": DateRange(ly_weekday, ly_weekday),
            "last_year_week": ly_week,
            "last_year_month": DateRange(start_of_month(ly_day), ly_day),
            "last_year_before_month": DateRange(start_of_year(ly_day), start_of_month(ly_day) - timedelta(days=1)),
        }
        names = list(windows)
        totals = await asyncio.gather(*(revenue(windows[name]) for name in names))
        figures = dict(zip(names, totals))
        figures["year"] = figures["year_before_month"] + figures["month"]
        figures["last_year_year"] = figures["last_year_before_month"] + figures["last_year_month"]

        today_pos = await pos_total(DateRange(day, day))
        today_actual = today_pos + wolt_total(DateRange(day, day))
        today_revenue, today_date, message = await self._today_revenue(day, today_pos, pos_total, wolt_total)

        today_row = by_date.get(day)
        labor_cost = float(today_row.labor_cost or 0.0) if today_row else 0.0
        grocery_cost = float(today_row.bc_grocery_cost or 0.0) if today_row else 0.0

        revenue_block = RevenueBlock(
            today=_money(today_revenue),
            week=_money(figures["week"]),
            week_to_date=_money(figures["week_to_date"]),
            month=_money(figures["month"]),
            month_to_date=_money(figures["month"]),
            year=_money(figures["year"]),
            last_year_same_day=_money(figures["last_year_same_day"]),
            last_year_same_weekday=_money(figures["last_year_same_weekday"]),
            last_year_same_weekday_date=ly_weekday,
            last_year_week=_money(figures["last_year_week"]),
            last_year_week_range=DateRangeSchema(from_=ly_week.start, to=ly_week.end),
            last_year_month=_money(figures["last_year_month"]),
            last_year_year=_money(figures["last_year_year"]),
        )
        comparisons = Comparisons(
            today_vs_last_year_same_weekday=compare(today_revenue, figures["last_year_same_weekday"]),
            today_vs_last_year_same_day=compare(today_revenue, figures["last_year_same_day"]),
            week_vs_last_year_week=compare(figures["week"], figures["last_year_week"]),
            month_vs_last_year_month=compare(figures["month"], figures["last_year_month"]),
            year_vs_last_year_year=compare(figures["year"], figures["last_year_year"]),
        )
        return KpiSnapshot(
            date=day,
            revenue=revenue_block,
            comparisons=comparisons,
            labor=LaborBlock(today_cost=_money(labor_cost), labor_pct_today=safe_ratio(labor_cost, today_actual)),
            cogs=CogsBlock(today_cost=_money(grocery_cost), cogs_pct_today=safe_ratio(grocery_cost, today_actual)),
            wolt=self._wolt_block(day, rows),
            meta=KpiMeta(
                source="live" if self.live else "stored",
                today_source="live" if today_date == day else "fallback",
                today_revenue_date=today_date,
                message=message,
            ),
        )

    async def _today_revenue(
        self,
        day: date,
        today_pos: float,
        pos_total: Callable[[DateRange], Any],
        wolt_total: Callable[[DateRange], float],
    ) -> tuple[float, date, str | None]:
        """Fall back to the last closed day while today's POS books are still empty."""

        own = DateRange(day, day)
        if today_pos or not self.live or day != self._today():
            return today_pos + wolt_total(own), day, None

        for offset in range(1, self._lookback + 1):
            prior = day - timedelta(days=offset)
            prior_pos = await pos_total(DateRange(prior, prior))
            if prior_pos:
                logger.info("No POS revenue yet for %s; showing %s instead", day, prior)
                message = f"POS has no revenue for {day.isoformat()} yet; showing {prior.isoformat()}"
                return prior_pos + wolt_total(DateRange(prior, prior)), prior, message
        return today_pos + wolt_total(own), day, None

    @staticmethod
    def _wolt_block(day: date, rows: Iterable[DailyInput]) -> WoltBlock:
        history = [row for row in rows if row.date <= day][-WOLT_HISTORY_DAYS:]
        today = next((row.wolt_revenue for row in history if row.date == day), 0.0)
        return WoltBlock(
            today=_money(today or 0.0),
            by_day=[WoltDay(date=row.date, revenue=_money(row.wolt_revenue or 0.0)) for row in history],
        )


class KpiService:
    """Whole-snapshot caching on top of the engine, with stale fallback."""

    def __init__(self, engine: KpiEngine, cache: ResultCache, *, ttl_seconds: float) -> None:
        self._engine = engine
        self._cache = cache
        self._ttl = ttl_seconds

    @staticmethod
    def cache_key(day: date) -> str:
        return f"kpis:{day.isoformat()}"

    async def get(self, day: date) -> KpiSnapshot:
        key = self.cache_key(day)
        entry = self._cache.get_entry(key)
        if entry is not None:
            return self._with_meta(entry.value, cached=True, cache_age_seconds=entry.age(self._cache.now()))

        try:
            snapshot = await self._cache.get_or_compute(key, self._ttl, lambda: self._engine.compute(day))
        except UpstreamError as exc:
            stale = self._cache.get_stale(key)
            if stale is None:
                raise
            logger.warning("Serving cached KPIs for %s after upstream failure: %s", day, exc)
            return self._with_meta(
                stale.value,
                cached=True,
                cache_age_seconds=stale.age(self._cache.now()),
                source="cache",
                message=f"POS is unavailable ({exc}); showing the last cached figures",
            )
        return self._with_meta(snapshot, cached=False, cache_ttl_seconds=self._ttl)

    @staticmethod
    def _with_meta(snapshot: KpiSnapshot, **updates: Any) -> KpiSnapshot:
        if updates.get("cache_age_seconds") is not None:
            updates["cache_age_seconds"] = round(updates["cache_age_seconds"], 1)
        return snapshot.model_copy(update={"meta": snapshot.meta.model_copy(update=updates)})


__all__ = ["KpiEngine", "KpiService", "compare", "safe_ratio"]
