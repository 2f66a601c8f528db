"""KPI snapshot schemas mirroring the dashboard frontend contract."""

from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from pydantic import Field

from .base import CamelModel

Direction = Literal["up", "down", "flat"]


class DateRangeSchema(CamelModel):
    from_: date = Field(..., alias="from")
    to: date


class Comparison(CamelModel):
    current: float
    last_year: float
    diff: float
    direction: Direction


class RevenueBlock(CamelModel):
    today: float
    week: float
    week_to_date: float
    month: float
    month_to_date: float
    year: float
    last_year_same_day: float
    last_year_same_weekday: float
    last_year_same_weekday_date: date
    last_year_week: float
    last_year_week_range: DateRangeSchema
    last_year_month: float
    last_year_year: float


class Comparisons(CamelModel):
    today_vs_last_year_same_weekday: Comparison
    today_vs_last_year_same_day: Comparison
    week_vs_last_year_week: Comparison
    month_vs_last_year_month: Comparison
    year_vs_last_year_year: Comparison


class LaborBlock(CamelModel):
    today_cost: float
    labor_pct_today: Optional[float] = None


class CogsBlock(CamelModel):
    today_cost: float
    cogs_pct_today: Optional[float] = None


class WoltDay(CamelModel):
    date: date
    revenue: float


class WoltBlock(CamelModel):
    today: float
    by_day: list[WoltDay]


class KpiMeta(CamelModel):
    cached: bool = False
    cache_age_seconds: Optional[float] = None
    cache_ttl_seconds: Optional[float] = None
    source: Literal["live", "stored", "cache"]
    today_source: Literal["live", "fallback"] = "live"
    today_revenue_date: date
    message: Optional[str] = None


class KpiSnapshot(CamelModel):
    date: date
    revenue: RevenueBlock
    comparisons: Comparisons
    labor: LaborBlock
    cogs: CogsBlock
    wolt: WoltBlock
    meta: KpiMeta


__all__ = [
    "CogsBlock",
    "Comparison",
    "Comparisons",
    "DateRangeSchema",
    "Direction",
    "KpiMeta",
    "KpiSnapshot",
    "LaborBlock",
    "RevenueBlock",
    "WoltBlock",
    "WoltDay",
]
