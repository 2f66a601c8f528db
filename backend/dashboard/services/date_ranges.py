"""Calendar window helpers for the venue's local business days.

Weeks start on Monday. Year-over-year comparisons use the same weekday 52 weeks
earlier, because weekday drives restaurant revenue far more than the calendar
date does.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from dashboard.core.errors import ValidationError

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SAME_WEEKDAY_OFFSET = timedelta(days=364)


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @property
    def days(self) -> int:
        return max((self.end - self.start).days + 1, 0)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def as_dict(self) -> dict[str, str]:
        return {"from": self.start.isoformat(), "to": self.end.isoformat()}


def parse_iso_date(value: str | None, *, field: str = "date") -> date:
    """Parse a strict ``YYYY-MM-DD`` string, raising ValidationError otherwise."""

    raw = (value or "").strip()
    if not raw or not ISO_DATE_RE.match(raw):
        raise ValidationError(f"{field} must be YYYY-MM-DD")
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"{field} must be a valid calendar date") from exc


def local_today(tz_name: str) -> date:
    return datetime.now(ZoneInfo(tz_name)).date()


def start_of_week(day: date) -> date:
    return day - timedelta(days=day.weekday())


def end_of_week(day: date) -> date:
    return start_of_week(day) + timedelta(days=6)


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def end_of_month(day: date) -> date:
    first_of_next = date(day.year + day.month // 12, day.month % 12 + 1, 1)
    return first_of_next - timedelta(days=1)


def start_of_year(day: date) -> date:
    return day.replace(month=1, day=1)


def week_range(day: date) -> DateRange:
    return DateRange(start_of_week(day), end_of_week(day))


def week_to_date(day: date) -> DateRange:
    return DateRange(start_of_week(day), day)


def month_to_date(day: date) -> DateRange:
    return DateRange(start_of_month(day), day)


def add_years(day: date, years: int) -> date:
    """Shift by whole years, clamping Feb 29 to Feb 28 in non-leap years."""

    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def same_weekday_last_year(day: date) -> date:
    return day - SAME_WEEKDAY_OFFSET


def same_day_last_year(day: date) -> date:
    return add_years(day, -1)


def day_bounds_unix(day: date, tz_name: str) -> tuple[int, int]:
    """Return Unix seconds for local 00:00:00 and 23:59:59 of ``day``."""

    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time(23, 59, 59), tzinfo=tz)
    return int(start.timestamp()), int(end.timestamp())


def range_bounds_unix(start: date, end: date, tz_name: str) -> tuple[int, int]:
    from_unix, _ = day_bounds_unix(start, tz_name)
    _, to_unix = day_bounds_unix(end, tz_name)
    return from_unix, to_unix


__all__ = [
    "DateRange",
    "ISO_DATE_RE",
    "add_years",
    "day_bounds_unix",
    "end_of_month",
    "end_of_week",
    "local_today",
    "month_to_date",
    "parse_iso_date",
    "range_bounds_unix",
    "same_day_last_year",
    "same_weekday_last_year",
    "start_of_month",
    "start_of_week",
    "start_of_year",
    "week_range",
    "week_to_date",
]
