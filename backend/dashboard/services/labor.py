"""Labor imports, schedule reconciliation and labor cost summaries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from dashboard.models import ScheduleShift
from dashboard.parsers.planday import parse_payslip_html, parse_timesheet_html
from dashboard.services.date_ranges import (
    DateRange,
    end_of_month,
    start_of_month,
    start_of_year,
    week_range,
)
from dashboard.services.storage import Storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleImportResult:
    shifts_imported: int
    shifts_parsed: int


class LaborService:
    """Planday HTML imports plus uplifted labor cost per period."""

    def __init__(self, storage: Storage, *, uplift_pct: float) -> None:
        self._storage = storage
        self._uplift_pct = uplift_pct

    @property
    def uplift_factor(self) -> float:
        return 1 + self._uplift_pct / 100

    async def import_payslips(self, html: str) -> int:
        entries = parse_payslip_html(html)
        inserted = await self._storage.add_labor_entries((e.employee, e.date, e.amount) for e in entries)
        logger.info("Imported %d labor entries", inserted)
        return inserted

    async def import_schedule(self, html: str) -> ScheduleImportResult:
        """Resolve timesheet shifts to employees and replace the schedule.

        The timesheet export carries no employee names, so each shift is
        matched to a labor entry paid the same amount on the same date. Two
        employees paid identical amounts on one day cannot be told apart; the
        first imported entry wins.
        """

        parsed = parse_timesheet_html(html)
        resolved: list[ScheduleShift] = []
        for shift in parsed:
            employee = await self._storage.find_labor_employee(shift.date, shift.amount)
            if employee is None:
                logger.debug("No labor entry for shift %s %.2f; dropped", shift.date, shift.amount)
                continue
            resolved.append(
                ScheduleShift(
                    employee=employee,
                    date=shift.date,
                    time_from=shift.time_from,
                    time_to=shift.time_to,
                )
            )
        imported = await self._storage.replace_schedule(resolved)
        logger.info("Schedule import: %d of %d shifts resolved", imported, len(parsed))
        return ScheduleImportResult(shifts_imported=imported, shifts_parsed=len(parsed))

    async def _summary(self, period: DateRange, label: dict[str, Any]) -> dict[str, Any]:
        base_cost = await self._storage.labor_total_between(period.start, period.end)
        return {
            **label,
            "upliftPct": self._uplift_pct,
            "baseCost": round(base_cost, 2),
            "laborCost": round(base_cost * self.uplift_factor, 2),
        }

    async def day(self, day: date) -> dict[str, Any]:
        return await self._summary(DateRange(day, day), {"date": day.isoformat()})

    async def week(self, day: date) -> dict[str, Any]:
        period = week_range(day)
        return await self._summary(period, period.as_dict())

    async def month(self, day: date) -> dict[str, Any]:
        period = DateRange(start_of_month(day), end_of_month(day))
        return await self._summary(period, {"month": day.strftime("%Y-%m")})

    async def year(self, day: date) -> dict[str, Any]:
        period = DateRange(start_of_year(day), date(day.year, 12, 31))
        return await self._summary(period, {"year": f"{day.year:04d}"})

    async def schedule_for(self, day: date) -> list[ScheduleShift]:
        return await self._storage.schedule_for(day)


__all__ = ["LaborService", "ScheduleImportResult"]
