"""Planday imports, labor cost summaries and the daily schedule."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from dashboard.api.dependencies import get_labor_service, read_html_body
from dashboard.core.errors import ValidationError
from dashboard.schemas import LaborImportResponse, ScheduleImportResponse, ScheduleItem, ScheduleResponse
from dashboard.services.date_ranges import parse_iso_date
from dashboard.services.labor import LaborService

router = APIRouter()
logger = logging.getLogger(__name__)


def _require_html(html: str) -> str:
    if not html.strip():
        raise ValidationError("Missing HTML body")
    return html


@router.post("/import", response_model=LaborImportResponse)
async def import_payslips(
    html: str = Depends(read_html_body),
    service: LaborService = Depends(get_labor_service),
) -> LaborImportResponse:
    inserted = await service.import_payslips(_require_html(html))
    return LaborImportResponse(entries_imported=inserted)


@router.post("/schedule/import", response_model=ScheduleImportResponse)
async def import_schedule(
    html: str = Depends(read_html_body),
    service: LaborService = Depends(get_labor_service),
) -> ScheduleImportResponse:
    result = await service.import_schedule(_require_html(html))
    return ScheduleImportResponse(shifts_imported=result.shifts_imported, shifts_parsed=result.shifts_parsed)


@router.get("/day")
async def labor_day(
    date: Optional[str] = Query(default=None),
    service: LaborService = Depends(get_labor_service),
) -> dict[str, Any]:
    return await service.day(parse_iso_date(date))


@router.get("/week")
async def labor_week(
    date: Optional[str] = Query(default=None),
    service: LaborService = Depends(get_labor_service),
) -> dict[str, Any]:
    return await service.week(parse_iso_date(date))


@router.get("/month")
async def labor_month(
    date: Optional[str] = Query(default=None),
    service: LaborService = Depends(get_labor_service),
) -> dict[str, Any]:
    return await service.month(parse_iso_date(date))


@router.get("/year")
async def labor_year(
    date: Optional[str] = Query(default=None),
    service: LaborService = Depends(get_labor_service),
) -> dict[str, Any]:
    return await service.year(parse_iso_date(date))


@router.get("/schedule/today", response_model=ScheduleResponse)
async def schedule_today(
    date: Optional[str] = Query(default=None),
    service: LaborService = Depends(get_labor_service),
) -> ScheduleResponse:
    day = parse_iso_date(date)
    shifts = await service.schedule_for(day)
    return ScheduleResponse(
        date=day.isoformat(),
        schedule=[ScheduleItem(employee=s.employee, from_=s.time_from, to=s.time_to) for s in shifts],
    )


__all__ = [
    "import_payslips",
    "import_schedule",
    "labor_day",
    "labor_week",
    "labor_month",
    "labor_year",
    "schedule_today",
]
