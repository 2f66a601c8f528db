"""KPI snapshot endpoint."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from dashboard.api.dependencies import get_kpi_service
from dashboard.schemas import KpiSnapshot
from dashboard.services.date_ranges import parse_iso_date
from dashboard.services.kpi import KpiService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=KpiSnapshot)
async def get_kpis(
    date: Optional[str] = Query(default=None, description="Business date, YYYY-MM-DD"),
    service: KpiService = Depends(get_kpi_service),
) -> KpiSnapshot:
    day = parse_iso_date(date)
    snapshot = await service.get(day)
    logger.info(
        "KPIs for %s served (cached=%s, source=%s, today=%s)",
        day,
        snapshot.meta.cached,
        snapshot.meta.source,
        snapshot.meta.today_source,
    )
    return snapshot


__all__ = ["get_kpis"]
