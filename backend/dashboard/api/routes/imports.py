"""POS revenue import into stored daily inputs."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from dashboard.api.dependencies import get_app_settings, get_cache, get_pos_client, get_storage
from dashboard.config import AppSettings
from dashboard.providers.onlinepos import OnlinePosClient
from dashboard.schemas import DailyInputSchema, PosImportDebug, PosImportResponse
from dashboard.services.cache import ResultCache
from dashboard.services.date_ranges import day_bounds_unix, parse_iso_date
from dashboard.services.storage import Storage

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/pos", response_model=PosImportResponse)
async def import_pos_revenue(
    date: Optional[str] = Query(default=None),
    settings: AppSettings = Depends(get_app_settings),
    client: OnlinePosClient = Depends(get_pos_client),
    storage: Storage = Depends(get_storage),
    cache: ResultCache = Depends(get_cache),
) -> PosImportResponse:
    day = parse_iso_date(date)
    from_unix, to_unix = day_bounds_unix(day, settings.timezone)
    fetched = await client.fetch_revenue(from_unix, to_unix)
    saved = await storage.set_total_revenue(day, fetched.total)
    cache.invalidate("kpis:")
    logger.info("Imported POS revenue %.2f for %s", fetched.total, day)
    return PosImportResponse(
        date=day,
        imported={"totalRevenue": fetched.total},
        saved=DailyInputSchema.model_validate(saved),
        pos_debug=PosImportDebug(entries_count=fetched.entry_count, chunks=1),
    )


__all__ = ["import_pos_revenue"]
