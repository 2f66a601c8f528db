"""Manually entered daily figures."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from dashboard.api.dependencies import get_cache, get_storage
from dashboard.schemas import DailyInputRequest, DailyInputSchema
from dashboard.services.cache import ResultCache
from dashboard.services.date_ranges import parse_iso_date
from dashboard.services.storage import DailyInputValues, Storage

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=list[DailyInputSchema])
async def list_inputs(storage: Storage = Depends(get_storage)) -> list[DailyInputSchema]:
    rows = await storage.list_daily_inputs()
    return [DailyInputSchema.model_validate(row) for row in rows]


@router.post("", response_model=DailyInputSchema)
async def save_input(
    payload: DailyInputRequest,
    storage: Storage = Depends(get_storage),
    cache: ResultCache = Depends(get_cache),
) -> DailyInputSchema:
    day = parse_iso_date(payload.date)
    saved = await storage.upsert_daily_input(
        DailyInputValues(
            date=day,
            total_revenue=payload.total_revenue,
            wolt_revenue=payload.wolt_revenue,
            labor_cost=payload.labor_cost,
            bc_grocery_cost=payload.bc_grocery_cost,
        )
    )
    cache.invalidate("kpis:")
    logger.info("Saved daily input for %s", day)
    return DailyInputSchema.model_validate(saved)


__all__ = ["list_inputs", "save_input"]
