"""Direct OnlinePOS passthrough endpoints for diagnostics."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from dashboard.api.dependencies import get_app_settings, get_backoffice_client, get_pos_client
from dashboard.config import AppSettings
from dashboard.core.errors import ValidationError
from dashboard.providers.onlinepos import OnlinePosBackofficeClient, OnlinePosClient, firm_number
from dashboard.services.date_ranges import day_bounds_unix, parse_iso_date

router = APIRouter()


@router.get("/revenue")
async def pos_revenue(
    date: Optional[str] = Query(default=None),
    settings: AppSettings = Depends(get_app_settings),
    client: OnlinePosClient = Depends(get_pos_client),
) -> dict[str, Any]:
    day = parse_iso_date(date)
    from_unix, to_unix = day_bounds_unix(day, settings.timezone)
    fetched = await client.fetch_revenue(from_unix, to_unix)
    return {
        "date": day.isoformat(),
        "from": from_unix,
        "to": to_unix,
        "posSalesTotal": fetched.total,
        "entriesCount": fetched.entry_count,
        "rawEntriesCount": fetched.raw_entry_count,
        "targetFirmaId": firm_number(client.config.firm_id or ""),
    }


@router.get("/basic-sales")
async def basic_sales(
    date: Optional[str] = Query(default=None),
    week: Optional[int] = Query(default=None, ge=1, le=53),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    client: OnlinePosBackofficeClient = Depends(get_backoffice_client),
) -> dict[str, Any]:
    if date is not None:
        params: dict[str, str | int] = {"date": parse_iso_date(date).isoformat()}
    elif week is not None and year is not None:
        params = {"week_number": week, "week_year": year}
    elif month is not None and year is not None:
        params = {"month": month, "month_year": year}
    elif year is not None:
        params = {"year": year}
    else:
        raise ValidationError("Provide date, week and year, month and year, or year")
    data = await client.basic_sales(**params)
    return {"query": params, "data": data}


__all__ = ["pos_revenue", "basic_sales"]
