from __future__ import annotations

from datetime import date, datetime

from pydantic import ConfigDict, Field

from .base import CamelModel


class DailyInputRequest(CamelModel):
    model_config = ConfigDict(allow_inf_nan=False)

    date: str = Field(..., examples=["2025-03-01"])
    total_revenue: float = 0.0
    wolt_revenue: float = 0.0
    labor_cost: float = 0.0
    bc_grocery_cost: float = 0.0


class DailyInputSchema(CamelModel):
    date: date
    total_revenue: float
    wolt_revenue: float
    labor_cost: float
    bc_grocery_cost: float
    updated_at: datetime


class PosImportDebug(CamelModel):
    entries_count: int
    chunks: int


class PosImportResponse(CamelModel):
    ok: bool = True
    date: date
    imported: dict[str, float]
    saved: DailyInputSchema
    pos_debug: PosImportDebug


__all__ = ["DailyInputRequest", "DailyInputSchema", "PosImportDebug", "PosImportResponse"]
