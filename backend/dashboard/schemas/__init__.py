"""Pydantic schema exports."""

from .inputs import DailyInputRequest, DailyInputSchema, PosImportDebug, PosImportResponse
from .kpis import (
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
from .labor import LaborImportResponse, ScheduleImportResponse, ScheduleItem, ScheduleResponse

__all__ = [
    "CogsBlock",
    "Comparison",
    "Comparisons",
    "DailyInputRequest",
    "DailyInputSchema",
    "DateRangeSchema",
    "KpiMeta",
    "KpiSnapshot",
    "LaborBlock",
    "LaborImportResponse",
    "PosImportDebug",
    "PosImportResponse",
    "RevenueBlock",
    "ScheduleImportResponse",
    "ScheduleItem",
    "ScheduleResponse",
    "WoltBlock",
    "WoltDay",
]
