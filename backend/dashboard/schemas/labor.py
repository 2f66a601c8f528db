from __future__ import annotations

from pydantic import Field

from .base import CamelModel


class LaborImportResponse(CamelModel):
    status: str = "ok"
    entries_imported: int


class ScheduleImportResponse(CamelModel):
    status: str = "ok"
    shifts_imported: int
    shifts_parsed: int


class ScheduleItem(CamelModel):
    employee: str
    from_: str = Field(..., alias="from")
    to: str


class ScheduleResponse(CamelModel):
    date: str
    schedule: list[ScheduleItem]


__all__ = ["LaborImportResponse", "ScheduleImportResponse", "ScheduleItem", "ScheduleResponse"]
