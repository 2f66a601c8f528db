"""Planday labor entries and reconciled schedule shifts."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from dashboard.db.base import Base


class LaborEntry(Base):
    __tablename__ = "labor_entry"
    __table_args__ = (
        Index("ix_labor_entry_date", "date"),
        Index("ix_labor_entry_employee", "employee"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    employee: Mapped[str] = mapped_column(String(200))
    date: Mapped[date] = mapped_column(Date)
    amount: Mapped[float] = mapped_column(Float)


class ScheduleShift(Base):
    __tablename__ = "labor_schedule"
    __table_args__ = (Index("ix_labor_schedule_date", "date"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    employee: Mapped[str] = mapped_column(String(200))
    date: Mapped[date] = mapped_column(Date)
    time_from: Mapped[str] = mapped_column(String(5))
    time_to: Mapped[str] = mapped_column(String(5))


__all__ = ["LaborEntry", "ScheduleShift"]
