"""Manually entered and POS-imported daily figures."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dashboard.db.base import Base


class DailyInput(Base):
    __tablename__ = "daily_input"
    __table_args__ = (UniqueConstraint("date", name="uq_daily_input_date"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    date: Mapped[date] = mapped_column(Date, index=True)
    total_revenue: Mapped[float] = mapped_column(Float, default=0.0)
    wolt_revenue: Mapped[float] = mapped_column(Float, default=0.0)
    labor_cost: Mapped[float] = mapped_column(Float, default=0.0)
    bc_grocery_cost: Mapped[float] = mapped_column(Float, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


__all__ = ["DailyInput"]
