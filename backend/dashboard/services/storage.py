"""Persistence for daily inputs, labor entries and schedule shifts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dashboard.db.database import Database
from dashboard.models import DailyInput, LaborEntry, ScheduleShift

logger = logging.getLogger(__name__)

AMOUNT_MATCH_TOLERANCE = 0.01


@dataclass(frozen=True)
class DailyInputValues:
    date: date
    total_revenue: float = 0.0
    wolt_revenue: float = 0.0
    labor_cost: float = 0.0
    bc_grocery_cost: float = 0.0


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _is_duplicate_key(exc: IntegrityError) -> bool:
    # SQLite says "UNIQUE constraint failed", PostgreSQL "duplicate key value"
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate key" in message


class Storage:
    """Key-value style upsert/list operations over the dashboard tables."""

    def __init__(self, database: Database) -> None:
        self._database = database

    async def list_daily_inputs(self) -> list[DailyInput]:
        async with self._database.session() as session:
            rows = (await session.execute(select(DailyInput).order_by(DailyInput.date))).scalars().all()
        return list(rows)

    async def get_daily_input(self, day: date) -> DailyInput | None:
        async with self._database.session() as session:
            return await self._find_daily(session, day)

    async def upsert_daily_input(self, values: DailyInputValues) -> DailyInput:
        """Insert or fully replace the row for ``values.date``."""

        try:
            return await self._write_daily(values)
        except IntegrityError as exc:
            if not _is_duplicate_key(exc):
                raise
            # A concurrent insert won the unique constraint; the retry updates it
            logger.info("Retrying daily input upsert for %s after concurrent insert", values.date)
            return await self._write_daily(values)

    async def set_total_revenue(self, day: date, total_revenue: float) -> DailyInput:
        """Overwrite only the POS revenue, keeping the manual figures."""

        existing = await self.get_daily_input(day)
        values = DailyInputValues(
            date=day,
            total_revenue=total_revenue,
            wolt_revenue=existing.wolt_revenue if existing else 0.0,
            labor_cost=existing.labor_cost if existing else 0.0,
            bc_grocery_cost=existing.bc_grocery_cost if existing else 0.0,
        )
        return await self.upsert_daily_input(values)

    async def _write_daily(self, values: DailyInputValues) -> DailyInput:
        async with self._database.session() as session:
            row = await self._find_daily(session, values.date)
            if row is None:
                row = DailyInput(date=values.date)
                session.add(row)
            row.total_revenue = values.total_revenue
            row.wolt_revenue = values.wolt_revenue
            row.labor_cost = values.labor_cost
            row.bc_grocery_cost = values.bc_grocery_cost
            row.updated_at = _now()
            await session.commit()
            return row

    @staticmethod
    async def _find_daily(session: AsyncSession, day: date) -> DailyInput | None:
        stmt = select(DailyInput).where(DailyInput.date == day)
        return (await session.execute(stmt)).scalars().first()

    async def add_labor_entries(self, entries: Iterable[tuple[str, date, float]]) -> int:
        """Append labor entries; repeated imports are not deduplicated."""

        rows = [LaborEntry(employee=employee, date=day, amount=amount) for employee, day, amount in entries]
        if not rows:
            return 0
        async with self._database.session() as session:
            session.add_all(rows)
            await session.commit()
        return len(rows)

    async def labor_total_between(self, start: date, end: date) -> float:
        stmt = select(func.coalesce(func.sum(LaborEntry.amount), 0.0)).where(
            LaborEntry.date >= start, LaborEntry.date <= end
        )
        async with self._database.session() as session:
            total = (await session.execute(stmt)).scalar()
        return float(total or 0.0)

    async def find_labor_employee(
        self, day: date, amount: float, tolerance: float = AMOUNT_MATCH_TOLERANCE
    ) -> str | None:
        """Return the first employee paid ``amount`` on ``day``, by insertion order."""

        stmt = (
            select(LaborEntry.employee)
            .where(LaborEntry.date == day, func.abs(LaborEntry.amount - amount) < tolerance)
            .order_by(LaborEntry.id)
            .limit(1)
        )
        async with self._database.session() as session:
            return (await session.execute(stmt)).scalar()

    async def replace_schedule(self, shifts: Iterable[ScheduleShift]) -> int:
        """Clear every schedule row and insert ``shifts`` in one transaction."""

        rows = list(shifts)
        async with self._database.session() as session:
            async with session.begin():
                await session.execute(delete(ScheduleShift))
                session.add_all(rows)
        return len(rows)

    async def schedule_for(self, day: date) -> list[ScheduleShift]:
        stmt = select(ScheduleShift).where(ScheduleShift.date == day).order_by(ScheduleShift.time_from)
        async with self._database.session() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return list(rows)


__all__ = ["AMOUNT_MATCH_TOLERANCE", "DailyInputValues", "Storage"]
