"""Database model exports."""

from .daily import DailyInput
from .labor import LaborEntry, ScheduleShift

__all__ = ["DailyInput", "LaborEntry", "ScheduleShift"]
