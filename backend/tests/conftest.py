import asyncio
import inspect
import pathlib
import sys
from datetime import date
from typing import Callable

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dashboard.providers.onlinepos import RevenueFetch  # noqa: E402
from dashboard.services.date_ranges import DateRange  # noqa: E402
from dashboard.services.revenue import RevenueRangeResult  # noqa: E402

TIMEZONE = "Europe/Copenhagen"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        kwargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            loop.run_until_complete(test_function(**kwargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


class StubPosClient:
    """Revenue client stub answering per Unix range, recording every call."""

    def __init__(
        self,
        revenue_for: Callable[[int, int], float] | None = None,
        *,
        configured: bool = True,
        fail_with: Exception | None = None,
    ) -> None:
        self._revenue_for = revenue_for or (lambda from_unix, to_unix: 0.0)
        self._configured = configured
        self._fail_with = fail_with
        self.calls: list[tuple[int, int]] = []

    def is_configured(self) -> bool:
        return self._configured

    async def fetch_revenue(self, from_unix: int, to_unix: int) -> RevenueFetch:
        self.calls.append((from_unix, to_unix))
        await asyncio.sleep(0)
        if self._fail_with is not None:
            raise self._fail_with
        return RevenueFetch(total=self._revenue_for(from_unix, to_unix), raw_entry_count=1, entry_count=1)


class StubRevenueSource:
    """Range source returning per-day revenue from a dict, summed over a range."""

    def __init__(self, daily: dict[date, float] | None = None, *, configured: bool = True) -> None:
        self.daily = daily or {}
        self._configured = configured
        self.error: Exception | None = None
        self.calls: list[tuple[date, date]] = []

    def is_configured(self) -> bool:
        return self._configured

    async def range_total(
        self, start: date, end: date, *, limiter: asyncio.Semaphore | None = None
    ) -> RevenueRangeResult:
        self.calls.append((start, end))
        if self.error is not None:
            raise self.error
        period = DateRange(start, end)
        total = sum(value for day, value in self.daily.items() if period.contains(day))
        return RevenueRangeResult(total=total, chunks=1)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
