"""HTTP API tests running the full app against SQLite and a mocked vendor."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from conftest import TIMEZONE
from dashboard.config import AppSettings
from dashboard.main import create_app
from dashboard.providers.onlinepos import OnlinePosBackofficeClient, OnlinePosClient
from dashboard.services.date_ranges import day_bounds_unix

TODAY = date(2025, 6, 16)
YESTERDAY = date(2025, 6, 15)
FIRM_ID = "1234"


def _settings(tmp_path, **overrides) -> AppSettings:
    values = {
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        "timezone": TIMEZONE,
        "pos_api_base_url": "https://pos.test",
        "pos_api_token": "token",
        "pos_firmaid": FIRM_ID,
        "pos_bo_base_url": "https://bo.test",
        "pos_bo_cookie": None,
        "pos_bo_xsrf": None,
        "telemetry_enabled": False,
    }
    values.update(overrides)
    return AppSettings(**values)


def _vendor(daily: dict[date, float], *, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    """Koncern revenue endpoint answering with the days inside the requested range."""

    def handler(request: httpx.Request) -> httpx.Response:
        if status_code != 200:
            return httpx.Response(status_code, text="vendor unavailable")
        from_unix, to_unix = (int(part) for part in request.url.path.rstrip("/").split("/")[-2:])
        entries = []
        for day, revenue in daily.items():
            start, end = day_bounds_unix(day, TIMEZONE)
            if from_unix <= start and end <= to_unix:
                entries.append({"entry": {"firmaid": int(FIRM_ID), "revenue": revenue}})
        return httpx.Response(200, json={"entries": entries})

    return handler


@asynccontextmanager
async def _client(settings: AppSettings, handler=None) -> AsyncIterator[AsyncClient]:
    pos_http = httpx.AsyncClient(transport=httpx.MockTransport(handler or _vendor({})))
    app = create_app(
        settings,
        pos_client=OnlinePosClient(settings.pos_api(), client=pos_http),
        backoffice_client=OnlinePosBackofficeClient(settings.pos_backoffice(), client=pos_http),
        today=lambda: TODAY,
    )
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    await pos_http.aclose()


async def test_health_reports_pos_capabilities(tmp_path):
    async with _client(_settings(tmp_path)) as client:
        response = await client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["timezone"] == TIMEZONE
    assert payload["pos"] == {"api": True, "backoffice": False}


async def test_inputs_round_trip(tmp_path):
    body = {"date": "2025-06-16", "totalRevenue": 1000, "woltRevenue": 150.5, "laborCost": 300, "bcGroceryCost": 80}
    async with _client(_settings(tmp_path)) as client:
        saved = await client.post("/inputs", json=body)
        await client.post("/inputs", json={"date": "2025-06-10", "totalRevenue": 10})
        listed = await client.get("/inputs")

    assert saved.status_code == 200
    assert saved.json()["woltRevenue"] == 150.5
    assert "updatedAt" in saved.json()
    assert [row["date"] for row in listed.json()] == ["2025-06-10", "2025-06-16"]


async def test_inputs_reject_bad_date(tmp_path):
    async with _client(_settings(tmp_path)) as client:
        response = await client.post("/inputs", json={"date": "16/06/2025"})

    assert response.status_code == 400
    assert response.json() == {"error": "date must be YYYY-MM-DD"}


async def test_inputs_reject_non_numeric_amount(tmp_path):
    async with _client(_settings(tmp_path)) as client:
        response = await client.post("/inputs", json={"date": "2025-06-16", "laborCost": "lots"})

    assert response.status_code == 400
    assert "laborCost" in response.json()["error"]


@pytest.mark.parametrize("amount", [b"NaN", b"Infinity", b"-Infinity", b"\"nan\""])
async def test_inputs_reject_non_finite_amounts(tmp_path, amount):
    body = b'{"date": "2025-06-16", "totalRevenue": ' + amount + b"}"
    async with _client(_settings(tmp_path)) as client:
        response = await client.post("/inputs", content=body, headers={"Content-Type": "application/json"})
        listed = await client.get("/inputs")

    assert response.status_code == 400
    assert "totalRevenue" in response.json()["error"]
    assert listed.json() == []


async def test_kpis_require_valid_date(tmp_path):
    async with _client(_settings(tmp_path)) as client:
        missing = await client.get("/kpis")
        invalid = await client.get("/kpis", params={"date": "2025-13-01"})

    assert missing.status_code == 400
    assert invalid.status_code == 400
    assert "error" in invalid.json()


async def test_kpis_live_snapshot_with_fallback(tmp_path):
    handler = _vendor({YESTERDAY: 1200.0, date(2024, 6, 17): 900.0})
    async with _client(_settings(tmp_path), handler) as client:
        await client.post("/inputs", json={"date": "2025-06-16", "laborCost": 250})
        first = await client.get("/kpis", params={"date": "2025-06-16"})
        second = await client.get("/kpis", params={"date": "2025-06-16"})

    assert first.status_code == 200
    payload = first.json()
    assert payload["date"] == "2025-06-16"
    assert payload["revenue"]["today"] == 1200.0
    assert payload["revenue"]["lastYearSameWeekday"] == 900.0
    assert payload["revenue"]["lastYearSameWeekdayDate"] == "2024-06-17"
    assert payload["comparisons"]["todayVsLastYearSameWeekday"]["direction"] == "up"
    assert payload["labor"] == {"todayCost": 250.0, "laborPctToday": None}
    assert payload["meta"]["source"] == "live"
    assert payload["meta"]["todaySource"] == "fallback"
    assert payload["meta"]["todayRevenueDate"] == "2025-06-15"
    assert payload["meta"]["cached"] is False
    assert second.json()["meta"]["cached"] is True


async def test_kpis_upstream_failure_without_cache_is_bad_gateway(tmp_path):
    handler = _vendor({}, status_code=503)
    async with _client(_settings(tmp_path), handler) as client:
        response = await client.get("/kpis", params={"date": "2025-06-16"})

    assert response.status_code == 502
    assert "error" in response.json()


async def test_kpis_use_stored_revenue_without_credentials(tmp_path):
    settings = _settings(tmp_path, pos_api_token=None)
    async with _client(settings) as client:
        await client.post("/inputs", json={"date": "2025-06-16", "totalRevenue": 700, "woltRevenue": 100})
        response = await client.get("/kpis", params={"date": "2025-06-16"})

    payload = response.json()
    assert response.status_code == 200
    assert payload["meta"]["source"] == "stored"
    assert payload["revenue"]["today"] == 800.0
    assert payload["wolt"]["today"] == 100.0


async def test_pos_import_updates_revenue_only(tmp_path):
    handler = _vendor({TODAY: 4321.5})
    async with _client(_settings(tmp_path), handler) as client:
        await client.post("/inputs", json={"date": "2025-06-16", "woltRevenue": 50, "laborCost": 20})
        response = await client.post("/import/pos", params={"date": "2025-06-16"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert payload["imported"] == {"totalRevenue": 4321.5}
    assert payload["saved"]["totalRevenue"] == 4321.5
    assert payload["saved"]["woltRevenue"] == 50.0
    assert payload["saved"]["laborCost"] == 20.0
    assert payload["posDebug"] == {"entriesCount": 1, "chunks": 1}


async def test_pos_import_without_credentials_is_config_error(tmp_path):
    settings = _settings(tmp_path, pos_firmaid=None)
    async with _client(settings) as client:
        response = await client.post("/import/pos", params={"date": "2025-06-16"})

    assert response.status_code == 500
    assert "POS_FIRMAID" in response.json()["error"]


async def test_pos_revenue_passthrough(tmp_path):
    handler = _vendor({TODAY: 99.5})
    async with _client(_settings(tmp_path), handler) as client:
        response = await client.get("/pos/revenue", params={"date": "2025-06-16"})

    payload = response.json()
    from_unix, to_unix = day_bounds_unix(TODAY, TIMEZONE)
    assert payload["posSalesTotal"] == 99.5
    assert (payload["from"], payload["to"]) == (from_unix, to_unix)
    assert payload["targetFirmaId"] == 1234


async def test_basic_sales_requires_a_period(tmp_path):
    async with _client(_settings(tmp_path)) as client:
        response = await client.get("/pos/basic-sales")

    assert response.status_code == 400


async def test_labor_import_schedule_and_summary(tmp_path):
    payslips = (
        '<div class="employeeInfo"><span class="employeeName">Alice</span></div>'
        "<table><tr><th>Dato</th><th>Beløb</th></tr><tr><td>16.06.2025</td><td>450,00</td></tr></table>"
    )
    timesheet = (
        '<table><tr class="timesheetMasterRow"><td></td><td>16.06.2025</td><td>9:00 - 17:00</td>'
        "<td></td><td></td><td></td><td>450,00 kr.</td></tr></table>"
    )
    headers = {"Content-Type": "text/html; charset=utf-8"}
    async with _client(_settings(tmp_path)) as client:
        imported = await client.post("/labor/import", content=payslips.encode("utf-8"), headers=headers)
        scheduled = await client.post("/labor/schedule/import", content=timesheet.encode("utf-8"), headers=headers)
        schedule = await client.get("/labor/schedule/today", params={"date": "2025-06-16"})
        day = await client.get("/labor/day", params={"date": "2025-06-16"})
        empty = await client.post("/labor/import", content=b"  ", headers=headers)

    assert imported.json() == {"status": "ok", "entriesImported": 1}
    assert scheduled.json() == {"status": "ok", "shiftsImported": 1, "shiftsParsed": 1}
    assert schedule.json() == {"date": "2025-06-16", "schedule": [{"employee": "Alice", "from": "09:00", "to": "17:00"}]}
    assert day.json()["laborCost"] == 520.83
    assert empty.status_code == 400
    assert empty.json() == {"error": "Missing HTML body"}


async def test_unknown_route_uses_error_envelope(tmp_path):
    async with _client(_settings(tmp_path)) as client:
        response = await client.get("/nope")

    assert response.status_code == 404
    assert "error" in response.json()
