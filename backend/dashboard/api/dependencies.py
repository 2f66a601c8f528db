"""FastAPI dependencies resolving the per-process service objects."""

from __future__ import annotations

from fastapi import Request

from dashboard.config import AppSettings
from dashboard.providers.onlinepos import OnlinePosBackofficeClient, OnlinePosClient
from dashboard.services.cache import ResultCache
from dashboard.services.kpi import KpiService
from dashboard.services.labor import LaborService
from dashboard.services.storage import Storage


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_cache(request: Request) -> ResultCache:
    return request.app.state.cache


def get_kpi_service(request: Request) -> KpiService:
    return request.app.state.kpi_service


def get_labor_service(request: Request) -> LaborService:
    return request.app.state.labor_service


def get_pos_client(request: Request) -> OnlinePosClient:
    return request.app.state.pos_client


def get_backoffice_client(request: Request) -> OnlinePosBackofficeClient:
    return request.app.state.backoffice_client


async def read_html_body(request: Request) -> str:
    raw = await request.body()
    return raw.decode("utf-8", errors="replace")


__all__ = [
    "get_app_settings",
    "get_backoffice_client",
    "get_cache",
    "get_kpi_service",
    "get_labor_service",
    "get_pos_client",
    "get_storage",
    "read_html_body",
]
