"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, Callable

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from dashboard.api.routes import api_router
from dashboard.config import AppSettings, get_settings
from dashboard.core.errors import ConfigError, UpstreamError, ValidationError
from dashboard.core.logging import setup_logging
from dashboard.core.telemetry import setup_telemetry, shutdown_telemetry
from dashboard.db.database import Database
from dashboard.providers.onlinepos import OnlinePosBackofficeClient, OnlinePosClient
from dashboard.services.cache import ResultCache
from dashboard.services.date_ranges import local_today
from dashboard.services.kpi import KpiEngine, KpiService
from dashboard.services.labor import LaborService
from dashboard.services.revenue import CachedRevenueSource, RevenueAggregator
from dashboard.services.storage import Storage

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid input')}" if location else "Invalid request body"
        logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
        return _error(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(ConfigError)
    async def _config(request: Request, exc: ConfigError) -> JSONResponse:
        logger.error("Configuration error on %s: %s", request.url.path, exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(UpstreamError)
    async def _upstream(request: Request, exc: UpstreamError) -> JSONResponse:
        logger.error("Upstream failure on %s: %s (status=%s)", request.url.path, exc, exc.status_code)
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc))

    @app.exception_handler(SQLAlchemyError)
    async def _storage(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Storage failure on %s", request.url.path, exc_info=exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Storage failure")

    @app.exception_handler(HTTPException)
    async def _http(request: Request, exc: HTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))


def create_app(
    settings: AppSettings | None = None,
    *,
    database: Database | None = None,
    pos_client: OnlinePosClient | None = None,
    backoffice_client: OnlinePosBackofficeClient | None = None,
    cache: ResultCache | None = None,
    today: Callable[[], date] | None = None,
) -> FastAPI:
    """Build the app and its per-process services.

    Collaborators can be injected for tests; anything omitted is built from
    ``settings``.
    """

    settings = settings or get_settings()
    database = database or Database(settings.database_url)
    pos_client = pos_client or OnlinePosClient(settings.pos_api())
    backoffice_client = backoffice_client or OnlinePosBackofficeClient(settings.pos_backoffice())
    cache = cache or ResultCache()
    today = today or (lambda: local_today(settings.timezone))

    storage = Storage(database)
    aggregator = RevenueAggregator(
        pos_client,
        timezone=settings.timezone,
        window_days=settings.pos_max_window_days,
        max_concurrency=settings.pos_max_concurrency,
    )
    revenue = CachedRevenueSource(aggregator, cache, ttl_seconds=settings.pos_range_cache_ttl_seconds)
    engine = KpiEngine(
        storage,
        revenue,
        today=today,
        fallback_lookback_days=settings.today_fallback_lookback_days,
        max_concurrency=settings.pos_max_concurrency,
    )

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        await database.create_all()
        if not pos_client.is_configured():
            logger.warning(
                "OnlinePOS API not configured (%s); KPIs use stored revenue",
                ", ".join(pos_client.config.missing()),
            )
        yield
        await pos_client.aclose()
        await backoffice_client.aclose()
        await database.dispose()
        shutdown_telemetry()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=_lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.cache = cache
    app.state.storage = storage
    app.state.pos_client = pos_client
    app.state.backoffice_client = backoffice_client
    app.state.kpi_service = KpiService(engine, cache, ttl_seconds=settings.kpi_cache_ttl_seconds)
    app.state.labor_service = LaborService(storage, uplift_pct=settings.uplift_pct)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, object]:
        """Return service readiness metadata."""

        return {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "timezone": settings.timezone,
            "pos": {
                "api": pos_client.is_configured(),
                "backoffice": backoffice_client.is_configured(),
            },
        }

    setup_telemetry(app, settings, engine=database.engine)
    return app


def _build_default_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("Starting with settings: %s", settings.dict_for_logging())
    return create_app(settings)


app = _build_default_app()

__all__ = ["app", "create_app"]
