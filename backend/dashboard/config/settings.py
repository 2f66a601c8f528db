"""Application configuration and environment helpers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TIMEZONE = "Europe/Copenhagen"
DEFAULT_POS_API_BASE_URL = "https://api.onlinepos.dk"
DEFAULT_POS_BO_BASE_URL = "https://rest.onlinepos.dk"


@dataclass(frozen=True)
class PosApiConfig:
    """Token-authenticated OnlinePOS koncern API credentials."""

    base_url: str
    token: str | None
    firm_id: str | None
    timeout_seconds: float

    def missing(self) -> list[str]:
        missing: list[str] = []
        if not self.token:
            missing.append("POS_API_TOKEN")
        if not self.firm_id:
            missing.append("POS_FIRMAID")
        return missing

    def is_configured(self) -> bool:
        return not self.missing()


@dataclass(frozen=True)
class PosBackofficeConfig:
    """Session-authenticated OnlinePOS back-office credentials."""

    base_url: str
    firm_id: str | None
    cookie: str | None
    xsrf_token: str | None
    timeout_seconds: float

    def missing(self) -> list[str]:
        missing: list[str] = []
        if not self.firm_id:
            missing.append("POS_FIRMAID")
        if not self.cookie:
            missing.append("POS_BO_COOKIE")
        if not self.xsrf_token:
            missing.append("POS_BO_XSRF")
        return missing

    def is_configured(self) -> bool:
        return not self.missing()


class AppSettings(BaseSettings):
    """Configuration options for the dashboard backend."""

    app_name: str = Field(default="Restaurant Dashboard")
    timezone: str = Field(default=DEFAULT_TIMEZONE)
    log_level: str = Field(default="INFO")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./dashboard.db",
        description="SQLAlchemy async database URL.",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )

    pos_api_base_url: str = Field(default=DEFAULT_POS_API_BASE_URL)
    pos_api_token: str | None = Field(default=None)
    pos_firmaid: str | None = Field(default=None)
    pos_bo_base_url: str = Field(default=DEFAULT_POS_BO_BASE_URL)
    pos_bo_cookie: str | None = Field(default=None)
    pos_bo_xsrf: str | None = Field(default=None)
    pos_timeout_seconds: float = Field(default=15.0, gt=0)

    pos_max_window_days: int = Field(default=2, ge=1, description="Vendor maximum query window in days.")
    pos_max_concurrency: int = Field(default=3, ge=1)
    pos_range_cache_ttl_seconds: float = Field(default=300.0, ge=0)
    kpi_cache_ttl_seconds: float = Field(default=30.0, ge=0)
    today_fallback_lookback_days: int = Field(default=3, ge=1)

    uplift_pct: float = Field(
        default=15.74,
        description="Holiday pay and overhead loading applied to raw labor pay.",
    )

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="restaurant-dashboard")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def pos_api(self) -> PosApiConfig:
        return PosApiConfig(
            base_url=self.pos_api_base_url.rstrip("/"),
            token=self.pos_api_token or None,
            firm_id=self.pos_firmaid or None,
            timeout_seconds=self.pos_timeout_seconds,
        )

    def pos_backoffice(self) -> PosBackofficeConfig:
        return PosBackofficeConfig(
            base_url=self.pos_bo_base_url.rstrip("/"),
            firm_id=self.pos_firmaid or None,
            cookie=self.pos_bo_cookie or None,
            xsrf_token=self.pos_bo_xsrf or None,
            timeout_seconds=self.pos_timeout_seconds,
        )

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"pos_api_token", "pos_bo_cookie", "pos_bo_xsrf"}
        return {k: ("***" if k in hidden and v else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_TIMEZONE",
    "PosApiConfig",
    "PosBackofficeConfig",
    "get_settings",
]
