"""OnlinePOS clients for venue revenue.

Two endpoint variants exist: the token-authenticated koncern revenue API,
which is used for all KPI aggregation, and the session-authenticated
back-office reports API, which needs a browser cookie plus XSRF token.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

import httpx

from dashboard.config import PosApiConfig, PosBackofficeConfig
from dashboard.core.errors import ConfigError, UpstreamError

logger = logging.getLogger(__name__)

VENUE_TARGET_PREFIX = "venue@"
_ENTRY_LIST_KEYS = ("entries", "location")


@dataclass(frozen=True)
class RevenueFetch:
    total: float
    raw_entry_count: int
    entry_count: int


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_revenue(value: Any) -> float:
    """Coerce a vendor revenue value to float, treating garbage as 0."""

    number = _to_number(value)
    return number if number is not None else 0.0


def normalize_revenue_entries(payload: Any) -> list[dict[str, Any]]:
    """Flatten every known response shape into a list of entry dicts.

    The vendor returns a bare list, ``{"entries": [...]}`` or
    ``{"location": [...]}`` depending on the account, and each item may carry
    its fields directly or under an ``entry`` key.
    """

    items: Any = []
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        for key in _ENTRY_LIST_KEYS:
            if isinstance(payload.get(key), list):
                items = payload[key]
                break

    entries: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        inner = item.get("entry")
        entries.append(inner if isinstance(inner, dict) else item)
    return entries


def firm_number(firm_id: str) -> float | None:
    raw = firm_id.strip()
    if raw.startswith(VENUE_TARGET_PREFIX):
        raw = raw[len(VENUE_TARGET_PREFIX):]
    return _to_number(raw)


def venue_target(firm_id: str) -> str:
    raw = firm_id.strip()
    return raw if raw.startswith(VENUE_TARGET_PREFIX) else f"{VENUE_TARGET_PREFIX}{raw}"


def _raise_for_status(response: httpx.Response, url: str) -> None:
    if response.is_success:
        return
    body = response.text
    logger.error("OnlinePOS request to %s failed with %s: %s", url, response.status_code, body[:500])
    raise UpstreamError(
        f"OnlinePOS request failed ({response.status_code})",
        status_code=response.status_code,
        body=body,
    )


class OnlinePosClient:
    """Koncern revenue client for one venue.

    Callers must keep ``to_unix - from_unix`` within the vendor's window; the
    client never splits ranges and never retries.
    """

    def __init__(self, config: PosApiConfig, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(config.timeout_seconds))
        self._owns_client = client is None

    @property
    def config(self) -> PosApiConfig:
        return self._config

    def is_configured(self) -> bool:
        return self._config.is_configured()

    def _require_config(self) -> tuple[str, str]:
        missing = self._config.missing()
        if missing:
            raise ConfigError(f"Missing {', '.join(missing)}")
        assert self._config.token is not None and self._config.firm_id is not None
        return self._config.token, self._config.firm_id

    async def fetch_revenue(self, from_unix: int, to_unix: int) -> RevenueFetch:
        token, firm_id = self._require_config()
        target = firm_number(firm_id)
        if target is None:
            raise ConfigError("POS_FIRMAID must be a numeric venue id")
        url = f"{self._config.base_url}/api/koncern/getKoncernRevenue/{from_unix}/{to_unix}"
        headers = {"token": token, "firmaid": firm_id, "Accept": "application/json"}

        try:
            response = await self._client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("OnlinePOS unreachable at %s: %s", url, exc)
            raise UpstreamError(f"Unable to reach OnlinePOS: {exc}") from exc
        _raise_for_status(response, url)

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(
                "OnlinePOS returned invalid JSON payload",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        entries = normalize_revenue_entries(payload)
        venue_entries = [entry for entry in entries if _to_number(entry.get("firmaid")) == target]
        total = sum(parse_revenue(entry.get("revenue")) for entry in venue_entries)
        logger.debug(
            "OnlinePOS %s-%s: %d entries, %d for venue, total %.2f",
            from_unix,
            to_unix,
            len(entries),
            len(venue_entries),
            total,
        )
        return RevenueFetch(total=total, raw_entry_count=len(entries), entry_count=len(venue_entries))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class OnlinePosBackofficeClient:
    """Back-office ``getBasicSales`` reports using an externally supplied session."""

    def __init__(self, config: PosBackofficeConfig, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(config.timeout_seconds))
        self._owns_client = client is None

    def is_configured(self) -> bool:
        return self._config.is_configured()

    def _headers(self) -> dict[str, str]:
        missing = self._config.missing()
        if missing:
            raise ConfigError(f"Missing {', '.join(missing)}")
        return {
            "Cookie": self._config.cookie or "",
            "X-XSRF-TOKEN": self._config.xsrf_token or "",
            "Accept": "application/json, text/plain, */*",
            "Origin": "https://bo.onlinepos.dk",
            "Referer": "https://bo.onlinepos.dk/",
            "X-Requested-With": "XMLHttpRequest",
        }

    async def basic_sales(self, **params: str | int) -> dict[str, Any]:
        """Call getBasicSales with ``date``, ``week_number``/``week_year``,
        ``month``/``month_year`` or ``year`` and return its ``data`` block."""

        headers = self._headers()
        assert self._config.firm_id is not None
        query: dict[str, str | int] = {"target": venue_target(self._config.firm_id), **params}
        url = f"{self._config.base_url}/reports/getBasicSales"
        try:
            response = await self._client.get(url, params=query, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("OnlinePOS back office unreachable at %s: %s", url, exc)
            raise UpstreamError(f"Unable to reach OnlinePOS back office: {exc}") from exc
        _raise_for_status(response, url)

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(
                "OnlinePOS back office returned invalid JSON payload",
                status_code=response.status_code,
                body=response.text,
            ) from exc
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise UpstreamError("OnlinePOS back office response has no data block", body=response.text)
        return data

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = [
    "OnlinePosBackofficeClient",
    "OnlinePosClient",
    "RevenueFetch",
    "firm_number",
    "normalize_revenue_entries",
    "parse_revenue",
    "venue_target",
]
