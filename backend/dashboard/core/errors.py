"""Error taxonomy shared by providers, services and routes."""

from __future__ import annotations


class DashboardError(RuntimeError):
    """Base class for errors surfaced to API callers."""


class ConfigError(DashboardError):
    """Raised when a required credential or identifier is not configured."""


class ValidationError(DashboardError):
    """Raised when caller input is missing or malformed."""


class UpstreamError(DashboardError):
    """Raised when a vendor HTTP call fails or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ParseError(ValueError):
    """Raised when a single imported HTML row or value cannot be parsed."""


__all__ = ["DashboardError", "ConfigError", "ValidationError", "UpstreamError", "ParseError"]
