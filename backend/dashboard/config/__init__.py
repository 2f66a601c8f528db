"""Configuration package for the dashboard backend."""

from .settings import AppSettings, PosApiConfig, PosBackofficeConfig, get_settings

__all__ = ["AppSettings", "PosApiConfig", "PosBackofficeConfig", "get_settings"]
