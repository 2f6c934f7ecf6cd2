"""Configuration package for the CRM sync service."""

from .settings import (
    SupabaseSettings,
    GoogleDriveSettings,
    DatabaseSettings,
    SyncSettings,
    WebSettings,
    LoggingSettings,
    AppSettings,
    get_settings,
    reset_settings
)

__all__ = [
    "SupabaseSettings",
    "GoogleDriveSettings",
    "DatabaseSettings",
    "SyncSettings",
    "WebSettings",
    "LoggingSettings",
    "AppSettings",
    "get_settings",
    "reset_settings"
]
