"""Configuration package."""

from src.config.settings import (
    AppSettings,
    CalendarSettings,
    GeltSettings,
    GoogleSheetsSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CalendarSettings",
    "GeltSettings",
    "GoogleSheetsSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
