"""
Configuration Management for the Birthday & Gelt Tracker

Every knob is read from environment variables (or .env) with pydantic-settings.

DESIGN DECISION: Settings are grouped by prefix (GOOGLE_SHEETS_, GELT_,
CALENDAR_) so that a missing Google Sheets setup never prevents the
calculator or the calendar from loading.
"""

import warnings
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    birthdays_sheet_name: str = Field(
        default="Birthdays",
        description="Name of the sheet for active birthdays"
    )
    archive_sheet_name: str = Field(
        default="ArchivedBirthdays",
        description="Name of the sheet for archived birthdays"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing file only warns; the app falls back to in-memory storage."""
        if not Path(v).exists():
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class GeltSettings(BaseSettings):
    """Defaults for the gelt budget calculator."""

    model_config = SettingsConfigDict(
        env_prefix="GELT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_participants: int = Field(
        default=10,
        ge=1,
        description="Number of participants sharing the budget"
    )
    default_overflow_percentage: float = Field(
        default=10.0,
        ge=0.0,
        le=100.0,
        description="How far the total may exceed the target before warning"
    )
    amount_step: int = Field(
        default=5,
        ge=1,
        description="Per-child amounts are snapped to multiples of this value"
    )
    currency_symbol: str = Field(
        default="₪",
        description="Currency symbol used in summaries and exports"
    )


class CalendarSettings(BaseSettings):
    """Hebrew calendar enrichment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CALENDAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    next_birthdays_count: int = Field(
        default=10,
        ge=1,
        le=50,
        description="How many upcoming Hebrew birthdays to compute per person"
    )
    max_age_years: int = Field(
        default=150,
        ge=1,
        description="Birth dates further in the past than this are rejected"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Environment, owner identity and upload limits.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    owner_id: str = Field(
        default="local",
        description="Identifier recorded as creator of new birthdays"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    supported_import_formats: str = Field(
        default="csv,xlsx",
        description="Comma-separated list of supported import formats"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Extensions accepted by the gelt roster uploader."""
        return [fmt.strip().lower() for fmt in self.supported_import_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Each group is built on access, so one bad group does not hide the others.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gelt(self) -> GeltSettings:
        return GeltSettings()

    @property
    def calendar(self) -> CalendarSettings:
        return CalendarSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() after changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Shown on the Settings page.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "gelt", "calendar", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
