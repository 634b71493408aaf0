"""Hebrew calendar services package."""

from src.services.hebcal.calendar import (
    HebrewCalendarError,
    HebrewCalendarService,
    format_hebrew,
    gematria,
)

__all__ = [
    "HebrewCalendarError",
    "HebrewCalendarService",
    "format_hebrew",
    "gematria",
]
