"""Services package."""

from src.services.hebcal import HebrewCalendarError, HebrewCalendarService
from src.services.storage import (
    AuditStorageInterface,
    BirthdayStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBirthdayStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBirthdayStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Calendar services
    "HebrewCalendarError",
    "HebrewCalendarService",
    # Storage services
    "AuditStorageInterface",
    "BirthdayStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBirthdayStorage",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "InMemoryBirthdayStorage",
    "NotFoundError",
    "StorageError",
]
