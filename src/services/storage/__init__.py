"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the persistent backend; the in-memory backend serves
tests and runs without credentials.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    BirthdayStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBirthdayStorage,
    GoogleSheetsClient,
)
from src.services.storage.memory import InMemoryAuditStorage, InMemoryBirthdayStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BirthdayStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBirthdayStorage",
    "GoogleSheetsClient",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBirthdayStorage",
]
