"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a document database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations we need for birthday management.

Storage only ever sees the stored fields of a Birthday. Enriched fields
(Hebrew date, next birthdays, age) are computed by the caller.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from src.models.audit import AuditEvent
from src.models.birthday import Birthday


class BirthdayStorageInterface(ABC):
    """
    Abstract interface for birthday storage operations.

    Any storage implementation (Google Sheets, Firestore, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_birthday(self, birthday: Birthday) -> bool:
        """
        Save a new birthday.

        Returns:
            True if saved successfully

        Raises:
            DuplicateError: If a birthday with this ID already exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_birthday(self, birthday_id: str) -> Optional[Birthday]:
        """
        Retrieve an active (not archived) birthday by ID.

        Returns:
            The birthday if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_birthday(self, birthday: Birthday) -> bool:
        """
        Replace the stored fields of an existing birthday.

        Raises:
            NotFoundError: If the birthday doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_birthday(self, birthday_id: str) -> bool:
        """
        Delete a birthday by ID.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def list_birthdays(self, archived: bool = False) -> list[Birthday]:
        """
        List active birthdays, or archived ones when archived=True.
        """
        pass

    @abstractmethod
    async def archive_birthday(self, birthday_id: str) -> bool:
        """
        Move a birthday to the archive.

        Raises:
            NotFoundError: If the birthday doesn't exist
        """
        pass

    @abstractmethod
    async def restore_birthday(self, birthday_id: str) -> bool:
        """
        Move a birthday back from the archive.

        Raises:
            NotFoundError: If the archived birthday doesn't exist
        """
        pass

    async def birthday_exists(
        self,
        first_name: str,
        last_name: str,
        birth_date: date,
        exclude_id: Optional[str] = None,
    ) -> bool:
        """
        Check if a person with the same name and birth date exists
        (duplicate detection). Names are compared case-insensitively.
        """
        for existing in await self.list_birthdays():
            if exclude_id and existing.id == exclude_id:
                continue
            if (
                existing.first_name.lower() == first_name.lower()
                and existing.last_name.lower() == last_name.lower()
                and existing.birth_date == birth_date
            ):
                return True
        return False


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
