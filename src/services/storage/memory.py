"""
In-Memory Storage Implementation

Used by the test suite and when no Google Sheets credentials are
configured. Data lives as long as the process does.
"""

from typing import Optional

from src.models.audit import AuditEvent
from src.models.birthday import Birthday
from src.services.storage.interface import (
    AuditStorageInterface,
    BirthdayStorageInterface,
    DuplicateError,
    NotFoundError,
)


# Fields computed on read; never kept by storage.
ENRICHED_FIELDS = {"hebrew_date", "next_birthday", "next_birthdays", "age"}


def strip_enriched(birthday: Birthday) -> Birthday:
    return Birthday.model_validate(birthday.model_dump(exclude=ENRICHED_FIELDS))


class InMemoryBirthdayStorage(BirthdayStorageInterface):
    """Dictionary-backed birthday storage with a separate archive."""

    def __init__(self, birthdays: Optional[list[Birthday]] = None):
        self._active: dict[str, Birthday] = {}
        self._archived: dict[str, Birthday] = {}
        for birthday in birthdays or []:
            target = self._archived if birthday.archived else self._active
            target[birthday.id] = strip_enriched(birthday)

    async def save_birthday(self, birthday: Birthday) -> bool:
        if birthday.id in self._active or birthday.id in self._archived:
            raise DuplicateError(f"Birthday already exists: {birthday.id}")
        self._active[birthday.id] = strip_enriched(birthday)
        return True

    async def get_birthday(self, birthday_id: str) -> Optional[Birthday]:
        stored = self._active.get(birthday_id)
        return stored.model_copy() if stored else None

    async def update_birthday(self, birthday: Birthday) -> bool:
        if birthday.id not in self._active:
            raise NotFoundError(f"Birthday not found: {birthday.id}")
        self._active[birthday.id] = strip_enriched(birthday)
        return True

    async def delete_birthday(self, birthday_id: str) -> bool:
        return self._active.pop(birthday_id, None) is not None

    async def list_birthdays(self, archived: bool = False) -> list[Birthday]:
        source = self._archived if archived else self._active
        return [birthday.model_copy() for birthday in source.values()]

    async def archive_birthday(self, birthday_id: str) -> bool:
        birthday = self._active.pop(birthday_id, None)
        if birthday is None:
            raise NotFoundError(f"Birthday not found: {birthday_id}")
        self._archived[birthday_id] = birthday.model_copy(update={"archived": True})
        return True

    async def restore_birthday(self, birthday_id: str) -> bool:
        birthday = self._archived.pop(birthday_id, None)
        if birthday is None:
            raise NotFoundError(f"Archived birthday not found: {birthday_id}")
        self._active[birthday_id] = birthday.model_copy(update={"archived": False})
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            event for event in self._events
            if event.entity_type == entity_type and event.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        # Appended in order, so the newest is last
        return list(reversed(self._events))[:limit]
