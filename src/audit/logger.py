"""
Audit Trail for the Birthday & Gelt Tracker

DESIGN DECISION: Birthday adds, edits, archives, restores, deletes and
imports are recorded, as are gelt roster imports and exports.
Each record carries the entity it touched and a correlation ID, so that
every row created by one CSV import can be found together.

Recording an event never fails the operation that produced it: if the
audit sheet is unreachable the event still reaches the local log.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder
from src.services.storage import AuditStorageInterface


# One JSON line per event; Hebrew names stay readable
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Writes audit events to the structlog output and, when configured,
    to the AuditLog worksheet.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Where events are persisted. None keeps them in the
                    local log only (offline / test mode).
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns False only when a configured backend rejected the event.
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def get_recent_events(self, limit: int = 20) -> list[AuditEvent]:
        """Newest events first; empty when nothing is persisted."""
        if not self._storage:
            return []
        try:
            return await self._storage.get_recent_events(limit=limit)
        except Exception as e:
            self._logger.error("audit_read_failed", error=str(e))
            return []

    async def log_birthday_added(
        self,
        birthday_id: str,
        name: str,
        is_duplicate: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new birthday."""
        await self.log(AuditEventBuilder.birthday_added(
            birthday_id=birthday_id,
            name=name,
            is_duplicate=is_duplicate,
            correlation_id=correlation_id,
        ))

    async def log_birthday_updated(
        self,
        birthday_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.birthday_updated(
            birthday_id=birthday_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    async def log_birthday_archived(
        self,
        birthday_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.birthday_archived(
            birthday_id=birthday_id,
            correlation_id=correlation_id,
        ))

    async def log_birthday_restored(
        self,
        birthday_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.birthday_restored(
            birthday_id=birthday_id,
            correlation_id=correlation_id,
        ))

    async def log_birthdays_deleted(
        self,
        deleted_ids: list[str],
        failed_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a batch delete, including the IDs that could not be deleted."""
        await self.log(AuditEventBuilder.birthdays_deleted(
            deleted_ids=deleted_ids,
            failed_ids=failed_ids,
            correlation_id=correlation_id,
        ))

    async def log_birthdays_imported(
        self,
        imported_count: int,
        rejected_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.birthdays_imported(
            imported_count=imported_count,
            rejected_count=rejected_count,
            correlation_id=correlation_id,
        ))

    async def log_duplicate_verified(
        self,
        birthday_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.duplicate_verified(
            birthday_id=birthday_id,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        errors: list[str],
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            errors=errors,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_gelt_roster_imported(
        self,
        source: str,
        accepted_count: int,
        rejected_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.gelt_roster_imported(
            source=source,
            accepted_count=accepted_count,
            rejected_count=rejected_count,
            correlation_id=correlation_id,
        ))

    async def log_gelt_import_rejected(
        self,
        source: str,
        rejected_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.gelt_import_rejected(
            source=source,
            rejected_count=rejected_count,
            correlation_id=correlation_id,
        ))

    async def log_gelt_exported(
        self,
        export_format: str,
        children_count: int,
        total: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.gelt_exported(
            export_format=export_format,
            children_count=children_count,
            total=total,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage backend failure."""
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Unexpected failures outside the storage layer."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """One ID per user action; a CSV import shares it across all its rows."""
    return uuid4()
