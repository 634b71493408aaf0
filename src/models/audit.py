"""
Audit Models for the Birthday & Gelt Tracker

One AuditEvent per change to the birthday list or the gelt roster.
Events are shown on the Settings page and kept in the AuditLog worksheet.

DESIGN DECISION: The audit trail is append-only; rows are never edited.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Birthday list
    BIRTHDAY_ADDED = "birthday_added"
    BIRTHDAY_UPDATED = "birthday_updated"
    BIRTHDAY_ARCHIVED = "birthday_archived"
    BIRTHDAY_RESTORED = "birthday_restored"
    BIRTHDAYS_DELETED = "birthdays_deleted"
    BIRTHDAYS_IMPORTED = "birthdays_imported"
    DUPLICATE_VERIFIED = "duplicate_verified"
    VALIDATION_FAILED = "validation_failed"

    # Gelt calculator
    GELT_ROSTER_IMPORTED = "gelt_roster_imported"
    GELT_IMPORT_REJECTED = "gelt_import_rejected"
    GELT_EXPORTED = "gelt_exported"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    What happened, to which birthday or roster, and as part of which
    user action.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'birthday', 'gelt_roster')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all rows of one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Factory methods, one per event type, so callers never assemble
    descriptions and details by hand.

    Usage:
        event = AuditEventBuilder.birthday_added(birthday_id, name)
        event = AuditEventBuilder.gelt_exported("json", correlation_id)
    """

    @staticmethod
    def birthday_added(
        birthday_id: str,
        name: str,
        is_duplicate: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BIRTHDAY_ADDED,
            entity_type="birthday",
            entity_id=birthday_id,
            correlation_id=correlation_id,
            description=f"Birthday added: {name}",
            details={
                "name": name,
                "is_duplicate": is_duplicate,
            },
            is_user_action=True,
        )

    @staticmethod
    def birthday_updated(
        birthday_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BIRTHDAY_UPDATED,
            entity_type="birthday",
            entity_id=birthday_id,
            correlation_id=correlation_id,
            description=f"Birthday updated ({len(changed_fields)} fields)",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def birthday_archived(
        birthday_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BIRTHDAY_ARCHIVED,
            entity_type="birthday",
            entity_id=birthday_id,
            correlation_id=correlation_id,
            description="Birthday moved to the archive",
            is_user_action=True,
        )

    @staticmethod
    def birthday_restored(
        birthday_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BIRTHDAY_RESTORED,
            entity_type="birthday",
            entity_id=birthday_id,
            correlation_id=correlation_id,
            description="Birthday restored from the archive",
            is_user_action=True,
        )

    @staticmethod
    def birthdays_deleted(
        deleted_ids: list[str],
        failed_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BIRTHDAYS_DELETED,
            severity=AuditSeverity.WARNING if failed_ids else AuditSeverity.INFO,
            entity_type="birthday",
            correlation_id=correlation_id,
            description=f"Deleted {len(deleted_ids)} birthdays",
            details={
                "deleted_ids": deleted_ids,
                "failed_ids": failed_ids,
            },
            is_user_action=True,
        )

    @staticmethod
    def birthdays_imported(
        imported_count: int,
        rejected_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BIRTHDAYS_IMPORTED,
            entity_type="birthday",
            correlation_id=correlation_id,
            description=f"Imported {imported_count} birthdays",
            details={
                "imported_count": imported_count,
                "rejected_count": rejected_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def duplicate_verified(
        birthday_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_VERIFIED,
            entity_type="birthday",
            entity_id=birthday_id,
            correlation_id=correlation_id,
            description="Possible duplicate confirmed as a distinct person",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        errors: list[str],
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="birthday",
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(errors)} errors",
            details={"errors": errors},
        )

    @staticmethod
    def gelt_roster_imported(
        source: str,
        accepted_count: int,
        rejected_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GELT_ROSTER_IMPORTED,
            entity_type="gelt_roster",
            correlation_id=correlation_id,
            description=f"Gelt roster imported from {source}: {accepted_count} children",
            details={
                "source": source,
                "accepted_count": accepted_count,
                "rejected_count": rejected_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def gelt_import_rejected(
        source: str,
        rejected_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GELT_IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="gelt_roster",
            correlation_id=correlation_id,
            description=f"No valid rows in {source}",
            details={
                "source": source,
                "rejected_count": rejected_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def gelt_exported(
        export_format: str,
        children_count: int,
        total: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GELT_EXPORTED,
            entity_type="gelt_roster",
            correlation_id=correlation_id,
            description=f"Gelt distribution exported as {export_format}",
            details={
                "format": export_format,
                "children_count": children_count,
                "total": total,
            },
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
