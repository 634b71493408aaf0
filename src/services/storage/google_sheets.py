"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Family members can view and edit the birthday list directly in Sheets
2. A birthday list is a few hundred rows; no database is needed
3. Archived rows stay visible in their own tab

TRADEOFFS:
- No transactions (archive = append to archive sheet, then delete; in that order)
- Every read loads the whole sheet; search and sort happen in Python

Active and archived birthdays live in two worksheets with the same columns.
Enriched fields are never written.
"""

import json
from datetime import date, datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from src.config import get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.birthday import Birthday, Gender
from src.services.storage.interface import (
    AuditStorageInterface,
    BirthdayStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for the Birthdays and ArchivedBirthdays sheets
BIRTHDAY_COLUMNS = [
    "id",
    "first_name",
    "last_name",
    "birth_date",
    "after_sunset",
    "gender",
    "needs_gender_verification",
    "needs_sunset_verification",
    "is_duplicate",
    "duplicate_verified",
    "archived",
    "created_by",
    "created_at",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _bool_cell(value: Optional[bool]) -> str:
    if value is None:
        return ""
    return "TRUE" if value else "FALSE"


def _parse_bool_cell(value: str) -> Optional[bool]:
    if not value:
        return None
    return value.strip().lower() == "true"


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            logger.info("creating_worksheet", title=title)
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_birthdays_sheet(self) -> gspread.Worksheet:
        """Get or create the Birthdays worksheet."""
        return self._get_or_create(
            self._settings.birthdays_sheet_name, BIRTHDAY_COLUMNS, rows=1000
        )

    def get_archive_sheet(self) -> gspread.Worksheet:
        """Get or create the archived birthdays worksheet."""
        return self._get_or_create(
            self._settings.archive_sheet_name, BIRTHDAY_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        # More rows for audit log
        return self._get_or_create(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsBirthdayStorage(BirthdayStorageInterface):
    """
    Google Sheets implementation of birthday storage.

    One birthday per row. Dates are ISO strings, booleans TRUE/FALSE,
    an unverified after_sunset is an empty cell.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _birthday_to_row(self, birthday: Birthday) -> list:
        """Convert a Birthday to a spreadsheet row."""
        return [
            birthday.id,
            birthday.first_name,
            birthday.last_name,
            birthday.birth_date.isoformat(),
            _bool_cell(birthday.after_sunset),
            birthday.gender.value,
            _bool_cell(birthday.needs_gender_verification),
            _bool_cell(birthday.needs_sunset_verification),
            _bool_cell(birthday.is_duplicate),
            _bool_cell(birthday.duplicate_verified),
            _bool_cell(birthday.archived),
            birthday.created_by,
            birthday.created_at.isoformat(),
            birthday.updated_at.isoformat(),
        ]

    def _row_to_birthday(self, row: list) -> Birthday:
        """Convert a spreadsheet row to a Birthday."""
        # Handle missing columns gracefully
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return Birthday(
            id=safe_get(0),
            first_name=safe_get(1),
            last_name=safe_get(2),
            birth_date=date.fromisoformat(safe_get(3)),
            after_sunset=_parse_bool_cell(safe_get(4)),
            gender=Gender(safe_get(5, Gender.UNKNOWN.value)),
            needs_gender_verification=bool(_parse_bool_cell(safe_get(6))),
            needs_sunset_verification=bool(_parse_bool_cell(safe_get(7))),
            is_duplicate=bool(_parse_bool_cell(safe_get(8))),
            duplicate_verified=bool(_parse_bool_cell(safe_get(9))),
            archived=bool(_parse_bool_cell(safe_get(10))),
            created_by=safe_get(11, "local"),
            created_at=datetime.fromisoformat(safe_get(12)),
            updated_at=datetime.fromisoformat(safe_get(13)),
        )

    def _find_row(self, sheet: gspread.Worksheet, birthday_id: str) -> tuple[int, Optional[list]]:
        """Return (1-based row index, row) for an ID, or (0, None)."""
        all_rows = sheet.get_all_values()
        # Start from 2 (row 1 is header)
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == birthday_id:
                return idx, row
        return 0, None

    def _read_sheet(self, sheet: gspread.Worksheet) -> list[Birthday]:
        birthdays = []
        for row in sheet.get_all_values()[1:]:  # Skip header
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                birthdays.append(self._row_to_birthday(row))
            except Exception as e:
                logger.warning("skipping_malformed_row", row_id=row[0], error=str(e))
        return birthdays

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def save_birthday(self, birthday: Birthday) -> bool:
        """Save a new birthday to Google Sheets."""
        try:
            sheet = self._client.get_birthdays_sheet()
            _, existing = self._find_row(sheet, birthday.id)
            if existing is not None:
                raise DuplicateError(f"Birthday already exists: {birthday.id}")
            sheet.append_row(self._birthday_to_row(birthday), value_input_option="RAW")
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save birthday: {e}")

    async def get_birthday(self, birthday_id: str) -> Optional[Birthday]:
        """Retrieve an active birthday by its ID."""
        try:
            sheet = self._client.get_birthdays_sheet()
            _, row = self._find_row(sheet, birthday_id)
            return self._row_to_birthday(row) if row is not None else None
        except Exception as e:
            raise StorageError(f"Failed to get birthday: {e}")

    async def update_birthday(self, birthday: Birthday) -> bool:
        """Update an existing birthday."""
        try:
            sheet = self._client.get_birthdays_sheet()
            idx, row = self._find_row(sheet, birthday.id)
            if row is None:
                raise NotFoundError(f"Birthday not found: {birthday.id}")

            new_row = self._birthday_to_row(birthday)
            # Update each cell in the row
            for col_idx, value in enumerate(new_row, start=1):
                sheet.update_cell(idx, col_idx, value)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update birthday: {e}")

    async def delete_birthday(self, birthday_id: str) -> bool:
        """Delete a birthday by ID."""
        try:
            sheet = self._client.get_birthdays_sheet()
            idx, row = self._find_row(sheet, birthday_id)
            if row is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete birthday: {e}")

    async def list_birthdays(self, archived: bool = False) -> list[Birthday]:
        """List active or archived birthdays."""
        try:
            if archived:
                sheet = self._client.get_archive_sheet()
            else:
                sheet = self._client.get_birthdays_sheet()
            return self._read_sheet(sheet)
        except Exception as e:
            raise StorageError(f"Failed to list birthdays: {e}")

    async def _move(self, birthday_id: str, archived: bool) -> bool:
        if archived:
            source = self._client.get_birthdays_sheet()
            target = self._client.get_archive_sheet()
        else:
            source = self._client.get_archive_sheet()
            target = self._client.get_birthdays_sheet()

        idx, row = self._find_row(source, birthday_id)
        if row is None:
            label = "Birthday" if archived else "Archived birthday"
            raise NotFoundError(f"{label} not found: {birthday_id}")

        birthday = self._row_to_birthday(row).model_copy(
            update={"archived": archived, "updated_at": datetime.utcnow()}
        )
        # Append before delete: a failure in between leaves a copy, never a loss.
        target.append_row(self._birthday_to_row(birthday), value_input_option="RAW")
        source.delete_rows(idx)
        return True

    async def archive_birthday(self, birthday_id: str) -> bool:
        """Move a birthday to the archive sheet."""
        try:
            return await self._move(birthday_id, archived=True)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to archive birthday: {e}")

    async def restore_birthday(self, birthday_id: str) -> bool:
        """Move a birthday back from the archive sheet."""
        try:
            return await self._move(birthday_id, archived=False)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to restore birthday: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        events = []
        for row in self._client.get_audit_sheet().get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception as e:
                logger.warning("skipping_malformed_audit_row", row_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning("audit_write_failed", event_id=str(event.event_id), error=str(e))
            return False

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                event for event in self._read_events()
                if event.entity_type == entity_type and event.entity_id == entity_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
