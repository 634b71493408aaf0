"""
Main Orchestrator for the Birthday & Gelt Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Birthday list (validate → persist → enrich → audit)
2. Gelt calculator (import roster → calculate → export)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is persisted without passing validation
- Enriched calendar fields are recomputed on every read, never stored
- Every change is audited
- Every failure surfaces as a BirthdayOperationError with a code the UI
  can act on

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import BinaryIO, Iterable, Optional, Union
from uuid import UUID

import structlog

from src.audit import AuditLogger, create_correlation_id
from src.config import get_settings
from src.gelt import (
    GeltImportError,
    GeltSession,
    build_export,
    children_from_birthdays,
    export_to_excel,
    export_to_json,
    read_children_file,
)
from src.models.birthday import (
    BatchOperationResult,
    Birthday,
    BirthdayFilters,
    Gender,
    NewBirthday,
)
from src.models.gelt import BudgetConfig, Child, ImportReport
from src.queries import filter_birthdays
from src.services.hebcal import HebrewCalendarError, HebrewCalendarService
from src.services.storage import (
    BirthdayStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBirthdayStorage,
    GoogleSheetsClient,
    InMemoryBirthdayStorage,
    NotFoundError,
    StorageError,
)
from src.validation import (
    BirthdayImportError,
    BirthdayValidator,
    parse_csv_row,
    read_birthday_rows,
)


logger = structlog.get_logger(__name__)

# created_by marker for rows that came from a CSV import; any owner may delete them
IMPORTED_VIA_CSV = "IMPORTED_VIA_CSV"


class BirthdayErrorCode(str, Enum):
    NOT_FOUND = "BIRTHDAY_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    OPERATION_FAILED = "OPERATION_FAILED"
    BATCH_OPERATION_FAILED = "BATCH_OPERATION_FAILED"


class BirthdayOperationError(Exception):
    """A birthday operation failed; `code` says how."""

    def __init__(self, message: str, code: BirthdayErrorCode):
        super().__init__(message)
        self.message = message
        self.code = code


class BirthdayFlow:
    """
    Orchestrates every operation on the birthday list.

    Flow for writes:
    1. Validate → Two-stage validation
    2. Flag → duplicates, missing gender, missing sunset info
    3. Persist → storage
    4. Audit → one event per change
    5. Enrich → Hebrew date, next birthdays, age

    Reads always return enriched birthdays.
    """

    def __init__(
        self,
        storage: BirthdayStorageInterface,
        calendar: Optional[HebrewCalendarService] = None,
        validator: Optional[BirthdayValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        owner_id: Optional[str] = None,
    ):
        self._storage = storage
        self._calendar = calendar or HebrewCalendarService(
            next_birthdays_count=get_settings().calendar.next_birthdays_count
        )
        self._validator = validator or BirthdayValidator()
        self._audit_logger = audit_logger
        self._owner_id = owner_id or get_settings().app.owner_id

    @property
    def validator(self) -> BirthdayValidator:
        return self._validator

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    def enrich(self, birthday: Birthday, today: Optional[date] = None) -> Birthday:
        """
        Compute Hebrew date, upcoming Hebrew birthdays and age.

        Raises:
            BirthdayOperationError: the date could not be converted
        """
        today = today or date.today()
        after_sunset = bool(birthday.after_sunset)
        try:
            hebrew_date = self._calendar.to_hebrew(birthday.birth_date, after_sunset)
            next_birthdays = self._calendar.next_birthdays(
                birthday.birth_date, after_sunset, today=today
            )
        except HebrewCalendarError as e:
            logger.error("enrichment_failed", birthday_id=birthday.id, error=str(e))
            raise BirthdayOperationError(str(e), BirthdayErrorCode.OPERATION_FAILED)

        return birthday.model_copy(update={
            "hebrew_date": hebrew_date.hebrew,
            "next_birthday": next_birthdays[0] if next_birthdays else None,
            "next_birthdays": next_birthdays,
            "age": max(today.year - birthday.birth_date.year, 0),
        })

    def _enrich_all(self, birthdays: Iterable[Birthday], today: Optional[date]) -> list[Birthday]:
        enriched = []
        for birthday in birthdays:
            try:
                enriched.append(self.enrich(birthday, today))
            except BirthdayOperationError:
                # Keep the record visible even without calendar fields
                enriched.append(birthday)
        return enriched

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _validate(
        self,
        data: NewBirthday,
        entity_id: Optional[str],
        correlation_id: Optional[UUID],
    ) -> None:
        result = self._validator.validate(data)
        if result.is_valid:
            return

        errors = result.error_messages
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                errors=errors,
                entity_id=entity_id,
                correlation_id=correlation_id,
            )
        raise BirthdayOperationError(", ".join(errors), BirthdayErrorCode.VALIDATION_FAILED)

    async def _storage_failed(
        self,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID],
    ) -> BirthdayOperationError:
        logger.error("storage_operation_failed", operation=operation, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        return BirthdayOperationError(str(error), BirthdayErrorCode.OPERATION_FAILED)

    async def _get_existing(self, birthday_id: str) -> Birthday:
        try:
            existing = await self._storage.get_birthday(birthday_id)
        except StorageError as e:
            raise await self._storage_failed("get_birthday", e, None)
        if existing is None:
            raise BirthdayOperationError("Birthday not found", BirthdayErrorCode.NOT_FOUND)
        return existing

    async def _save_changes(
        self,
        birthday: Birthday,
        changed_fields: list[str],
        correlation_id: Optional[UUID],
    ) -> Birthday:
        updated = birthday.model_copy(update={"updated_at": datetime.utcnow()})
        try:
            await self._storage.update_birthday(updated)
        except NotFoundError:
            raise BirthdayOperationError("Birthday not found", BirthdayErrorCode.NOT_FOUND)
        except StorageError as e:
            raise await self._storage_failed("update_birthday", e, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_birthday_updated(
                birthday_id=updated.id,
                changed_fields=changed_fields,
                correlation_id=correlation_id,
            )
        return self.enrich(updated)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_birthday(
        self,
        data: NewBirthday,
        created_by: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Birthday:
        """
        Validate and store a new birthday.

        Possible duplicates (same name and birth date) are stored and
        flagged, never rejected.
        """
        correlation_id = correlation_id or create_correlation_id()
        logger.info("add_birthday_started", first_name=data.first_name, last_name=data.last_name)

        await self._validate(data, entity_id=None, correlation_id=correlation_id)

        try:
            is_duplicate = await self._storage.birthday_exists(
                data.first_name, data.last_name, data.birth_date
            )
            birthday = Birthday(
                first_name=data.first_name,
                last_name=data.last_name,
                birth_date=data.birth_date,
                after_sunset=data.after_sunset,
                gender=data.gender,
                needs_gender_verification=data.gender == Gender.UNKNOWN,
                needs_sunset_verification=data.after_sunset is None,
                is_duplicate=is_duplicate,
                created_by=created_by or self._owner_id,
            )
            await self._storage.save_birthday(birthday)
        except StorageError as e:
            raise await self._storage_failed("save_birthday", e, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_birthday_added(
                birthday_id=birthday.id,
                name=birthday.full_name,
                is_duplicate=is_duplicate,
                correlation_id=correlation_id,
            )
        logger.info("add_birthday_succeeded", birthday_id=birthday.id, is_duplicate=is_duplicate)

        return self.enrich(birthday)

    async def add_birthdays(
        self,
        items: Iterable[NewBirthday],
        created_by: str = IMPORTED_VIA_CSV,
        correlation_id: Optional[UUID] = None,
    ) -> BatchOperationResult:
        """Add several birthdays; one bad item never stops the others."""
        correlation_id = correlation_id or create_correlation_id()
        success_count = 0
        errors = []

        for index, data in enumerate(items, start=1):
            try:
                await self.add_birthday(data, created_by=created_by, correlation_id=correlation_id)
                success_count += 1
            except BirthdayOperationError as e:
                errors.append(f"Row {index}: {e.message}")

        if self._audit_logger:
            await self._audit_logger.log_birthdays_imported(
                imported_count=success_count,
                rejected_count=len(errors),
                correlation_id=correlation_id,
            )

        return BatchOperationResult(
            success=not errors,
            success_count=success_count,
            errors=errors,
        )

    async def import_csv(
        self,
        file: Union[bytes, BinaryIO],
        correlation_id: Optional[UUID] = None,
    ) -> BatchOperationResult:
        """
        Import a birthday CSV (First Name, Last Name, Birthday DD/MM/YYYY,
        After Sunset yes/no, Gender).

        Rows that cannot be parsed are reported in `errors`; the rest are added.
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            rows = read_birthday_rows(file)
        except BirthdayImportError as e:
            raise BirthdayOperationError(str(e), BirthdayErrorCode.VALIDATION_FAILED)

        parsed = []
        errors = []
        for row_number, row in enumerate(rows, start=1):
            birthday, error = parse_csv_row(row, row_number)
            if error:
                errors.append(error)
            else:
                parsed.append(birthday)

        result = await self.add_birthdays(parsed, correlation_id=correlation_id)
        all_errors = errors + result.errors
        return BatchOperationResult(
            success=not all_errors,
            success_count=result.success_count,
            errors=all_errors,
        )

    async def update_birthday(
        self,
        birthday_id: str,
        data: NewBirthday,
        correlation_id: Optional[UUID] = None,
    ) -> Birthday:
        """Replace the editable fields of a birthday."""
        correlation_id = correlation_id or create_correlation_id()
        await self._validate(data, entity_id=birthday_id, correlation_id=correlation_id)

        existing = await self._get_existing(birthday_id)

        changes = {
            "first_name": data.first_name,
            "last_name": data.last_name,
            "birth_date": data.birth_date,
            "after_sunset": data.after_sunset,
            "gender": data.gender,
        }
        changed_fields = [
            field for field, value in changes.items()
            if getattr(existing, field) != value
        ]

        update = dict(changes)
        update["needs_gender_verification"] = data.gender == Gender.UNKNOWN
        update["needs_sunset_verification"] = data.after_sunset is None

        if {"first_name", "last_name", "birth_date"} & set(changed_fields):
            try:
                update["is_duplicate"] = await self._storage.birthday_exists(
                    data.first_name, data.last_name, data.birth_date, exclude_id=birthday_id
                )
            except StorageError as e:
                raise await self._storage_failed("birthday_exists", e, correlation_id)
            update["duplicate_verified"] = False

        return await self._save_changes(
            existing.model_copy(update=update), changed_fields, correlation_id
        )

    async def verify_duplicate(
        self,
        birthday_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Birthday:
        """The user confirmed a flagged duplicate is a distinct person."""
        existing = await self._get_existing(birthday_id)
        birthday = await self._save_changes(
            existing.model_copy(update={"duplicate_verified": True}),
            ["duplicate_verified"],
            correlation_id,
        )
        if self._audit_logger:
            await self._audit_logger.log_duplicate_verified(
                birthday_id=birthday_id,
                correlation_id=correlation_id,
            )
        return birthday

    async def set_after_sunset(
        self,
        birthday_id: str,
        after_sunset: bool,
        correlation_id: Optional[UUID] = None,
    ) -> Birthday:
        existing = await self._get_existing(birthday_id)
        return await self._save_changes(
            existing.model_copy(update={
                "after_sunset": after_sunset,
                "needs_sunset_verification": False,
            }),
            ["after_sunset"],
            correlation_id,
        )

    async def set_gender(
        self,
        birthday_id: str,
        gender: Gender,
        correlation_id: Optional[UUID] = None,
    ) -> Birthday:
        existing = await self._get_existing(birthday_id)
        return await self._save_changes(
            existing.model_copy(update={
                "gender": gender,
                "needs_gender_verification": gender == Gender.UNKNOWN,
            }),
            ["gender"],
            correlation_id,
        )

    async def archive_birthday(
        self,
        birthday_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        try:
            await self._storage.archive_birthday(birthday_id)
        except NotFoundError:
            raise BirthdayOperationError("Birthday not found", BirthdayErrorCode.NOT_FOUND)
        except StorageError as e:
            raise await self._storage_failed("archive_birthday", e, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_birthday_archived(
                birthday_id=birthday_id,
                correlation_id=correlation_id,
            )

    async def restore_birthday(
        self,
        birthday_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        try:
            await self._storage.restore_birthday(birthday_id)
        except NotFoundError:
            raise BirthdayOperationError("Archived birthday not found", BirthdayErrorCode.NOT_FOUND)
        except StorageError as e:
            raise await self._storage_failed("restore_birthday", e, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_birthday_restored(
                birthday_id=birthday_id,
                correlation_id=correlation_id,
            )

    async def delete_birthdays(
        self,
        birthday_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> BatchOperationResult:
        """
        Delete several birthdays.

        A record may be deleted by its creator, or by anyone when it came
        from a CSV import. Missing or foreign records end up in failed_ids.

        Raises:
            BirthdayOperationError: UNAUTHORIZED when none of the records
                may be deleted, BATCH_OPERATION_FAILED when storage failed
                and nothing was deleted
        """
        correlation_id = correlation_id or create_correlation_id()
        deleted_ids = []
        failed_ids = []
        errors = []
        unauthorized = 0
        storage_failures = 0

        for birthday_id in birthday_ids:
            try:
                existing = await self._storage.get_birthday(birthday_id)
                if existing is None:
                    logger.warning("delete_target_missing", birthday_id=birthday_id)
                    failed_ids.append(birthday_id)
                    errors.append(f"{birthday_id}: not found")
                    continue
                if existing.created_by not in ("", self._owner_id, IMPORTED_VIA_CSV):
                    unauthorized += 1
                    failed_ids.append(birthday_id)
                    errors.append(f"{birthday_id}: not authorized")
                    continue
                await self._storage.delete_birthday(birthday_id)
                deleted_ids.append(birthday_id)
            except StorageError as e:
                logger.error("delete_failed", birthday_id=birthday_id, error=str(e))
                storage_failures += 1
                failed_ids.append(birthday_id)
                errors.append(f"{birthday_id}: {e}")

        if self._audit_logger:
            await self._audit_logger.log_birthdays_deleted(
                deleted_ids=deleted_ids,
                failed_ids=failed_ids,
                correlation_id=correlation_id,
            )

        if birthday_ids and unauthorized == len(birthday_ids):
            raise BirthdayOperationError(
                "Not authorized to delete any of the selected birthdays",
                BirthdayErrorCode.UNAUTHORIZED,
            )
        if storage_failures and not deleted_ids:
            raise BirthdayOperationError(
                "; ".join(errors),
                BirthdayErrorCode.BATCH_OPERATION_FAILED,
            )

        return BatchOperationResult(
            success=not failed_ids,
            success_count=len(deleted_ids),
            failed_ids=failed_ids,
            errors=errors,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_birthdays(
        self,
        filters: Optional[BirthdayFilters] = None,
        today: Optional[date] = None,
    ) -> list[Birthday]:
        """Active birthdays, enriched, then filtered and sorted."""
        try:
            stored = await self._storage.list_birthdays()
        except StorageError as e:
            raise await self._storage_failed("list_birthdays", e, None)

        enriched = self._enrich_all(stored, today)
        return filter_birthdays(enriched, filters or BirthdayFilters(), today)

    async def list_archived(self, today: Optional[date] = None) -> list[Birthday]:
        try:
            stored = await self._storage.list_birthdays(archived=True)
        except StorageError as e:
            raise await self._storage_failed("list_archived", e, None)
        return self._enrich_all(stored, today)


class GeltFlow:
    """
    Wires roster import, export and auditing around one GeltSession.

    The session itself is synchronous; only the audit calls are async.
    """

    def __init__(
        self,
        session: Optional[GeltSession] = None,
        audit_logger: Optional[AuditLogger] = None,
        currency: str = "₪",
    ):
        self._session = session or GeltSession()
        self._audit_logger = audit_logger
        self._currency = currency

    @property
    def session(self) -> GeltSession:
        return self._session

    async def import_file(
        self,
        file: Union[bytes, BinaryIO],
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> ImportReport:
        """
        Import a CSV/XLSX roster.

        When no row is usable the roster is left unchanged and the report
        says why each row was rejected.

        Raises:
            GeltImportError: the file could not be read at all
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            report = read_children_file(file, filename)
        except GeltImportError as e:
            logger.error("gelt_import_failed", source=filename, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="gelt_import_failed",
                    error_message=str(e),
                    details={"source": filename},
                    correlation_id=correlation_id,
                )
            raise

        if not report.has_data:
            logger.warning("gelt_import_empty", source=filename, rejected=report.rejected_count)
            if self._audit_logger:
                await self._audit_logger.log_gelt_import_rejected(
                    source=filename,
                    rejected_count=report.rejected_count,
                    correlation_id=correlation_id,
                )
            return report

        self._session.set_children(report.children)
        if self._audit_logger:
            await self._audit_logger.log_gelt_roster_imported(
                source=filename,
                accepted_count=report.accepted_count,
                rejected_count=report.rejected_count,
                correlation_id=correlation_id,
            )
        return report

    async def import_from_birthdays(
        self,
        birthdays: Iterable[Birthday],
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Child]:
        """Use selected birthday-list entries as the roster."""
        children = children_from_birthdays(birthdays, today)
        self._session.set_children(children)
        if self._audit_logger:
            await self._audit_logger.log_gelt_roster_imported(
                source="birthday_list",
                accepted_count=len(children),
                rejected_count=0,
                correlation_id=correlation_id,
            )
        return children

    async def _log_export(self, export_format: str) -> None:
        if self._audit_logger:
            calculation = self._session.calculation
            await self._audit_logger.log_gelt_exported(
                export_format=export_format,
                children_count=len(self._session.children),
                total=str(calculation.total_required),
            )

    async def export_json(self) -> str:
        content = export_to_json(build_export(self._session))
        await self._log_export("json")
        return content

    async def export_excel(self) -> bytes:
        content = export_to_excel(build_export(self._session), currency=self._currency)
        await self._log_export("xlsx")
        return content


def create_gelt_flow(audit_logger: Optional[AuditLogger] = None) -> GeltFlow:
    """One calculator per user session, seeded from GELT_* settings."""
    settings = get_settings().gelt
    session = GeltSession(
        default_config=BudgetConfig(
            participants=settings.default_participants,
            allowed_overflow_percentage=Decimal(str(settings.default_overflow_percentage)),
        ),
        amount_step=settings.amount_step,
    )
    return GeltFlow(
        session=session,
        audit_logger=audit_logger,
        currency=settings.currency_symbol,
    )


def create_app_components(
    use_storage: bool = True,
) -> tuple[BirthdayFlow, AuditLogger, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.

    Returns:
        (birthday_flow, audit_logger, sheets_client)
    """
    sheets_client = None
    birthday_storage: BirthdayStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            birthday_storage = GoogleSheetsBirthdayStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            birthday_storage = InMemoryBirthdayStorage()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        birthday_storage = InMemoryBirthdayStorage()
        audit_logger = AuditLogger()  # Local-only logging

    birthday_flow = BirthdayFlow(
        storage=birthday_storage,
        audit_logger=audit_logger,
    )

    return birthday_flow, audit_logger, sheets_client
