"""
Integration tests for the birthday and gelt flows (in-memory storage).
"""

import asyncio
import json
import pytest
from datetime import date
from decimal import Decimal

from src.audit import AuditLogger
from src.gelt import GeltImportError, GeltSession
from src.models.audit import AuditEventType
from src.models.birthday import Birthday, BirthdayFilters, Gender, NewBirthday, SortField
from src.models.gelt import BudgetConfig
from src.orchestrator import (
    IMPORTED_VIA_CSV,
    BirthdayErrorCode,
    BirthdayFlow,
    BirthdayOperationError,
    GeltFlow,
)
from src.services.hebcal import HebrewCalendarService
from src.services.storage import InMemoryAuditStorage, InMemoryBirthdayStorage, StorageError
from src.validation import BirthdayValidator


OWNER = "owner@example.com"


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def storage():
    return InMemoryBirthdayStorage()


@pytest.fixture
def flow(storage, audit_storage):
    return BirthdayFlow(
        storage=storage,
        calendar=HebrewCalendarService(next_birthdays_count=3),
        validator=BirthdayValidator(max_age_years=150),
        audit_logger=AuditLogger(audit_storage),
        owner_id=OWNER,
    )


def sarah(**overrides):
    data = {
        "first_name": "Sarah",
        "last_name": "Cohen",
        "birth_date": date(2015, 3, 14),
        "after_sunset": False,
        "gender": Gender.FEMALE,
    }
    data.update(overrides)
    return NewBirthday(**data)


def event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class TestAddBirthday:
    """Tests for adding birthdays."""

    def test_add_returns_enriched_birthday(self, flow, storage, audit_storage):
        birthday = run(flow.add_birthday(sarah()))

        assert birthday.created_by == OWNER
        assert birthday.hebrew_date
        assert len(birthday.next_birthdays) == 3
        assert birthday.next_birthday == birthday.next_birthdays[0]
        assert birthday.needs_attention is False
        assert event_types(audit_storage) == [AuditEventType.BIRTHDAY_ADDED]

        stored = run(storage.get_birthday(birthday.id))
        assert stored.hebrew_date is None
        assert stored.next_birthdays == []

    def test_add_flags_unverified_fields(self, flow):
        birthday = run(flow.add_birthday(sarah(gender=Gender.UNKNOWN, after_sunset=None)))
        assert birthday.needs_gender_verification
        assert birthday.needs_sunset_verification

    def test_duplicate_is_flagged_not_rejected(self, flow):
        run(flow.add_birthday(sarah()))
        second = run(flow.add_birthday(sarah(first_name="SARAH", last_name="cohen")))
        assert second.is_duplicate is True
        assert second.duplicate_verified is False
        assert len(run(flow.list_birthdays())) == 2

    def test_invalid_data_is_rejected_and_audited(self, flow, storage, audit_storage):
        with pytest.raises(BirthdayOperationError) as exc_info:
            run(flow.add_birthday(sarah(first_name="")))
        assert exc_info.value.code == BirthdayErrorCode.VALIDATION_FAILED
        assert "First name is required" in exc_info.value.message
        assert run(storage.list_birthdays()) == []
        assert event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    def test_future_date_is_rejected(self, flow):
        with pytest.raises(BirthdayOperationError):
            run(flow.add_birthday(sarah(birth_date=date(2999, 1, 1))))


class TestUpdateBirthday:
    """Tests for edits and verification prompts."""

    def test_update_changes_fields(self, flow, audit_storage):
        birthday = run(flow.add_birthday(sarah()))
        updated = run(flow.update_birthday(birthday.id, sarah(first_name="Sara")))
        assert updated.first_name == "Sara"
        assert event_types(audit_storage)[-1] == AuditEventType.BIRTHDAY_UPDATED
        assert audit_storage.events[-1].details["changed_fields"] == ["first_name"]

    def test_update_rechecks_duplicates(self, flow):
        run(flow.add_birthday(sarah()))
        other = run(flow.add_birthday(sarah(first_name="Rivka")))
        assert other.is_duplicate is False

        updated = run(flow.update_birthday(other.id, sarah()))
        assert updated.is_duplicate is True

    def test_verify_duplicate(self, flow, audit_storage):
        run(flow.add_birthday(sarah()))
        second = run(flow.add_birthday(sarah()))
        verified = run(flow.verify_duplicate(second.id))
        assert verified.duplicate_verified is True
        assert verified.needs_attention is False
        assert AuditEventType.DUPLICATE_VERIFIED in event_types(audit_storage)

    def test_set_after_sunset_clears_flag(self, flow):
        birthday = run(flow.add_birthday(sarah(after_sunset=None)))
        updated = run(flow.set_after_sunset(birthday.id, True))
        assert updated.after_sunset is True
        assert updated.needs_sunset_verification is False

    def test_set_gender_clears_flag(self, flow):
        birthday = run(flow.add_birthday(sarah(gender=Gender.UNKNOWN)))
        updated = run(flow.set_gender(birthday.id, Gender.FEMALE))
        assert updated.needs_gender_verification is False

    def test_update_missing_birthday(self, flow):
        with pytest.raises(BirthdayOperationError) as exc_info:
            run(flow.update_birthday("nope", sarah()))
        assert exc_info.value.code == BirthdayErrorCode.NOT_FOUND


class TestArchive:
    """Tests for archive and restore."""

    def test_archive_then_restore(self, flow, audit_storage):
        birthday = run(flow.add_birthday(sarah()))

        run(flow.archive_birthday(birthday.id))
        assert run(flow.list_birthdays()) == []
        archived = run(flow.list_archived())
        assert [b.id for b in archived] == [birthday.id]
        assert archived[0].archived is True

        run(flow.restore_birthday(birthday.id))
        assert [b.id for b in run(flow.list_birthdays())] == [birthday.id]
        assert run(flow.list_archived()) == []

        assert event_types(audit_storage)[-2:] == [
            AuditEventType.BIRTHDAY_ARCHIVED,
            AuditEventType.BIRTHDAY_RESTORED,
        ]

    def test_archived_birthday_is_not_a_duplicate(self, flow):
        birthday = run(flow.add_birthday(sarah()))
        run(flow.archive_birthday(birthday.id))
        assert run(flow.add_birthday(sarah())).is_duplicate is False

    def test_archive_missing(self, flow):
        with pytest.raises(BirthdayOperationError) as exc_info:
            run(flow.archive_birthday("nope"))
        assert exc_info.value.code == BirthdayErrorCode.NOT_FOUND


class TestDelete:
    """Tests for batch delete and ownership."""

    def test_delete_own_and_imported(self, flow):
        own = run(flow.add_birthday(sarah()))
        imported = run(flow.add_birthday(sarah(first_name="Rivka"), created_by=IMPORTED_VIA_CSV))

        result = run(flow.delete_birthdays([own.id, imported.id]))
        assert result.success
        assert result.success_count == 2
        assert run(flow.list_birthdays()) == []

    def test_missing_ids_are_reported(self, flow):
        own = run(flow.add_birthday(sarah()))
        result = run(flow.delete_birthdays([own.id, "missing"]))
        assert result.success is False
        assert result.success_count == 1
        assert result.failed_ids == ["missing"]

    def test_foreign_records_only_is_unauthorized(self, flow, storage):
        foreign = Birthday(
            first_name="Dovid",
            last_name="Levi",
            birth_date=date(2010, 1, 5),
            created_by="someone-else",
        )
        run(storage.save_birthday(foreign))

        with pytest.raises(BirthdayOperationError) as exc_info:
            run(flow.delete_birthdays([foreign.id]))
        assert exc_info.value.code == BirthdayErrorCode.UNAUTHORIZED
        assert run(storage.get_birthday(foreign.id)) is not None

    def test_mixed_foreign_and_own(self, flow, storage):
        foreign = Birthday(
            first_name="Dovid",
            last_name="Levi",
            birth_date=date(2010, 1, 5),
            created_by="someone-else",
        )
        run(storage.save_birthday(foreign))
        own = run(flow.add_birthday(sarah()))

        result = run(flow.delete_birthdays([foreign.id, own.id]))
        assert result.success_count == 1
        assert result.failed_ids == [foreign.id]

    def test_storage_failure_for_whole_batch(self, audit_storage):
        class FailingStorage(InMemoryBirthdayStorage):
            async def delete_birthday(self, birthday_id):
                raise StorageError("backend unavailable")

        flow = BirthdayFlow(
            storage=FailingStorage(),
            calendar=HebrewCalendarService(next_birthdays_count=3),
            validator=BirthdayValidator(max_age_years=150),
            audit_logger=AuditLogger(audit_storage),
            owner_id=OWNER,
        )
        birthday = run(flow.add_birthday(sarah()))

        with pytest.raises(BirthdayOperationError) as exc_info:
            run(flow.delete_birthdays([birthday.id]))
        assert exc_info.value.code == BirthdayErrorCode.BATCH_OPERATION_FAILED


class TestImportCsv:
    """Tests for birthday CSV import."""

    def test_import_mixed_rows(self, flow, audit_storage):
        content = (
            "First Name,Last Name,Birthday,After Sunset,Gender\n"
            "Sarah,Cohen,14/03/2015,no,female\n"
            "Dovid,Levi,05/01/2010,yes,male\n"
            "Bad,Date,2015-03-14,,\n"
            "Future,Kid,01/01/2999,,\n"
        ).encode()

        result = run(flow.import_csv(content))

        assert result.success is False
        assert result.success_count == 2
        assert result.errors[0] == "Row 3: Invalid date format for Birthday"
        assert result.errors[1].startswith("Row 3: Birth date")

        birthdays = run(flow.list_birthdays(BirthdayFilters(sort_by=SortField.NAME)))
        assert [b.first_name for b in birthdays] == ["Dovid", "Sarah"]
        assert all(b.created_by == IMPORTED_VIA_CSV for b in birthdays)
        assert AuditEventType.BIRTHDAYS_IMPORTED in event_types(audit_storage)

    def test_overlong_name_keeps_the_other_rows(self, flow):
        content = (
            "First Name,Last Name,Birthday\n"
            f"{'A' * 101},Levi,01/02/2000\n"
            "Sarah,Cohen,14/03/2015\n"
        ).encode()

        result = run(flow.import_csv(content))

        assert result.success_count == 1
        assert result.errors[0].startswith("Row 1: First name")
        assert [b.first_name for b in run(flow.list_birthdays())] == ["Sarah"]

    def test_import_missing_headers(self, flow):
        with pytest.raises(BirthdayOperationError) as exc_info:
            run(flow.import_csv(b"Name,Date\nSarah,14/03/2015\n"))
        assert exc_info.value.code == BirthdayErrorCode.VALIDATION_FAILED


class TestAuditLogger:
    """Tests for reading the audit trail back."""

    def test_recent_events_newest_first(self):
        logger = AuditLogger(InMemoryAuditStorage())
        flow = BirthdayFlow(
            storage=InMemoryBirthdayStorage(),
            calendar=HebrewCalendarService(next_birthdays_count=3),
            validator=BirthdayValidator(max_age_years=150),
            audit_logger=logger,
            owner_id=OWNER,
        )
        birthday = run(flow.add_birthday(sarah()))
        run(flow.archive_birthday(birthday.id))

        events = run(logger.get_recent_events(limit=1))
        assert [e.event_type for e in events] == [AuditEventType.BIRTHDAY_ARCHIVED]

    def test_recent_events_without_storage(self):
        assert run(AuditLogger().get_recent_events()) == []


class TestListBirthdays:
    """Tests for enriched listing."""

    def test_age_uses_calendar_year(self, flow):
        run(flow.add_birthday(sarah(birth_date=date(2015, 12, 31))))
        birthdays = run(flow.list_birthdays(today=date(2025, 1, 1)))
        assert birthdays[0].age == 10
        assert all(d >= date(2025, 1, 1) for d in birthdays[0].next_birthdays)


class TestGeltFlow:
    """Tests for the gelt calculator flow."""

    @pytest.fixture
    def gelt_flow(self, audit_storage):
        return GeltFlow(
            session=GeltSession(default_config=BudgetConfig(participants=2)),
            audit_logger=AuditLogger(audit_storage),
        )

    def test_import_file(self, gelt_flow, audit_storage):
        content = "First Name,Age\nAvi,5\nBina,5\nChaim,15\nBad,x\n".encode()
        report = run(gelt_flow.import_file(content, "kids.csv"))

        assert report.accepted_count == 3
        assert report.rejected_count == 1
        assert gelt_flow.session.calculation.total_required == Decimal("40")
        assert event_types(audit_storage) == [AuditEventType.GELT_ROSTER_IMPORTED]

    def test_import_without_valid_rows_keeps_roster(self, gelt_flow, audit_storage):
        run(gelt_flow.import_file("First Name,Age\nAvi,5\n".encode(), "kids.csv"))
        report = run(gelt_flow.import_file("First Name,Age\nBad,x\n".encode(), "bad.csv"))

        assert report.has_data is False
        assert [c.first_name for c in gelt_flow.session.children] == ["Avi"]
        assert event_types(audit_storage)[-1] == AuditEventType.GELT_IMPORT_REJECTED

    def test_unreadable_file_is_audited_and_raised(self, gelt_flow, audit_storage):
        with pytest.raises(GeltImportError):
            run(gelt_flow.import_file(b"hello", "kids.txt"))
        assert event_types(audit_storage) == [AuditEventType.SYSTEM_ERROR]
        assert audit_storage.events[0].details["source"] == "kids.txt"

    def test_import_from_birthdays(self, gelt_flow):
        birthday = Birthday(first_name="Sara", last_name="Cohen", birth_date=date(2018, 5, 1))
        children = run(gelt_flow.import_from_birthdays([birthday], today=date(2025, 1, 1)))
        assert children[0].age == 7
        assert gelt_flow.session.included_ids == frozenset({birthday.id})

    def test_exports_are_audited(self, gelt_flow, audit_storage):
        run(gelt_flow.import_file("First Name,Age\nAvi,5\nChaim,15\n".encode(), "kids.csv"))

        data = json.loads(run(gelt_flow.export_json()))
        assert data["budget"]["total"] == 35
        assert data["budget"]["perParticipant"] == 18

        content = run(gelt_flow.export_excel())
        assert content[:2] == b"PK"

        exported = [e for e in audit_storage.events if e.event_type == AuditEventType.GELT_EXPORTED]
        assert [e.details["format"] for e in exported] == ["json", "xlsx"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
