"""
Tests for the Birthday & Gelt Tracker models

Test strategy:
1. Unit tests for individual components (models, validators, calculator)
2. Integration tests for flows (with in-memory storage)
3. No real API calls in tests
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from src.models.birthday import (
    Birthday,
    Gender,
    HebrewDate,
    NewBirthday,
    ValidationIssue,
    ValidationResult,
)
from src.models.gelt import (
    AgeGroup,
    BudgetCalculation,
    Child,
    ExportBudget,
    ImportReport,
    ImportRowResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestBirthdayModels:
    """Tests for birthday-related Pydantic models."""

    def test_birthday_creation(self):
        """Test Birthday model creation with defaults."""
        birthday = Birthday(
            first_name="Sarah",
            last_name="Cohen",
            birth_date=date(2015, 3, 14),
        )
        assert birthday.full_name == "Sarah Cohen"
        assert birthday.gender == Gender.UNKNOWN
        assert birthday.archived is False
        assert birthday.next_birthdays == []
        assert len(birthday.id) == 32

    def test_birthday_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        birthday = Birthday(
            first_name="  Sarah ",
            last_name=" Cohen",
            birth_date=date(2015, 3, 14),
        )
        assert birthday.first_name == "Sarah"
        assert birthday.last_name == "Cohen"

    def test_birthday_requires_names(self):
        """Test that empty names are rejected."""
        with pytest.raises(ValueError):
            Birthday(first_name="", last_name="Cohen", birth_date=date(2015, 3, 14))

    def test_needs_attention(self):
        """Test the needs_attention property."""
        base = Birthday(first_name="Sarah", last_name="Cohen", birth_date=date(2015, 3, 14))
        assert base.needs_attention is False

        assert base.model_copy(update={"needs_sunset_verification": True}).needs_attention
        assert base.model_copy(update={"is_duplicate": True}).needs_attention
        assert not base.model_copy(
            update={"is_duplicate": True, "duplicate_verified": True}
        ).needs_attention

    def test_new_birthday_allows_missing_fields(self):
        """Test NewBirthday accepts incomplete input for later validation."""
        data = NewBirthday()
        assert data.birth_date is None
        assert data.after_sunset is None

    def test_hebrew_date_month_bounds(self):
        """Test Hebrew month must be 1..13."""
        with pytest.raises(ValueError):
            HebrewDate(year=5785, month=14, day=1, month_name="?", hebrew="?")


class TestGeltModels:
    """Tests for gelt calculator models."""

    def test_child_defaults(self):
        """Test Child model creation."""
        child = Child(first_name="Dovid", age=7)
        assert child.age_modified is False
        assert child.original_age is None
        assert child.full_name == "Dovid"

    def test_child_rejects_negative_age(self):
        """Test that negative ages are rejected."""
        with pytest.raises(ValueError):
            Child(first_name="Dovid", age=-1)

    def test_child_modified_requires_original_age(self):
        """Test that the override flag and original age travel together."""
        with pytest.raises(ValueError, match="original value"):
            Child(first_name="Dovid", age=7, age_modified=True)
        with pytest.raises(ValueError, match="only recorded"):
            Child(first_name="Dovid", age=7, original_age=6)

    def test_child_override_to_same_value(self):
        """An override to the same age is still an override."""
        child = Child(first_name="Dovid", age=7, age_modified=True, original_age=7)
        assert child.age_modified is True

    def test_age_group_contains_is_inclusive(self):
        """Test both bounds of an age band are inclusive."""
        group = AgeGroup(id="x", name="3-6", min_age=3, max_age=6, amount_per_child=Decimal("5"))
        assert group.contains(3)
        assert group.contains(6)
        assert not group.contains(2)
        assert not group.contains(7)

    def test_budget_calculation_is_frozen(self):
        """Test that a calculation cannot be patched."""
        calculation = BudgetCalculation()
        with pytest.raises(ValueError):
            calculation.total_required = Decimal("1")

    def test_import_report_counts(self):
        """Test accepted/rejected counts on an import report."""
        report = ImportReport(rows=[
            ImportRowResult(row_number=1, accepted=True, child=Child(first_name="A", age=3)),
            ImportRowResult(row_number=2, accepted=False, reason="Missing age"),
        ])
        assert report.accepted_count == 1
        assert report.rejected_count == 1
        assert report.has_data is True
        assert [c.first_name for c in report.children] == ["A"]

    def test_export_uses_camel_case(self):
        """Test export models serialize with camelCase keys."""
        budget = ExportBudget(
            total=Decimal("40"),
            per_participant=Decimal("20"),
            participants=2,
            allowed_overflow=Decimal("10"),
        )
        dumped = budget.model_dump(by_alias=True)
        assert "perParticipant" in dumped
        assert "allowedOverflow" in dumped


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.BIRTHDAY_ADDED,
            description="Birthday added",
        )
        assert event.event_type == AuditEventType.BIRTHDAY_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.GELT_EXPORTED,
            description="Exported",
            details={"format": "json", "total": "40"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "gelt_exported"
        assert log_dict["details"]["format"] == "json"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.BIRTHDAY_ARCHIVED,
            entity_id="abc",
            description="Archived",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "birthday_archived"  # event_type
        assert row[5] == "abc"  # entity_id
        assert row[10] == "True"  # is_user_action

    def test_audit_event_builder_birthday_added(self):
        """Test AuditEventBuilder.birthday_added."""
        correlation_id = uuid4()
        event = AuditEventBuilder.birthday_added(
            birthday_id="b1",
            name="Sarah Cohen",
            is_duplicate=True,
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.BIRTHDAY_ADDED
        assert event.entity_id == "b1"
        assert event.correlation_id == correlation_id
        assert event.details["is_duplicate"] is True
        assert event.is_user_action is True

    def test_audit_event_builder_partial_delete_is_warning(self):
        """Test a delete with failures is logged as a warning."""
        event = AuditEventBuilder.birthdays_deleted(deleted_ids=["a"], failed_ids=["b"])
        assert event.severity == AuditSeverity.WARNING

        event = AuditEventBuilder.birthdays_deleted(deleted_ids=["a"], failed_ids=[])
        assert event.severity == AuditSeverity.INFO


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="first_name",
                    issue_type="missing",
                    message="First name is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.error_messages == ["First name is required"]

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="gender",
                    issue_type="unverified",
                    message="Gender is not set",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0

    def test_validation_issue_severity_pattern(self):
        """Test severity must be error, warning or info."""
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
