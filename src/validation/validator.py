"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Name length
- This catches empty form fields and malformed CSV rows

STAGE 2 - SEMANTIC VALIDATION:
- Future birth dates
- Implausibly old birth dates
- This catches logically impossible data

WHY TWO STAGES:
1. Separation of concerns (structural vs logical)
2. Better error messages (know exactly what kind of issue)
3. Can skip stage 2 if stage 1 fails

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review. Missing gender or sunset information
is not an error: the record is saved and flagged for verification.
"""

import io
from datetime import date, datetime
from typing import Any, BinaryIO, Mapping, Optional, Union

import pandas as pd
from pydantic import ValidationError

from src.config import get_settings
from src.models.birthday import (
    Gender,
    NewBirthday,
    ValidationIssue,
    ValidationResult,
)


MIN_NAME_LENGTH = 2

CSV_FIRST_NAME = "First Name"
CSV_LAST_NAME = "Last Name"
CSV_BIRTHDAY = "Birthday"
CSV_AFTER_SUNSET = "After Sunset"
CSV_GENDER = "Gender"

CSV_REQUIRED_HEADERS = [CSV_FIRST_NAME, CSV_LAST_NAME, CSV_BIRTHDAY]
CSV_DATE_FORMAT = "%d/%m/%Y"


class BirthdayImportError(Exception):
    """The birthday file could not be read or lacks required columns."""
    pass


class BirthdayValidator:
    """
    Validates birthday data through a two-stage pipeline.

    Stage 1: Schema validation
    Stage 2: Semantic validation
    """

    def __init__(self, max_age_years: Optional[int] = None):
        if max_age_years is None:
            max_age_years = get_settings().calendar.max_age_years
        self._max_age_years = max_age_years

    def _validate_schema(
        self,
        data: NewBirthday,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        for field, label, value in (
            ("first_name", "First name", data.first_name),
            ("last_name", "Last name", data.last_name),
        ):
            if not value:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"{label} is required",
                    severity="error",
                ))
            elif len(value) < MIN_NAME_LENGTH:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="too_short",
                    message=f"{label} must be at least {MIN_NAME_LENGTH} characters",
                    severity="error",
                ))

        if data.birth_date is None:
            issues.append(ValidationIssue(
                field="birth_date",
                issue_type="missing",
                message="Birth date is required",
                severity="error",
            ))

        # Not errors: the record is flagged for verification instead
        if data.gender == Gender.UNKNOWN:
            issues.append(ValidationIssue(
                field="gender",
                issue_type="unverified",
                message="Gender is not set and will need verification",
                severity="warning",
            ))
        if data.after_sunset is None:
            issues.append(ValidationIssue(
                field="after_sunset",
                issue_type="unverified",
                message="Born after sunset is not set and will need verification",
                severity="warning",
            ))

        # Schema is valid if no errors (warnings are okay)
        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        data: NewBirthday,
        today: date,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if data.birth_date > today:
            issues.append(ValidationIssue(
                field="birth_date",
                issue_type="future_date",
                message=f"Birth date ({data.birth_date.strftime(CSV_DATE_FORMAT)}) is in the future",
                severity="error",
            ))

        oldest_year = today.year - self._max_age_years
        if data.birth_date.year < oldest_year:
            issues.append(ValidationIssue(
                field="birth_date",
                issue_type="too_old",
                message=f"Birth date is more than {self._max_age_years} years ago",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(
        self,
        data: NewBirthday,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Returns:
            ValidationResult with all issues found
        """
        today = today or date.today()
        all_issues = []

        # Stage 1: Schema validation
        schema_valid, schema_issues = self._validate_schema(data)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(data, today)
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show next to the birthday form.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for message in result.error_messages:
                lines.append(f"   • {message}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.is_valid:
            lines.append("")
            lines.append("You can still save; the record will be flagged for review.")

        return "\n".join(lines)


# =============================================================================
# CSV IMPORT
# =============================================================================

def validate_csv_headers(headers: list[str]) -> list[str]:
    """Return the required headers that are missing (empty list = OK)."""
    present = {header.strip() for header in headers}
    return [header for header in CSV_REQUIRED_HEADERS if header not in present]


def parse_csv_date(raw: str) -> Optional[date]:
    """Parse DD/MM/YYYY; None if the text is not a real calendar date."""
    try:
        return datetime.strptime(raw.strip(), CSV_DATE_FORMAT).date()
    except ValueError:
        return None


def _parse_yes_no(raw: str) -> Optional[bool]:
    value = raw.strip().lower()
    if value in ("yes", "y", "true", "1"):
        return True
    if value in ("no", "n", "false", "0"):
        return False
    return None


def _parse_gender(raw: str) -> Gender:
    try:
        return Gender(raw.strip().lower())
    except ValueError:
        return Gender.UNKNOWN


def parse_csv_row(
    row: Mapping[str, Any],
    row_number: int,
) -> tuple[Optional[NewBirthday], Optional[str]]:
    """
    Turn one CSV row into a NewBirthday.

    Returns (birthday, None) on success or (None, error_message).
    """
    def cell(column: str) -> str:
        value = row.get(column)
        return "" if value is None else str(value).strip()

    if not cell(CSV_FIRST_NAME):
        return None, f"Row {row_number}: Missing First Name"
    if not cell(CSV_LAST_NAME):
        return None, f"Row {row_number}: Missing Last Name"
    if not cell(CSV_BIRTHDAY):
        return None, f"Row {row_number}: Missing Birthday"

    birth_date = parse_csv_date(cell(CSV_BIRTHDAY))
    if birth_date is None:
        return None, f"Row {row_number}: Invalid date format for Birthday"

    try:
        birthday = NewBirthday(
            first_name=cell(CSV_FIRST_NAME),
            last_name=cell(CSV_LAST_NAME),
            birth_date=birth_date,
            after_sunset=_parse_yes_no(cell(CSV_AFTER_SUNSET)),
            gender=_parse_gender(cell(CSV_GENDER)),
        )
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]).replace("_", " ").capitalize() if error["loc"] else "Row"
        return None, f"Row {row_number}: {field}: {error['msg']}"

    return birthday, None


def read_birthday_rows(
    file: Union[bytes, BinaryIO],
) -> list[dict[str, str]]:
    """
    Read a birthday CSV into text rows.

    Raises:
        BirthdayImportError: unreadable file or missing required headers.
    """
    buffer = io.BytesIO(file) if isinstance(file, bytes) else file
    try:
        frame = pd.read_csv(
            buffer,
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
        )
    except Exception as e:
        raise BirthdayImportError(f"Failed to parse CSV file: {e}")

    frame.columns = [str(column).strip() for column in frame.columns]
    missing = validate_csv_headers(list(frame.columns))
    if missing:
        raise BirthdayImportError(f"Missing required columns: {', '.join(missing)}")

    return frame.to_dict(orient="records")
