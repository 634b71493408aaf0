"""
Core Data Models for the Birthday Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Support the audit trail

DESIGN DECISION: Stored fields and enriched fields live on the same model.
Enriched fields (Hebrew date, next birthdays, age) are recomputed on every
read and are never written back to storage.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Gender(str, Enum):
    """Gender as recorded for a person."""
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"


class Timeframe(str, Enum):
    """Which upcoming birthdays to show."""
    ALL = "all"
    THIS_MONTH = "this_month"
    NEXT_MONTH = "next_month"


class SortField(str, Enum):
    NAME = "name"
    DATE = "date"
    AGE = "age"
    NEXT_BIRTHDAY = "next_birthday"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# =============================================================================
# CORE BIRTHDAY MODELS
# =============================================================================

class NewBirthday(BaseModel):
    """
    Birthday data as entered by the user (form or CSV row).

    Validation of business rules (name length, date range) happens in
    BirthdayValidator so that all problems can be reported at once.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(
        default="",
        max_length=100,
    )
    last_name: str = Field(
        default="",
        max_length=100,
    )
    birth_date: Optional[date] = None
    after_sunset: Optional[bool] = Field(
        default=None,
        description="Born after sunset; None means not yet verified"
    )
    gender: Gender = Gender.UNKNOWN


class Birthday(BaseModel):
    """
    A person's birthday as stored, plus the enriched calendar fields.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: str = Field(
        default_factory=lambda: uuid4().hex,
        description="Unique birthday ID"
    )

    # Stored fields
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    birth_date: date
    after_sunset: Optional[bool] = None
    gender: Gender = Gender.UNKNOWN

    # Verification flags
    needs_gender_verification: bool = False
    needs_sunset_verification: bool = False
    is_duplicate: bool = False
    duplicate_verified: bool = False

    archived: bool = False
    created_by: str = Field(
        default="local",
        description="Owner who created this record"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
    )

    # Enriched fields (computed, never stored)
    hebrew_date: Optional[str] = None
    next_birthday: Optional[date] = None
    next_birthdays: list[date] = Field(default_factory=list)
    age: int = Field(default=0, ge=0)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def needs_attention(self) -> bool:
        """Does the user still have to verify something about this record?"""
        return (
            self.needs_gender_verification
            or self.needs_sunset_verification
            or (self.is_duplicate and not self.duplicate_verified)
        )


class BirthdayFilters(BaseModel):
    """Search / filter / sort options for the birthday list."""

    search_term: str = ""
    gender: Optional[Gender] = None
    timeframe: Timeframe = Timeframe.ALL
    sort_by: SortField = SortField.NEXT_BIRTHDAY
    sort_order: SortOrder = SortOrder.ASC


class HebrewDate(BaseModel):
    """A date in the Hebrew calendar."""

    year: int
    month: int = Field(
        ge=1,
        le=13,
        description="Month number counted from Nisan (7 = Tishrei, 13 = Adar II)"
    )
    day: int = Field(ge=1, le=30)
    month_name: str
    hebrew: str = Field(
        ...,
        description="Date written in Hebrew letters"
    )


class BatchOperationResult(BaseModel):
    """Result of an operation applied to several birthdays."""

    success: bool
    success_count: int = Field(default=0, ge=0)
    failed_ids: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'too_short', 'future_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage birthday validation.

    Stage 1: Schema validation (required fields, lengths)
    Stage 2: Semantic validation (date plausibility)
    """

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    schema_valid: bool
    semantic_valid: bool
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
