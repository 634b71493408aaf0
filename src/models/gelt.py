"""
Gelt Budget Models

These models describe the gift-budget calculator: the child roster,
the age bands that decide how much each child receives, the budget
configuration shared by the participants, and the derived calculation.

DESIGN DECISION: Money is modelled with Decimal, like every other
amount in this codebase. The overflow ceiling must be exact
(40 * 1.1 == 44), which binary floats cannot promise.
"""

from decimal import Decimal
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ROSTER
# =============================================================================

class Child(BaseModel):
    """
    A child counted by the gelt calculator.

    DESIGN DECISION: "age was overridden" is an explicit flag paired with
    the pre-override value. Overriding a child's age to the value it
    already had still counts as an override.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique child identifier"
    )
    first_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    last_name: str = Field(
        default="",
        max_length=100,
    )
    age: int = Field(
        ...,
        ge=0,
        description="Current (possibly overridden) age in years"
    )
    age_modified: bool = Field(
        default=False,
        description="Has the age been manually overridden?"
    )
    original_age: Optional[int] = Field(
        default=None,
        ge=0,
        description="Age before the first override"
    )

    @model_validator(mode='after')
    def validate_override(self) -> 'Child':
        """The override flag and the original age travel together."""
        if self.age_modified and self.original_age is None:
            raise ValueError("A modified age must keep its original value")
        if not self.age_modified and self.original_age is not None:
            raise ValueError("Original age is only recorded for modified ages")
        return self

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# =============================================================================
# BUDGET CONFIGURATION
# =============================================================================

class AgeGroup(BaseModel):
    """
    A closed age band [min_age, max_age] with a per-child amount.

    Bands are not supposed to overlap; that is enforced when a band is
    edited, not when the budget is calculated.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    min_age: int = Field(ge=0)
    max_age: int = Field(ge=0)
    amount_per_child: Decimal = Field(
        ge=0,
        description="Gelt given to each child in this band"
    )
    is_included: bool = True

    def contains(self, age: int) -> bool:
        return self.min_age <= age <= self.max_age


class BudgetConfig(BaseModel):
    """How the required total is shared among participants."""

    participants: int = Field(
        default=10,
        description="Number of people sharing the cost; <= 0 means nobody pays"
    )
    allowed_overflow_percentage: Decimal = Field(
        default=Decimal("10"),
        ge=0,
        description="Soft ceiling above the required total, in percent"
    )


# =============================================================================
# DERIVED CALCULATION
# =============================================================================

class GroupTotal(BaseModel):
    """Per-band totals."""

    children_count: int = Field(ge=0)
    total: Decimal = Field(ge=0)


class BudgetCalculation(BaseModel):
    """
    Result of a budget calculation.

    Never stored and never patched: every recalculation produces a new
    instance that replaces the previous one.
    """
    model_config = ConfigDict(frozen=True)

    total_required: Decimal = Decimal("0")
    amount_per_participant: Decimal = Decimal("0")
    max_allowed: Decimal = Decimal("0")
    group_totals: dict[str, GroupTotal] = Field(default_factory=dict)

    @property
    def children_counted(self) -> int:
        return sum(group.children_count for group in self.group_totals.values())


# =============================================================================
# IMPORT
# =============================================================================

class ImportRowResult(BaseModel):
    """Outcome of importing a single tabular row."""

    row_number: int = Field(
        ...,
        ge=1,
        description="1-based data row number (header excluded)"
    )
    accepted: bool
    reason: Optional[str] = Field(
        default=None,
        description="Why the row was rejected"
    )
    child: Optional[Child] = None


class ImportReport(BaseModel):
    """Per-row results of a roster import."""

    source: str = Field(
        default="upload",
        description="File name or origin of the rows"
    )
    rows: list[ImportRowResult] = Field(default_factory=list)

    @property
    def children(self) -> list[Child]:
        return [row.child for row in self.rows if row.accepted and row.child]

    @property
    def accepted_count(self) -> int:
        return sum(1 for row in self.rows if row.accepted)

    @property
    def rejected_count(self) -> int:
        return sum(1 for row in self.rows if not row.accepted)

    @property
    def has_data(self) -> bool:
        return self.accepted_count > 0


# =============================================================================
# EXPORT
# =============================================================================

class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ExportBudget(_CamelModel):
    total: Decimal
    per_participant: Decimal
    participants: int
    allowed_overflow: Decimal


class ExportAgeGroup(_CamelModel):
    id: str
    name: str
    min_age: int
    max_age: int
    amount_per_child: Decimal
    is_included: bool
    child_count: int
    total: Decimal


class ExportChild(_CamelModel):
    name: str
    age: int
    age_modified: bool
    original_age: Optional[int] = None


class GeltExport(_CamelModel):
    """Snapshot of the calculator, serialized to JSON or a workbook."""

    budget: ExportBudget
    age_groups: list[ExportAgeGroup] = Field(default_factory=list)
    children: list[ExportChild] = Field(default_factory=list)
