"""
Age Group Editing Rules

These rules guard changes to the age bands. They run when the user edits
a band, before anything is mutated; a rejected edit leaves the previous
bands untouched.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

from src.models.gelt import AgeGroup


class AgeGroupValidationError(Exception):
    """An age band edit was rejected."""
    pass


def snap_amount(value: Union[int, float, Decimal, str], step: int = 5) -> Decimal:
    """
    Round an amount to the nearest multiple of step.

    Halves round up (12.5 -> 15), matching what users expect from the
    amount field.
    """
    steps = (Decimal(str(value)) / step).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return steps * step


def ranges_overlap(a_min: int, a_max: int, b_min: int, b_max: int) -> bool:
    """Do two closed integer ranges share at least one age?"""
    return a_min <= b_max and b_min <= a_max


def validate_age_range(
    group_id: str,
    min_age: int,
    max_age: int,
    groups: Iterable[AgeGroup],
) -> None:
    """
    Check a proposed [min_age, max_age] for the band group_id.

    Raises:
        AgeGroupValidationError: if a bound is negative, if the range is empty
            or inverted, or if it overlaps any other band (included or not).
    """
    if min_age < 0:
        raise AgeGroupValidationError("Ages cannot be negative")
    if min_age >= max_age:
        raise AgeGroupValidationError("Minimum age must be less than maximum age")

    for other in groups:
        if other.id == group_id:
            continue
        if ranges_overlap(min_age, max_age, other.min_age, other.max_age):
            raise AgeGroupValidationError("Age ranges cannot overlap with other groups")


def validate_amount(amount: Decimal) -> None:
    """Reject a negative per-child amount (after snapping)."""
    if amount < 0:
        raise AgeGroupValidationError("Amount per child cannot be negative")


def group_name(min_age: int, max_age: int) -> str:
    return f"{min_age}-{max_age}"


def find_overlapping_groups(groups: Iterable[AgeGroup]) -> list[tuple[str, str]]:
    """Pairs of band ids whose ranges overlap."""
    groups = list(groups)
    pairs = []
    for index, first in enumerate(groups):
        for second in groups[index + 1:]:
            if ranges_overlap(first.min_age, first.max_age, second.min_age, second.max_age):
                pairs.append((first.id, second.id))
    return pairs
