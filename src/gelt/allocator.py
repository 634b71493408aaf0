"""
Gelt Budget Allocator

Turns the child roster, the age bands and the budget configuration into
a BudgetCalculation. This is a pure function: it reads its inputs, never
mutates them, and returns a brand new result every time.

Rules:
- Only bands with is_included contribute, and each of them gets an entry
  in group_totals even when no child matches ({0, 0}).
- A child counts toward a band when it is in the inclusion set and its
  age lies within [min_age, max_age].
- The per-participant share is always rounded UP, so the pool is never
  under-collected.
- The overflow ceiling is exact; it is never rounded.
"""

from collections.abc import Collection, Iterable
from decimal import ROUND_CEILING, Decimal

from src.models.gelt import (
    AgeGroup,
    BudgetCalculation,
    BudgetConfig,
    Child,
    GroupTotal,
)


DEFAULT_AGE_GROUPS: tuple[AgeGroup, ...] = (
    AgeGroup(id="1", name="18-21", min_age=18, max_age=21, amount_per_child=Decimal("40")),
    AgeGroup(id="2", name="13-17", min_age=13, max_age=17, amount_per_child=Decimal("30")),
    AgeGroup(id="3", name="10-12", min_age=10, max_age=12, amount_per_child=Decimal("20")),
    AgeGroup(id="4", name="7-9", min_age=7, max_age=9, amount_per_child=Decimal("10")),
    AgeGroup(id="5", name="3-6", min_age=3, max_age=6, amount_per_child=Decimal("5")),
    AgeGroup(id="6", name="0-2", min_age=0, max_age=2, amount_per_child=Decimal("0")),
)

DEFAULT_BUDGET_CONFIG = BudgetConfig(
    participants=10,
    allowed_overflow_percentage=Decimal("10"),
)


def default_age_groups() -> list[AgeGroup]:
    """Fresh copies of the built-in age bands."""
    return [group.model_copy() for group in DEFAULT_AGE_GROUPS]


def default_budget_config() -> BudgetConfig:
    return DEFAULT_BUDGET_CONFIG.model_copy()


def per_participant_share(total_required: Decimal, participants: int) -> Decimal:
    """Ceiling of total / participants; 0 when there is nobody to pay."""
    if participants <= 0:
        return Decimal("0")
    share = Decimal(total_required) / Decimal(participants)
    return share.to_integral_value(rounding=ROUND_CEILING)


def overflow_ceiling(total_required: Decimal, overflow_percentage: Decimal) -> Decimal:
    return Decimal(total_required) * (1 + Decimal(overflow_percentage) / 100)


def calculate_budget(
    children: Iterable[Child],
    age_groups: Iterable[AgeGroup],
    budget_config: BudgetConfig,
    included_ids: Collection[str],
) -> BudgetCalculation:
    """
    Calculate the gelt budget.

    Bands are filtered independently, so a child whose age falls into two
    overlapping bands is counted in both. Overlaps are rejected when a band
    is edited; this function does not re-check them.
    """
    counted = [child for child in children if child.id in included_ids]

    group_totals: dict[str, GroupTotal] = {}
    total_required = Decimal("0")

    for group in age_groups:
        if not group.is_included:
            continue

        children_count = sum(1 for child in counted if group.contains(child.age))
        group_total = group.amount_per_child * children_count

        group_totals[group.id] = GroupTotal(
            children_count=children_count,
            total=group_total,
        )
        total_required += group_total

    return BudgetCalculation(
        total_required=total_required,
        amount_per_participant=per_participant_share(
            total_required, budget_config.participants
        ),
        max_allowed=overflow_ceiling(
            total_required, budget_config.allowed_overflow_percentage
        ),
        group_totals=group_totals,
    )
