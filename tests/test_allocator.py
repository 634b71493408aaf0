"""
Tests for the gelt budget allocator and age band rules.
"""

import pytest
from decimal import Decimal

from src.gelt.allocator import (
    calculate_budget,
    default_age_groups,
    overflow_ceiling,
    per_participant_share,
)
from src.gelt.rules import (
    AgeGroupValidationError,
    find_overlapping_groups,
    snap_amount,
    validate_age_range,
    validate_amount,
)
from src.models.gelt import AgeGroup, BudgetConfig, Child


def make_children(*ages):
    return [Child(id=f"c{i}", first_name=f"Child{i}", age=age) for i, age in enumerate(ages)]


def group_id_by_name(name):
    return next(group.id for group in default_age_groups() if group.name == name)


@pytest.fixture
def three_children():
    return make_children(5, 5, 15)


@pytest.fixture
def two_participants():
    return BudgetConfig(participants=2, allowed_overflow_percentage=Decimal("10"))


class TestCalculateBudget:
    """Tests for calculate_budget."""

    def test_reference_scenario(self, three_children, two_participants):
        """Two 5-year-olds and a 15-year-old, two participants."""
        result = calculate_budget(
            three_children,
            default_age_groups(),
            two_participants,
            {child.id for child in three_children},
        )

        small = result.group_totals[group_id_by_name("3-6")]
        teen = result.group_totals[group_id_by_name("13-17")]
        assert (small.children_count, small.total) == (2, Decimal("10"))
        assert (teen.children_count, teen.total) == (1, Decimal("30"))
        assert result.total_required == Decimal("40")
        assert result.amount_per_participant == Decimal("20")
        assert result.max_allowed == Decimal("44")

    def test_excluded_child_leaves_empty_group_entry(self, three_children, two_participants):
        """The 13-17 band stays reported as {0, 0} when its only child is excluded."""
        included = {"c0", "c1"}
        result = calculate_budget(three_children, default_age_groups(), two_participants, included)

        assert result.total_required == Decimal("10")
        assert result.amount_per_participant == Decimal("5")
        assert result.max_allowed == Decimal("11")

        teen = result.group_totals[group_id_by_name("13-17")]
        assert teen.children_count == 0
        assert teen.total == Decimal("0")

    def test_every_included_group_has_an_entry(self):
        """Test empty roster still reports all included bands."""
        groups = default_age_groups()
        result = calculate_budget([], groups, BudgetConfig(), set())
        assert set(result.group_totals) == {group.id for group in groups}
        assert result.total_required == Decimal("0")

    def test_excluded_group_is_absent(self, three_children, two_participants):
        """Test bands with is_included=False contribute nothing."""
        groups = [
            group.model_copy(update={"is_included": False}) if group.name == "13-17" else group
            for group in default_age_groups()
        ]
        result = calculate_budget(
            three_children, groups, two_participants, {c.id for c in three_children}
        )
        assert group_id_by_name("13-17") not in result.group_totals
        assert result.total_required == Decimal("10")

    def test_zero_participants(self, three_children):
        """Test nobody pays when there are no participants."""
        result = calculate_budget(
            three_children,
            default_age_groups(),
            BudgetConfig(participants=0),
            {c.id for c in three_children},
        )
        assert result.total_required == Decimal("40")
        assert result.amount_per_participant == Decimal("0")

    def test_group_totals_sum_to_total(self):
        """Test sum of band totals equals the required total."""
        children = make_children(0, 1, 4, 8, 8, 11, 14, 19, 21, 30)
        result = calculate_budget(
            children, default_age_groups(), BudgetConfig(), {c.id for c in children}
        )
        assert sum(g.total for g in result.group_totals.values()) == result.total_required
        # The 30-year-old is outside every band
        assert result.children_counted == 9

    def test_is_idempotent(self, three_children, two_participants):
        """Test two calculations on the same inputs are equal."""
        args = (three_children, default_age_groups(), two_participants, {"c0", "c2"})
        assert calculate_budget(*args) == calculate_budget(*args)

    def test_does_not_mutate_inputs(self, three_children, two_participants):
        """Test inputs are left untouched."""
        groups = default_age_groups()
        before = [group.model_dump() for group in groups]
        calculate_budget(three_children, groups, two_participants, {"c0"})
        assert [group.model_dump() for group in groups] == before

    def test_overlapping_groups_double_count(self):
        """A child in two overlapping bands counts in both."""
        groups = [
            AgeGroup(id="a", name="3-6", min_age=3, max_age=6, amount_per_child=Decimal("5")),
            AgeGroup(id="b", name="5-9", min_age=5, max_age=9, amount_per_child=Decimal("10")),
        ]
        children = make_children(5)
        result = calculate_budget(children, groups, BudgetConfig(), {"c0"})
        assert result.total_required == Decimal("15")


class TestBudgetHelpers:
    """Tests for the per-participant share and overflow ceiling."""

    @pytest.mark.parametrize("total,participants,expected", [
        (Decimal("40"), 2, Decimal("20")),
        (Decimal("41"), 2, Decimal("21")),
        (Decimal("10"), 3, Decimal("4")),
        (Decimal("0"), 5, Decimal("0")),
        (Decimal("40"), 0, Decimal("0")),
        (Decimal("40"), -3, Decimal("0")),
    ])
    def test_per_participant_share_rounds_up(self, total, participants, expected):
        assert per_participant_share(total, participants) == expected

    def test_overflow_ceiling_is_exact(self):
        """Test 40 * 1.1 is exactly 44."""
        assert overflow_ceiling(Decimal("40"), Decimal("10")) == Decimal("44")
        assert overflow_ceiling(Decimal("35"), Decimal("10")) == Decimal("38.5")


class TestAgeGroupRules:
    """Tests for age band edit rules."""

    @pytest.mark.parametrize("value,expected", [
        (12, Decimal("10")),
        (12.5, Decimal("15")),
        (13, Decimal("15")),
        (0, Decimal("0")),
        (2, Decimal("0")),
        ("47.5", Decimal("50")),
    ])
    def test_snap_amount(self, value, expected):
        assert snap_amount(value) == expected

    def test_min_must_be_below_max(self):
        with pytest.raises(AgeGroupValidationError, match="less than maximum"):
            validate_age_range("4", 9, 9, default_age_groups())

    def test_negative_bounds_are_rejected(self):
        with pytest.raises(AgeGroupValidationError, match="negative"):
            validate_age_range("6", -1, 2, default_age_groups())

    def test_negative_amount_is_rejected(self):
        validate_amount(Decimal("0"))
        with pytest.raises(AgeGroupValidationError, match="negative"):
            validate_amount(Decimal("-5"))

    def test_overlap_is_rejected(self):
        """Inclusive bounds: 6 touches the 3-6 band."""
        with pytest.raises(AgeGroupValidationError, match="cannot overlap"):
            validate_age_range("4", 6, 9, default_age_groups())

    def test_own_range_is_ignored(self):
        """Test a band is not compared with itself."""
        validate_age_range("4", 7, 9, default_age_groups())

    def test_find_overlapping_groups(self):
        groups = default_age_groups()
        assert find_overlapping_groups(groups) == []

        groups[3] = groups[3].model_copy(update={"min_age": 6})
        assert find_overlapping_groups(groups) == [("4", "5")]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
