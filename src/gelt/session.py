"""
Gelt Session State

DESIGN DECISION: All calculator state lives in one explicit container
owned by the application shell (one per Streamlit session). Every
mutating call finishes by recomputing the BudgetCalculation from scratch,
so the calculation can never drift from its inputs.

One user action -> one state replacement -> one recalculation.
"""

from decimal import Decimal
from typing import Iterable, Optional, Union

import structlog

from src.gelt.allocator import (
    calculate_budget,
    default_age_groups,
    default_budget_config,
)
from src.gelt.rules import (
    AgeGroupValidationError,
    group_name,
    snap_amount,
    validate_age_range,
    validate_amount,
)
from src.models.gelt import (
    AgeGroup,
    BudgetCalculation,
    BudgetConfig,
    Child,
)


logger = structlog.get_logger(__name__)


class UnknownChildError(KeyError):
    """No child with this id in the roster."""
    pass


class UnknownAgeGroupError(KeyError):
    """No age group with this id."""
    pass


class GeltSession:
    """
    Mutable calculator state plus the current calculation.

    Readers get copies; only the methods below change state.
    """

    def __init__(
        self,
        default_config: Optional[BudgetConfig] = None,
        amount_step: int = 5,
    ):
        self._default_config = (default_config or default_budget_config()).model_copy()
        self._amount_step = amount_step

        self._children: list[Child] = []
        self._age_groups: list[AgeGroup] = default_age_groups()
        self._budget_config: BudgetConfig = self._default_config.model_copy()
        self._custom_group_settings: Optional[list[AgeGroup]] = None
        self._included_ids: set[str] = set()
        self._calculation: BudgetCalculation = BudgetCalculation()

        self.recalculate()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def children(self) -> list[Child]:
        return list(self._children)

    @property
    def age_groups(self) -> list[AgeGroup]:
        return list(self._age_groups)

    @property
    def budget_config(self) -> BudgetConfig:
        return self._budget_config

    @property
    def calculation(self) -> BudgetCalculation:
        return self._calculation

    @property
    def custom_group_settings(self) -> Optional[list[AgeGroup]]:
        if self._custom_group_settings is None:
            return None
        return list(self._custom_group_settings)

    @property
    def included_ids(self) -> frozenset[str]:
        return frozenset(self._included_ids)

    def is_included(self, child_id: str) -> bool:
        return child_id in self._included_ids

    def get_child(self, child_id: str) -> Child:
        for child in self._children:
            if child.id == child_id:
                return child
        raise UnknownChildError(child_id)

    def get_age_group(self, group_id: str) -> AgeGroup:
        for group in self._age_groups:
            if group.id == group_id:
                return group
        raise UnknownAgeGroupError(group_id)

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def recalculate(self) -> BudgetCalculation:
        """Recompute the calculation from the current state."""
        self._calculation = calculate_budget(
            children=self._children,
            age_groups=self._age_groups,
            budget_config=self._budget_config,
            included_ids=self._included_ids,
        )
        return self._calculation

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    def set_children(self, children: Iterable[Child]) -> BudgetCalculation:
        """Replace the roster. Every child starts out included."""
        self._children = list(children)
        self._included_ids = {child.id for child in self._children}
        logger.info("gelt_roster_replaced", children_count=len(self._children))
        return self.recalculate()

    def _replace_child(self, updated: Child) -> None:
        self._children = [
            updated if child.id == updated.id else child
            for child in self._children
        ]

    def set_age(self, child_id: str, new_age: int) -> BudgetCalculation:
        """
        Override a child's age.

        The pre-override age is captured on the first override only, so
        original_age always holds the imported value.
        """
        child = self.get_child(child_id)
        original_age = child.original_age if child.age_modified else child.age

        updated = Child.model_validate({
            **child.model_dump(),
            "age": new_age,
            "age_modified": True,
            "original_age": original_age,
        })
        self._replace_child(updated)
        return self.recalculate()

    def reset_age(self, child_id: str) -> BudgetCalculation:
        """Undo an age override. No-op for a child that was never overridden."""
        child = self.get_child(child_id)
        if child.age_modified:
            self._replace_child(child.model_copy(update={
                "age": child.original_age,
                "age_modified": False,
                "original_age": None,
            }))
        return self.recalculate()

    def exclude_child(self, child_id: str, exclude: bool = True) -> BudgetCalculation:
        """Toggle a child out of (or back into) the calculation."""
        self.get_child(child_id)
        if exclude:
            self._included_ids.discard(child_id)
        else:
            self._included_ids.add(child_id)
        return self.recalculate()

    # ------------------------------------------------------------------
    # Age groups
    # ------------------------------------------------------------------

    def edit_age_group(
        self,
        group_id: str,
        min_age: int,
        max_age: int,
        amount_per_child: Union[int, float, Decimal],
        is_included: bool = True,
    ) -> BudgetCalculation:
        """
        Apply an edit to one age band.

        The amount is snapped to the configured step, the range is checked
        against every other band and the name is regenerated from the
        bounds.

        Raises:
            AgeGroupValidationError: the edit was rejected; nothing changed.
        """
        current = self.get_age_group(group_id)
        amount = snap_amount(amount_per_child, self._amount_step)

        try:
            validate_age_range(group_id, min_age, max_age, self._age_groups)
            validate_amount(amount)
        except AgeGroupValidationError as e:
            logger.info(
                "age_group_edit_rejected",
                group_id=group_id,
                min_age=min_age,
                max_age=max_age,
                reason=str(e),
            )
            raise

        updated = AgeGroup.model_validate({
            **current.model_dump(),
            "name": group_name(min_age, max_age),
            "min_age": min_age,
            "max_age": max_age,
            "amount_per_child": amount,
            "is_included": is_included,
        })
        self._age_groups = [
            updated if group.id == group_id else group
            for group in self._age_groups
        ]
        return self.recalculate()

    def set_group_included(self, group_id: str, is_included: bool) -> BudgetCalculation:
        current = self.get_age_group(group_id)
        self._age_groups = [
            current.model_copy(update={"is_included": is_included})
            if group.id == group_id else group
            for group in self._age_groups
        ]
        return self.recalculate()

    def save_custom_settings(self) -> None:
        """Keep the current bands as the user's own defaults."""
        self._custom_group_settings = [group.model_copy() for group in self._age_groups]

    def clear_custom_settings(self) -> BudgetCalculation:
        """Drop the saved bands and go back to the built-in ones."""
        self._custom_group_settings = None
        self._age_groups = default_age_groups()
        return self.recalculate()

    # ------------------------------------------------------------------
    # Budget configuration
    # ------------------------------------------------------------------

    def update_budget_config(
        self,
        participants: Optional[int] = None,
        allowed_overflow_percentage: Optional[Union[int, float, Decimal]] = None,
    ) -> BudgetCalculation:
        """Partially update the budget configuration."""
        changes = {}
        if participants is not None:
            changes["participants"] = participants
        if allowed_overflow_percentage is not None:
            changes["allowed_overflow_percentage"] = Decimal(str(allowed_overflow_percentage))

        self._budget_config = BudgetConfig.model_validate({
            **self._budget_config.model_dump(),
            **changes,
        })
        return self.recalculate()

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset_to_defaults(self) -> BudgetCalculation:
        """Clear the roster and restore default bands and configuration."""
        self._children = []
        self._age_groups = default_age_groups()
        self._budget_config = self._default_config.model_copy()
        self._custom_group_settings = None
        self._included_ids = set()
        logger.info("gelt_session_reset")
        return self.recalculate()
