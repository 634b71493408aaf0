"""
Gelt Distribution Export

Output-only snapshot of the calculator: budget summary, age bands with
their totals, and the children (with their age-override status).

Formats:
- JSON (camelCase keys, numbers as numbers)
- XLSX with two sheets: "Budget Summary" and "Children"
"""

import io
import json
from decimal import Decimal
from typing import Any

import pandas as pd

from src.gelt.session import GeltSession
from src.models.gelt import (
    ExportAgeGroup,
    ExportBudget,
    ExportChild,
    GeltExport,
)


BUDGET_SHEET = "Budget Summary"
CHILDREN_SHEET = "Children"


def build_export(session: GeltSession) -> GeltExport:
    """Snapshot the session's current state and calculation."""
    calculation = session.calculation
    config = session.budget_config

    age_groups = []
    for group in session.age_groups:
        group_total = calculation.group_totals.get(group.id)
        age_groups.append(ExportAgeGroup(
            id=group.id,
            name=group.name,
            min_age=group.min_age,
            max_age=group.max_age,
            amount_per_child=group.amount_per_child,
            is_included=group.is_included,
            child_count=group_total.children_count if group_total else 0,
            total=group_total.total if group_total else Decimal("0"),
        ))

    children = [
        ExportChild(
            name=child.full_name,
            age=child.age,
            age_modified=child.age_modified,
            original_age=child.original_age,
        )
        for child in session.children
    ]

    return GeltExport(
        budget=ExportBudget(
            total=calculation.total_required,
            per_participant=calculation.amount_per_participant,
            participants=config.participants,
            allowed_overflow=config.allowed_overflow_percentage,
        ),
        age_groups=age_groups,
        children=children,
    )


def _json_number(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def export_to_json(export: GeltExport) -> str:
    return json.dumps(
        export.model_dump(by_alias=True),
        default=_json_number,
        ensure_ascii=False,
        indent=2,
    )


def _money(value: Decimal, currency: str) -> str:
    return f"{currency}{_json_number(value)}"


def export_to_excel(export: GeltExport, currency: str = "₪") -> bytes:
    """Write the two-sheet workbook and return its bytes."""
    budget = export.budget
    budget_rows: list[list[Any]] = [
        ["Budget Summary"],
        ["Total Required", _money(budget.total, currency)],
        ["Amount per Participant", _money(budget.per_participant, currency)],
        ["Number of Participants", budget.participants],
        ["Allowed Overflow", f"{_json_number(budget.allowed_overflow)}%"],
        [],
        ["Age Groups"],
        ["Age Range", "Amount per Child", "Children Count", "Total Amount", "Included"],
    ]
    for group in export.age_groups:
        budget_rows.append([
            f"{group.min_age}-{group.max_age}",
            _money(group.amount_per_child, currency),
            group.child_count,
            _money(group.total, currency),
            "Yes" if group.is_included else "No",
        ])

    children_rows: list[list[Any]] = [["Name", "Age", "Modified Age", "Original Age"]]
    for child in export.children:
        children_rows.append([
            child.name,
            child.age,
            "Yes" if child.age_modified else "No",
            child.original_age if child.original_age is not None else "",
        ])

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame(budget_rows).to_excel(
            writer, sheet_name=BUDGET_SHEET, header=False, index=False
        )
        pd.DataFrame(children_rows).to_excel(
            writer, sheet_name=CHILDREN_SHEET, header=False, index=False
        )
    return buffer.getvalue()
