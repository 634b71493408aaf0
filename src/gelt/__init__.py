"""Gelt budget calculator package."""

from src.gelt.allocator import (
    DEFAULT_AGE_GROUPS,
    DEFAULT_BUDGET_CONFIG,
    calculate_budget,
    default_age_groups,
    default_budget_config,
)
from src.gelt.exporter import build_export, export_to_excel, export_to_json
from src.gelt.importer import (
    NO_VALID_DATA_MESSAGE,
    GeltImportError,
    children_from_birthdays,
    parse_children_rows,
    read_children_file,
)
from src.gelt.rules import (
    AgeGroupValidationError,
    find_overlapping_groups,
    snap_amount,
    validate_age_range,
    validate_amount,
)
from src.gelt.session import GeltSession, UnknownAgeGroupError, UnknownChildError

__all__ = [
    "DEFAULT_AGE_GROUPS",
    "DEFAULT_BUDGET_CONFIG",
    "NO_VALID_DATA_MESSAGE",
    "AgeGroupValidationError",
    "GeltImportError",
    "GeltSession",
    "UnknownAgeGroupError",
    "UnknownChildError",
    "build_export",
    "calculate_budget",
    "children_from_birthdays",
    "default_age_groups",
    "default_budget_config",
    "export_to_excel",
    "export_to_json",
    "find_overlapping_groups",
    "parse_children_rows",
    "read_children_file",
    "snap_amount",
    "validate_age_range",
    "validate_amount",
]
