"""
Data Models Package

This package contains all Pydantic models used by the birthday tracker
and the gelt calculator. All data flowing through the system must
conform to these schemas.
"""

from src.models.birthday import (
    BatchOperationResult,
    Birthday,
    BirthdayFilters,
    Gender,
    HebrewDate,
    NewBirthday,
    SortField,
    SortOrder,
    Timeframe,
    ValidationIssue,
    ValidationResult,
)
from src.models.gelt import (
    AgeGroup,
    BudgetCalculation,
    BudgetConfig,
    Child,
    ExportAgeGroup,
    ExportBudget,
    ExportChild,
    GeltExport,
    GroupTotal,
    ImportReport,
    ImportRowResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Birthday models
    "BatchOperationResult",
    "Birthday",
    "BirthdayFilters",
    "Gender",
    "HebrewDate",
    "NewBirthday",
    "SortField",
    "SortOrder",
    "Timeframe",
    "ValidationIssue",
    "ValidationResult",
    # Gelt models
    "AgeGroup",
    "BudgetCalculation",
    "BudgetConfig",
    "Child",
    "ExportAgeGroup",
    "ExportBudget",
    "ExportChild",
    "GeltExport",
    "GroupTotal",
    "ImportReport",
    "ImportRowResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
