"""Birthday validation package."""

from src.validation.validator import (
    CSV_REQUIRED_HEADERS,
    BirthdayImportError,
    BirthdayValidator,
    parse_csv_date,
    parse_csv_row,
    read_birthday_rows,
    validate_csv_headers,
)

__all__ = [
    "CSV_REQUIRED_HEADERS",
    "BirthdayImportError",
    "BirthdayValidator",
    "parse_csv_date",
    "parse_csv_row",
    "read_birthday_rows",
    "validate_csv_headers",
]
