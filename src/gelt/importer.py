"""
Gelt Roster Import

Builds the child roster from a spreadsheet (CSV or XLSX) or from the
birthday list.

Accepted row shapes:
- {First Name, Last Name, Age}
- {Full Name, Age}   (first word = first name, the rest = last name)

IMPORTANT: A bad row never aborts the import. Each row gets its own
result (accepted, or rejected with a reason) so the user can see how
many rows were used and why the others were not.
"""

import io
import re
from datetime import date
from typing import Any, BinaryIO, Iterable, Mapping, Optional, Union

import pandas as pd
from pydantic import ValidationError

from src.models.birthday import Birthday
from src.models.gelt import Child, ImportReport, ImportRowResult


FULL_NAME_COLUMN = "Full Name"
FIRST_NAME_COLUMN = "First Name"
LAST_NAME_COLUMN = "Last Name"
AGE_COLUMN = "Age"

NO_VALID_DATA_MESSAGE = "No valid data found in CSV file"

_AGE_PATTERN = re.compile(r"^\d+(\.0+)?$")


class GeltImportError(Exception):
    """The file could not be read at all."""
    pass


def _cell(row: Mapping[str, Any], column: str) -> str:
    value = row.get(column)
    if value is None:
        return ""
    return str(value).strip()


def parse_age(raw: str) -> Optional[int]:
    """Parse a non-negative whole age ("7", "7.0"); None if it isn't one."""
    if not _AGE_PATTERN.match(raw):
        return None
    return int(float(raw))


def parse_child_row(row: Mapping[str, Any], row_number: int) -> ImportRowResult:
    """Turn one tabular row into an accepted child or a rejection."""
    full_name = _cell(row, FULL_NAME_COLUMN)
    if full_name:
        first_name, _, last_name = full_name.partition(" ")
        last_name = " ".join(last_name.split())
    else:
        first_name = _cell(row, FIRST_NAME_COLUMN)
        last_name = _cell(row, LAST_NAME_COLUMN)

    if not first_name:
        return ImportRowResult(row_number=row_number, accepted=False, reason="Missing name")

    raw_age = _cell(row, AGE_COLUMN)
    if not raw_age:
        return ImportRowResult(row_number=row_number, accepted=False, reason="Missing age")

    age = parse_age(raw_age)
    if age is None:
        return ImportRowResult(
            row_number=row_number,
            accepted=False,
            reason=f"Age '{raw_age}' is not a non-negative whole number",
        )

    try:
        child = Child(first_name=first_name, last_name=last_name, age=age)
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]).replace("_", " ").capitalize() if error["loc"] else "Row"
        return ImportRowResult(
            row_number=row_number,
            accepted=False,
            reason=f"{field}: {error['msg']}",
        )

    return ImportRowResult(row_number=row_number, accepted=True, child=child)


def parse_children_rows(
    rows: Iterable[Mapping[str, Any]],
    source: str = "upload",
) -> ImportReport:
    """Parse every row; blank rows are skipped without a result."""
    results = []
    for row_number, row in enumerate(rows, start=1):
        if not any(str(value).strip() for value in row.values() if value is not None):
            continue
        results.append(parse_child_row(row, row_number))
    return ImportReport(source=source, rows=results)


def read_children_file(
    file: Union[bytes, BinaryIO],
    filename: str,
) -> ImportReport:
    """
    Read a CSV or XLSX roster.

    All cells are read as text so ages like "07" or "5.5" reach the row
    parser unchanged.

    Raises:
        GeltImportError: the file format is unsupported or the file is unreadable.
    """
    buffer = io.BytesIO(file) if isinstance(file, bytes) else file
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

    try:
        if extension == "csv":
            frame = pd.read_csv(
                buffer,
                dtype=str,
                keep_default_na=False,
                encoding="utf-8-sig",
                skip_blank_lines=True,
            )
        elif extension in ("xlsx", "xls"):
            frame = pd.read_excel(buffer, dtype=str, keep_default_na=False)
        else:
            raise GeltImportError(f"Unsupported file type: .{extension or '?'}")
    except GeltImportError:
        raise
    except Exception as e:
        raise GeltImportError(f"Failed to parse file. Please check the format. ({e})")

    frame.columns = [str(column).strip() for column in frame.columns]
    return parse_children_rows(frame.to_dict(orient="records"), source=filename)


def age_in_year(birth_date: date, today: Optional[date] = None) -> int:
    """Age the person turns during the current calendar year."""
    today = today or date.today()
    return max(today.year - birth_date.year, 0)


def children_from_birthdays(
    birthdays: Iterable[Birthday],
    today: Optional[date] = None,
) -> list[Child]:
    """One child per birthday, keeping the birthday id."""
    return [
        Child(
            id=birthday.id,
            first_name=birthday.first_name,
            last_name=birthday.last_name,
            age=age_in_year(birthday.birth_date, today),
        )
        for birthday in birthdays
    ]
