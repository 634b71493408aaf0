"""
Birthday List Queries

Search, filter and sort for the birthday list. Everything runs in
Python over already-enriched birthdays; storage is never queried here.
"""

from datetime import date
from typing import Iterable, Optional

from src.models.birthday import (
    Birthday,
    BirthdayFilters,
    SortField,
    SortOrder,
    Timeframe,
)


def _matches_search(birthday: Birthday, search_term: str) -> bool:
    if not search_term:
        return True
    return search_term.lower() in birthday.full_name.lower()


def _matches_timeframe(birthday: Birthday, timeframe: Timeframe, today: date) -> bool:
    # Records without a computed next birthday are never filtered out
    if timeframe == Timeframe.ALL or birthday.next_birthday is None:
        return True

    month = birthday.next_birthday.month
    if timeframe == Timeframe.THIS_MONTH:
        return month == today.month
    return month == today.month % 12 + 1


def _sort_key(birthday: Birthday, sort_by: SortField):
    if sort_by == SortField.NAME:
        return birthday.full_name.lower()
    if sort_by == SortField.DATE:
        return birthday.birth_date
    if sort_by == SortField.AGE:
        return birthday.age
    return birthday.next_birthday


def filter_birthdays(
    birthdays: Iterable[Birthday],
    filters: BirthdayFilters,
    today: Optional[date] = None,
) -> list[Birthday]:
    """
    Apply name search, gender and timeframe filters, then sort.

    When sorting by next birthday, records without one go last in
    either order.
    """
    today = today or date.today()

    matching = [
        birthday for birthday in birthdays
        if _matches_search(birthday, filters.search_term)
        and (filters.gender is None or birthday.gender == filters.gender)
        and _matches_timeframe(birthday, filters.timeframe, today)
    ]

    reverse = filters.sort_order == SortOrder.DESC

    if filters.sort_by == SortField.NEXT_BIRTHDAY:
        dated = [b for b in matching if b.next_birthday is not None]
        undated = [b for b in matching if b.next_birthday is None]
        dated.sort(key=lambda b: b.next_birthday, reverse=reverse)
        return dated + undated

    return sorted(matching, key=lambda b: _sort_key(b, filters.sort_by), reverse=reverse)
