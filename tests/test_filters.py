"""
Tests for birthday list search, filtering and sorting.
"""

import pytest
from datetime import date

from src.models.birthday import (
    Birthday,
    BirthdayFilters,
    Gender,
    SortField,
    SortOrder,
    Timeframe,
)
from src.queries import filter_birthdays


TODAY = date(2025, 12, 10)


def make(first, last, birth_date, next_birthday=None, gender=Gender.UNKNOWN, age=0):
    return Birthday(
        first_name=first,
        last_name=last,
        birth_date=birth_date,
        gender=gender,
        next_birthday=next_birthday,
        age=age,
    )


@pytest.fixture
def birthdays():
    return [
        make("Sarah", "Cohen", date(2015, 3, 14), date(2025, 12, 20), Gender.FEMALE, 10),
        make("Dovid", "Levi", date(2010, 1, 5), date(2026, 1, 15), Gender.MALE, 15),
        make("Rivka", "Katz", date(2000, 6, 1), date(2026, 5, 30), Gender.FEMALE, 25),
        make("Moshe", "Cohen", date(2020, 8, 8), None, Gender.MALE, 5),
    ]


def names(result):
    return [b.first_name for b in result]


class TestSearch:
    """Tests for name search and the gender filter."""

    def test_search_is_case_insensitive(self, birthdays):
        result = filter_birthdays(birthdays, BirthdayFilters(search_term="cohen"), TODAY)
        assert set(names(result)) == {"Sarah", "Moshe"}

    def test_search_spans_full_name(self, birthdays):
        result = filter_birthdays(birthdays, BirthdayFilters(search_term="dovid le"), TODAY)
        assert names(result) == ["Dovid"]

    def test_gender_filter(self, birthdays):
        result = filter_birthdays(birthdays, BirthdayFilters(gender=Gender.FEMALE), TODAY)
        assert set(names(result)) == {"Sarah", "Rivka"}


class TestTimeframe:
    """Tests for the this-month / next-month filter."""

    def test_this_month(self, birthdays):
        result = filter_birthdays(birthdays, BirthdayFilters(timeframe=Timeframe.THIS_MONTH), TODAY)
        assert names(result) == ["Sarah", "Moshe"]

    def test_next_month_wraps_to_january(self, birthdays):
        result = filter_birthdays(birthdays, BirthdayFilters(timeframe=Timeframe.NEXT_MONTH), TODAY)
        assert names(result) == ["Dovid", "Moshe"]

    def test_records_without_next_birthday_always_match(self, birthdays):
        result = filter_birthdays(
            birthdays,
            BirthdayFilters(timeframe=Timeframe.THIS_MONTH, search_term="moshe"),
            TODAY,
        )
        assert names(result) == ["Moshe"]


class TestSorting:
    """Tests for sort field and order."""

    def test_default_sort_puts_undated_last(self, birthdays):
        result = filter_birthdays(birthdays, BirthdayFilters(), TODAY)
        assert names(result) == ["Sarah", "Dovid", "Rivka", "Moshe"]

    def test_next_birthday_desc_still_puts_undated_last(self, birthdays):
        result = filter_birthdays(
            birthdays, BirthdayFilters(sort_order=SortOrder.DESC), TODAY
        )
        assert names(result) == ["Rivka", "Dovid", "Sarah", "Moshe"]

    def test_sort_by_name(self, birthdays):
        result = filter_birthdays(birthdays, BirthdayFilters(sort_by=SortField.NAME), TODAY)
        assert names(result) == ["Dovid", "Moshe", "Rivka", "Sarah"]

    def test_sort_by_age_desc(self, birthdays):
        result = filter_birthdays(
            birthdays,
            BirthdayFilters(sort_by=SortField.AGE, sort_order=SortOrder.DESC),
            TODAY,
        )
        assert names(result) == ["Rivka", "Dovid", "Sarah", "Moshe"]

    def test_sort_by_birth_date(self, birthdays):
        result = filter_birthdays(birthdays, BirthdayFilters(sort_by=SortField.DATE), TODAY)
        assert names(result) == ["Rivka", "Dovid", "Sarah", "Moshe"]

    def test_empty_input(self):
        assert filter_birthdays([], BirthdayFilters(), TODAY) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
