"""
Hebrew Calendar Service

Converts Gregorian birth dates to Hebrew dates and finds the Gregorian
dates on which upcoming Hebrew birthdays fall.

DESIGN DECISION: All calendar arithmetic is delegated to convertdate.
This module only adds the birthday conventions on top:
- Born after sunset: the Hebrew date is that of the next civil day.
- Adar of a common year is celebrated in Adar II of a leap year.
- Adar I / Adar II births are celebrated in Adar of a common year.
- Day 30 of a month that has only 29 days that year falls on the
  day after the 29th.

Month numbers follow convertdate: 1 = Nisan ... 7 = Tishrei ...
12 = Adar (Adar I in leap years), 13 = Adar II.
"""

from datetime import date, timedelta
from typing import Optional

from convertdate import hebrew

from src.models.birthday import HebrewDate


ADAR = 12
ADAR_II = 13

MONTH_NAMES = {
    1: "Nisan",
    2: "Iyyar",
    3: "Sivan",
    4: "Tammuz",
    5: "Av",
    6: "Elul",
    7: "Tishrei",
    8: "Cheshvan",
    9: "Kislev",
    10: "Tevet",
    11: "Shevat",
    12: "Adar",
    13: "Adar II",
}

HEBREW_MONTH_NAMES = {
    1: "ניסן",
    2: "אייר",
    3: "סיון",
    4: "תמוז",
    5: "אב",
    6: "אלול",
    7: "תשרי",
    8: "חשון",
    9: "כסלו",
    10: "טבת",
    11: "שבט",
    12: "אדר",
    13: "אדר ב׳",
}

_ONES = ["", "א", "ב", "ג", "ד", "ה", "ו", "ז", "ח", "ט"]
_TENS = ["", "י", "כ", "ל", "מ", "נ", "ס", "ע", "פ", "צ"]
_HUNDREDS = ["", "ק", "ר", "ש", "ת"]


class HebrewCalendarError(Exception):
    """A date could not be converted."""
    pass


def gematria(number: int) -> str:
    """
    Write 1..999 in Hebrew letters with geresh / gershayim.

    15 and 16 are written ט״ו and ט״ז.
    """
    if not 0 < number < 1000:
        raise ValueError(f"Cannot write {number} in Hebrew letters")

    letters = ""
    hundreds, rest = divmod(number, 100)
    while hundreds > 4:
        letters += _HUNDREDS[4]
        hundreds -= 4
    letters += _HUNDREDS[hundreds]

    if rest in (15, 16):
        letters += "ט" + _ONES[rest - 9]
    else:
        tens, ones = divmod(rest, 10)
        letters += _TENS[tens] + _ONES[ones]

    if len(letters) == 1:
        return letters + "׳"
    return letters[:-1] + "״" + letters[-1]


def month_name(year: int, month: int) -> str:
    if month == ADAR and hebrew.leap(year):
        return "Adar I"
    return MONTH_NAMES[month]


def format_hebrew(year: int, month: int, day: int) -> str:
    """e.g. ט״ו בשבט תשפ״ה"""
    name = HEBREW_MONTH_NAMES[month]
    if month == ADAR and hebrew.leap(year):
        name = "אדר א׳"
    return f"{gematria(day)} ב{name} {gematria(year % 1000)}"


class HebrewCalendarService:
    """
    Birthday-oriented wrapper around convertdate's Hebrew calendar.
    """

    def __init__(self, next_birthdays_count: int = 10):
        self._count = next_birthdays_count

    def to_hebrew(self, gregorian: date, after_sunset: bool = False) -> HebrewDate:
        """Hebrew date of a civil date (of the next civil day when after sunset)."""
        civil = gregorian + timedelta(days=1) if after_sunset else gregorian
        try:
            year, month, day = hebrew.from_gregorian(civil.year, civil.month, civil.day)
        except (ValueError, OverflowError) as e:
            raise HebrewCalendarError(f"Cannot convert {gregorian.isoformat()}: {e}")

        return HebrewDate(
            year=year,
            month=month,
            day=day,
            month_name=month_name(year, month),
            hebrew=format_hebrew(year, month, day),
        )

    def current_hebrew_year(self, today: Optional[date] = None) -> int:
        today = today or date.today()
        return hebrew.from_gregorian(today.year, today.month, today.day)[0]

    def anniversary_month(self, birth: HebrewDate, target_year: int) -> int:
        """Which month of target_year the birthday is kept in."""
        if birth.month not in (ADAR, ADAR_II):
            return birth.month

        target_is_leap = hebrew.leap(target_year)
        if not target_is_leap:
            return ADAR
        if birth.month == ADAR_II:
            return ADAR_II
        # Adar of a common year -> Adar II; Adar I stays Adar I.
        return ADAR if hebrew.leap(birth.year) else ADAR_II

    def anniversary(self, birth: HebrewDate, target_year: int) -> date:
        """Gregorian date of the Hebrew birthday in target_year."""
        month = self.anniversary_month(birth, target_year)
        days_in_month = hebrew.month_days(target_year, month)

        if birth.day <= days_in_month:
            return date(*hebrew.to_gregorian(target_year, month, birth.day))

        last_day = date(*hebrew.to_gregorian(target_year, month, days_in_month))
        return last_day + timedelta(days=1)

    def next_birthdays(
        self,
        birth_date: date,
        after_sunset: bool = False,
        count: Optional[int] = None,
        today: Optional[date] = None,
    ) -> list[date]:
        """
        The next `count` Gregorian dates, on or after today, on which the
        Hebrew birthday falls.
        """
        count = count or self._count
        today = today or date.today()
        birth = self.to_hebrew(birth_date, after_sunset)

        target_year = max(self.current_hebrew_year(today), birth.year + 1)
        dates: list[date] = []
        while len(dates) < count:
            occurrence = self.anniversary(birth, target_year)
            if occurrence >= today:
                dates.append(occurrence)
            target_year += 1
        return dates
