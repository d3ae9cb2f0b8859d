"""Gregorian date <-> Julian Day conversion.

Julian Days are anchored at noon UTC, so every civil day maps to an
integral value (returned as float). Fractional input is resolved to the
civil day containing that instant.
"""
import math
from datetime import date

from zakat_tracker.errors import InvalidCalendarInput


def is_gregorian_leap_year(year: int) -> bool:
    """Divisible by 4, except centuries not divisible by 400."""
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_gregorian_month(year: int, month: int) -> int:
    """Number of days in a Gregorian month."""
    if month < 1 or month > 12:
        raise InvalidCalendarInput(f"Gregorian month out of range: {month}")
    if month == 2:
        return 29 if is_gregorian_leap_year(year) else 28
    if month in (4, 6, 9, 11):
        return 30
    return 31


def gregorian_to_jd(year: int, month: int, day: int) -> float:
    """Convert a proleptic Gregorian date to its Julian Day (noon).

    Raises:
        InvalidCalendarInput: If month or day is out of range.
    """
    if day < 1 or day > days_in_gregorian_month(year, month):
        raise InvalidCalendarInput(
            f"Gregorian day out of range: {year:04d}-{month:02d}-{day:02d}"
        )

    a = (14 - month) // 12
    y = year + 4800 - a
    m = month + 12 * a - 3
    jdn = day + (153 * m + 2) // 5 + 365 * y + y // 4 - y // 100 + y // 400 - 32045
    return float(jdn)


def date_to_jd(d: date) -> float:
    """Julian Day for a `date`."""
    return gregorian_to_jd(d.year, d.month, d.day)


def jd_to_gregorian(jd: float) -> date:
    """Convert a Julian Day back to a Gregorian `date`.

    Exact inverse of gregorian_to_jd for integral input.
    """
    jdn = math.floor(jd + 0.5)

    a = jdn + 32044
    b = (4 * a + 3) // 146097
    c = a - (146097 * b) // 4
    d = (4 * c + 3) // 1461
    e = c - (1461 * d) // 4
    m = (5 * e + 2) // 153

    day = e - (153 * m + 2) // 5 + 1
    month = m + 3 - 12 * (m // 10)
    year = 100 * b + d - 4800 + m // 10

    try:
        return date(year, month, day)
    except ValueError as exc:
        raise InvalidCalendarInput(f"Julian Day {jd} outside supported range: {exc}") from exc
