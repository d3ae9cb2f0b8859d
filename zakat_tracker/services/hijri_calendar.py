"""Tabular Hijri calendar engine.

Converts between Gregorian and Hijri dates through Julian Day Numbers
using the 30-year arithmetic cycle (11 leap years of 355 days, 19 common
years of 354 days). Months alternate 30/29 days starting with Muharram;
Dhu al-Hijjah gains a 30th day in leap years.

All lookup tables are injected into HijriCalendar, so alternative epochs
or leap-year sets can be tested without touching module state. The
module-level helpers use a default calendar built from
zakat_tracker.data.hijri.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from zakat_tracker.data.hijri import (
    CYCLE_DAYS,
    CYCLE_YEARS,
    COMMON_YEAR_DAYS,
    LEAP_YEAR_DAYS,
    LEAP_YEAR_POSITIONS,
    HIJRI_EPOCHS,
    DEFAULT_HIJRI_EPOCH,
    HIJRI_MONTH_NAMES,
    ISLAMIC_HOLIDAYS,
)
from zakat_tracker.errors import InvalidCalendarInput
from zakat_tracker.services.julian_day import date_to_jd, jd_to_gregorian


@dataclass(frozen=True, order=True)
class HijriDate:
    """A date in the Hijri calendar. Ordering is chronological."""
    year: int
    month: int
    day: int

    def isoformat(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    @classmethod
    def fromisoformat(cls, value: str) -> 'HijriDate':
        """Parse YYYY-MM-DD. Field ranges are not validated here."""
        try:
            year, month, day = (int(part) for part in value.split('-'))
        except ValueError as e:
            raise InvalidCalendarInput(f"Invalid Hijri date string: {value!r}") from e
        return cls(year, month, day)

    def to_dict(self) -> dict:
        return {'year': self.year, 'month': self.month, 'day': self.day}


@dataclass(frozen=True)
class DualDate:
    """Gregorian and Hijri representations of the same civil day."""
    gregorian: date
    hijri: HijriDate
    holiday: Optional[str] = None
    month_names: tuple = field(default=HIJRI_MONTH_NAMES, repr=False, compare=False)

    def to_dict(self) -> dict:
        return {
            'gregorian': self.gregorian.isoformat(),
            'hijri': self.hijri.to_dict(),
            'hijri_string': format_hijri_date(self.hijri, self.month_names),
            'gregorian_string': format_gregorian_date(self.gregorian),
            'holiday': self.holiday,
        }


class HijriCalendar:
    """Arithmetic Hijri calendar with injected constant tables."""

    def __init__(
        self,
        epoch_jdn: int = HIJRI_EPOCHS[DEFAULT_HIJRI_EPOCH],
        leap_positions: frozenset = LEAP_YEAR_POSITIONS,
        holidays: Mapping = ISLAMIC_HOLIDAYS,
        month_names: tuple = HIJRI_MONTH_NAMES,
    ):
        if len(month_names) != 12:
            raise ValueError("month_names must list exactly 12 months")
        self.epoch_jdn = epoch_jdn
        self.leap_positions = frozenset(leap_positions)
        self.holidays = holidays
        self.month_names = tuple(month_names)

    # Year and month lengths

    def is_leap_year(self, year: int) -> bool:
        """Whether a Hijri year has 355 days."""
        position = (year - 1) % CYCLE_YEARS + 1
        return position in self.leap_positions

    def year_length(self, year: int) -> int:
        return LEAP_YEAR_DAYS if self.is_leap_year(year) else COMMON_YEAR_DAYS

    def month_length(self, year: int, month: int) -> int:
        if month < 1 or month > 12:
            raise InvalidCalendarInput(f"Hijri month out of range: {month}")
        if month == 12 and self.is_leap_year(year):
            return 30
        return 30 if month % 2 == 1 else 29

    def validate(self, hijri: HijriDate) -> HijriDate:
        """Return hijri unchanged, or raise InvalidCalendarInput."""
        if hijri.year < 1:
            raise InvalidCalendarInput(f"Hijri year must be >= 1: {hijri.year}")
        length = self.month_length(hijri.year, hijri.month)
        if hijri.day < 1 or hijri.day > length:
            raise InvalidCalendarInput(
                f"Hijri day out of range for {hijri.year}/{hijri.month}: "
                f"{hijri.day} (month has {length} days)"
            )
        return hijri

    # Conversion

    def to_hijri(self, d: date) -> HijriDate:
        """Convert a Gregorian date to Hijri.

        Raises:
            InvalidCalendarInput: If the date precedes 1 Muharram 1 AH.
        """
        days = int(date_to_jd(d)) - self.epoch_jdn
        if days < 0:
            raise InvalidCalendarInput(
                f"{d.isoformat()} is before the Hijri epoch"
            )

        cycles, remaining = divmod(days, CYCLE_DAYS)
        year = cycles * CYCLE_YEARS + 1

        while remaining >= self.year_length(year):
            remaining -= self.year_length(year)
            year += 1

        month = 1
        while remaining >= self.month_length(year, month):
            remaining -= self.month_length(year, month)
            month += 1

        return HijriDate(year, month, remaining + 1)

    def days_before_year(self, year: int) -> int:
        """Days from the epoch to 1 Muharram of `year`."""
        cycles, position = divmod(year - 1, CYCLE_YEARS)
        days = cycles * CYCLE_DAYS
        first_year = cycles * CYCLE_YEARS + 1
        for y in range(first_year, first_year + position):
            days += self.year_length(y)
        return days

    def to_gregorian(self, hijri: HijriDate) -> date:
        """Convert a Hijri date to Gregorian (exact inverse of to_hijri)."""
        self.validate(hijri)
        days = self.days_before_year(hijri.year)
        for month in range(1, hijri.month):
            days += self.month_length(hijri.year, month)
        days += hijri.day - 1
        return jd_to_gregorian(self.epoch_jdn + days)

    def dual_date(self, d: date) -> DualDate:
        hijri = self.to_hijri(d)
        return DualDate(
            gregorian=d,
            hijri=hijri,
            holiday=self.holiday_for(hijri.month, hijri.day),
            month_names=self.month_names,
        )

    # Names and holidays

    def month_name(self, month: int) -> str:
        if month < 1 or month > 12:
            raise InvalidCalendarInput(f"Hijri month out of range: {month}")
        return self.month_names[month - 1]

    def holiday_for(self, month: int, day: int) -> Optional[str]:
        """Holiday label for a (month, day), ignoring year."""
        return self.holidays.get((month, day))

    # Anniversary helpers

    def anniversary_in_year(self, year: int, month: int, day: int) -> HijriDate:
        """Place a (month, day) anniversary in a given year.

        A 30 Dhu al-Hijjah anniversary falls on the 29th in common years.
        """
        length = self.month_length(year, month)
        return HijriDate(year, month, min(day, length))

    def next_occurrence(self, month: int, day: int, on_or_after: date) -> HijriDate:
        """First occurrence of a (month, day) anniversary on or after a date."""
        today = self.to_hijri(on_or_after)
        candidate = self.anniversary_in_year(today.year, month, day)
        if candidate < today:
            candidate = self.anniversary_in_year(today.year + 1, month, day)
        return candidate

    def month_range(self, year: int, month: int) -> tuple[date, date]:
        """Gregorian first and last day of a Hijri month."""
        start = self.to_gregorian(HijriDate(year, month, 1))
        end = start + timedelta(days=self.month_length(year, month) - 1)
        return (start, end)


_default_calendar: Optional[HijriCalendar] = None


def get_calendar() -> HijriCalendar:
    """Get the calendar configured by HIJRI_EPOCH (cached)."""
    global _default_calendar
    if _default_calendar is None:
        from zakat_tracker.services.config import get_hijri_epoch_jdn
        _default_calendar = HijriCalendar(epoch_jdn=get_hijri_epoch_jdn())
    return _default_calendar


def reset_calendar() -> None:
    """Drop the cached calendar so configuration is re-read."""
    global _default_calendar
    _default_calendar = None


def gregorian_to_hijri(d: date) -> HijriDate:
    return get_calendar().to_hijri(d)


def hijri_to_gregorian(year: int, month: int, day: int) -> date:
    return get_calendar().to_gregorian(HijriDate(year, month, day))


def get_dual_date(d: date) -> DualDate:
    return get_calendar().dual_date(d)


def get_hijri_month_name(month: int) -> str:
    return get_calendar().month_name(month)


def get_islamic_holiday(month: int, day: int) -> Optional[str]:
    return get_calendar().holiday_for(month, day)


def format_hijri_date(hijri: HijriDate, month_names: tuple = HIJRI_MONTH_NAMES) -> str:
    """Format as '15 Ramadan 1446'."""
    return f"{hijri.day} {month_names[hijri.month - 1]} {hijri.year}"


def format_gregorian_date(d: date) -> str:
    """Format as 'March 15, 2025'."""
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def format_dual_date(dual: DualDate) -> str:
    """Format as '15 Ramadan 1446 / March 15, 2025'."""
    return f"{format_hijri_date(dual.hijri, dual.month_names)} / {format_gregorian_date(dual.gregorian)}"
