"""Fixed tables for the tabular Hijri calendar."""
from types import MappingProxyType

# Days in one 30-year cycle: 11 leap years of 355 days + 19 common years of 354
CYCLE_YEARS = 30
CYCLE_DAYS = 10631

COMMON_YEAR_DAYS = 354
LEAP_YEAR_DAYS = 355

# 1-indexed positions within the 30-year cycle that are leap years
LEAP_YEAR_POSITIONS = frozenset({2, 5, 7, 10, 13, 16, 18, 21, 24, 26, 29})

# Julian Day Numbers (noon) for 1 Muharram 1 AH under each epoch convention
HIJRI_EPOCHS = MappingProxyType({
    'gregorian': 1948437,     # 16 July 622, proleptic Gregorian
    'astronomical': 1948439,  # Thursday epoch (15 July 622, Julian calendar)
    'civil': 1948440,         # Friday epoch (16 July 622, Julian calendar)
})
DEFAULT_HIJRI_EPOCH = 'gregorian'

HIJRI_MONTH_NAMES = (
    'Muharram',
    'Safar',
    "Rabi' al-awwal",
    "Rabi' al-thani",
    'Jumada al-awwal',
    'Jumada al-thani',
    'Rajab',
    "Sha'ban",
    'Ramadan',
    'Shawwal',
    "Dhu al-Qi'dah",
    'Dhu al-Hijjah',
)

# (month, day) -> holiday label; independent of year
ISLAMIC_HOLIDAYS = MappingProxyType({
    (1, 1): 'Islamic New Year',
    (1, 10): 'Ashura',
    (3, 12): 'Mawlid al-Nabi',
    (7, 27): "Isra and Mi'raj",
    (9, 1): 'First day of Ramadan',
    (9, 27): 'Laylat al-Qadr',
    (10, 1): 'Eid al-Fitr',
    (12, 9): 'Day of Arafah',
    (12, 10): 'Eid al-Adha',
})


def get_hijri_months() -> list[dict]:
    """Get list of Hijri months for UI dropdowns."""
    return [
        {'number': index, 'name': name}
        for index, name in enumerate(HIJRI_MONTH_NAMES, start=1)
    ]


def get_holidays() -> list[dict]:
    """Get the holiday table ordered by month and day."""
    return [
        {'month': month, 'day': day, 'name': name}
        for (month, day), name in sorted(ISLAMIC_HOLIDAYS.items())
    ]