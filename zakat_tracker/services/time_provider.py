"""Time provider abstraction for testable date handling.

All dates in this module are UTC. The daily job treats UTC midnight as
the boundary of "today" for both nisab snapshots and reminder checks.
"""
from datetime import date, timezone, datetime
from typing import Optional


class TimeProvider:
    """Provides the current date, allowing tests to freeze time.

    Usage:
        # Production: uses real UTC date
        provider = TimeProvider()
        today = provider.today()

        # Testing: freeze to specific date
        provider = TimeProvider(frozen_date=date(2025, 3, 4))
        today = provider.today()  # Always returns 2025-03-04
    """

    _instance: Optional['TimeProvider'] = None

    def __init__(self, frozen_date: Optional[date] = None):
        self._frozen_date = frozen_date

    def today(self) -> date:
        """Get current UTC date, or the frozen date if set."""
        if self._frozen_date is not None:
            return self._frozen_date
        return datetime.now(timezone.utc).date()

    def now(self) -> datetime:
        """Current UTC timestamp; midnight of the frozen date when frozen."""
        if self._frozen_date is not None:
            return datetime(
                self._frozen_date.year, self._frozen_date.month, self._frozen_date.day,
                tzinfo=timezone.utc,
            )
        return datetime.now(timezone.utc)

    @classmethod
    def get_default(cls) -> 'TimeProvider':
        """Get the default TimeProvider instance (singleton for production)."""
        if cls._instance is None:
            cls._instance = TimeProvider()
        return cls._instance

    @classmethod
    def set_default(cls, provider: 'TimeProvider') -> None:
        """Set the default TimeProvider (for testing)."""
        cls._instance = provider

    @classmethod
    def reset_default(cls) -> None:
        """Reset to production TimeProvider."""
        cls._instance = None


def get_today(time_provider: Optional[TimeProvider] = None) -> date:
    """Convenience function to get today's UTC date."""
    if time_provider is None:
        time_provider = TimeProvider.get_default()
    return time_provider.today()


def get_now(time_provider: Optional[TimeProvider] = None) -> datetime:
    if time_provider is None:
        time_provider = TimeProvider.get_default()
    return time_provider.now()
