"""Error taxonomy for the calendar, nisab and reminder services."""


class ZakatTrackerError(Exception):
    """Base exception for zakat tracker errors."""
    pass


class InvalidCalendarInput(ZakatTrackerError, ValueError):
    """Out-of-range Gregorian or Hijri field values."""
    pass


class PriceFetchError(ZakatTrackerError):
    """Metal prices could not be fetched for a currency.

    Raised when the provider is unreachable, returns malformed data, or
    does not support the requested currency.
    """

    def __init__(self, currency: str, message: str):
        super().__init__(f"{currency}: {message}")
        self.currency = currency


class PersistenceConflict(ZakatTrackerError):
    """Another writer already created a row with the same unique key."""
    pass


class UserEvaluationError(ZakatTrackerError):
    """Evaluating a single user's reminder decision failed."""

    def __init__(self, user_id: str, message: str):
        super().__init__(f"user {user_id}: {message}")
        self.user_id = user_id
