"""Fake notification sink and wealth source for scheduler tests."""
from zakat_tracker.services.notifications import NotificationSink, ReminderMessage
from zakat_tracker.services.wealth import WealthSource


class RecordingSink(NotificationSink):
    """Collects (user_id, message) pairs instead of delivering them."""

    def __init__(self, fail_for: tuple = ()):
        self.sent: list[tuple[str, ReminderMessage]] = []
        self.fail_for = set(fail_for)

    def send(self, user_id: str, message: ReminderMessage) -> None:
        if user_id in self.fail_for:
            raise RuntimeError(f"Delivery failed for {user_id}")
        self.sent.append((user_id, message))


class FakeWealthSource(WealthSource):
    """Wealth figures from a dict; unknown users raise LookupError."""

    def __init__(self, balances: dict | None = None):
        self.balances = dict(balances or {})

    def get_wealth(self, user_id: str, currency: str) -> float:
        if user_id not in self.balances:
            raise LookupError(f"No wealth balance recorded for {user_id}")
        return self.balances[user_id]
