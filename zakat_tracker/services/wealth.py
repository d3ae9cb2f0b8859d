"""Sources of a user's current qualifying wealth."""
import sqlite3
from abc import ABC, abstractmethod


class WealthSource(ABC):
    """Supplies current qualifying wealth; the scheduler never computes it."""

    @abstractmethod
    def get_wealth(self, user_id: str, currency: str) -> float:
        """Return the user's qualifying wealth in `currency`.

        Raises:
            LookupError: If no figure is available for the user.
        """
        pass


class SqliteWealthSource(WealthSource):
    """Reads balances written to wealth_balances by the ledger side."""

    def __init__(self, db: sqlite3.Connection):
        self.db = db

    def get_wealth(self, user_id: str, currency: str) -> float:
        row = self.db.execute(
            'SELECT amount, currency FROM wealth_balances WHERE user_id = ?',
            (user_id,)
        ).fetchone()
        if row is None:
            raise LookupError(f"No wealth balance recorded for {user_id}")
        if row['currency'].upper() != currency.upper():
            raise LookupError(
                f"Wealth for {user_id} is in {row['currency']}, profile currency is {currency}"
            )
        return float(row['amount'])

    def set_wealth(self, user_id: str, amount: float, currency: str) -> None:
        self.db.execute('''
            INSERT INTO wealth_balances (user_id, amount, currency) VALUES (?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                amount = excluded.amount,
                currency = excluded.currency,
                updated_at = datetime('now')
        ''', (user_id, amount, currency.upper()))
        self.db.commit()


def get_wealth_source() -> SqliteWealthSource:
    from zakat_tracker.db import get_db
    return SqliteWealthSource(get_db())
