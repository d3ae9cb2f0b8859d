"""Zakat profiles and reminder events."""
import sqlite3
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional

from zakat_tracker.errors import PersistenceConflict


@dataclass(frozen=True)
class ZakatProfile:
    """Per-user zakat tracking state."""
    user_id: str
    currency: str = 'USD'
    anniversary_month: Optional[int] = None
    anniversary_day: Optional[int] = None
    anniversary_hijri_year: Optional[int] = None  # Hijri year the lunar year started
    last_reminder_hijri_year: Optional[int] = None
    nisab_basis: Optional[str] = None  # None = global NISAB_BASIS

    @property
    def has_anniversary(self) -> bool:
        return self.anniversary_month is not None and self.anniversary_day is not None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ReminderEvent:
    user_id: str
    hijri_year: int
    fired_at: datetime


def _row_to_profile(row: sqlite3.Row) -> ZakatProfile:
    return ZakatProfile(
        user_id=row['user_id'],
        currency=row['currency'],
        anniversary_month=row['anniversary_month'],
        anniversary_day=row['anniversary_day'],
        anniversary_hijri_year=row['anniversary_hijri_year'],
        last_reminder_hijri_year=row['last_reminder_hijri_year'],
        nisab_basis=row['nisab_basis'],
    )


class ProfileStore:
    """SQLite-backed store for ZakatProfile and ReminderEvent rows."""

    def __init__(self, db: sqlite3.Connection):
        self.db = db

    def get_profile(self, user_id: str) -> Optional[ZakatProfile]:
        row = self.db.execute(
            'SELECT * FROM zakat_profiles WHERE user_id = ?', (user_id,)
        ).fetchone()
        return _row_to_profile(row) if row else None

    def list_profiles(self) -> list[ZakatProfile]:
        rows = self.db.execute('SELECT * FROM zakat_profiles ORDER BY user_id').fetchall()
        return [_row_to_profile(row) for row in rows]

    def save_profile(self, profile: ZakatProfile) -> ZakatProfile:
        """Create or replace a profile's settings."""
        self.db.execute('''
            INSERT INTO zakat_profiles (
                user_id, currency, anniversary_month, anniversary_day,
                anniversary_hijri_year, last_reminder_hijri_year, nisab_basis
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                currency = excluded.currency,
                anniversary_month = excluded.anniversary_month,
                anniversary_day = excluded.anniversary_day,
                anniversary_hijri_year = excluded.anniversary_hijri_year,
                last_reminder_hijri_year = excluded.last_reminder_hijri_year,
                nisab_basis = excluded.nisab_basis,
                updated_at = datetime('now')
        ''', (
            profile.user_id,
            profile.currency.upper(),
            profile.anniversary_month,
            profile.anniversary_day,
            profile.anniversary_hijri_year,
            profile.last_reminder_hijri_year,
            profile.nisab_basis,
        ))
        self.db.commit()
        return self.get_profile(profile.user_id)

    def set_anniversary(
        self,
        user_id: str,
        month: int,
        day: int,
        hijri_year: Optional[int] = None
    ) -> None:
        """Set the lunar anniversary unless one is already set."""
        self.db.execute('''
            UPDATE zakat_profiles
            SET anniversary_month = ?, anniversary_day = ?, anniversary_hijri_year = ?,
                updated_at = datetime('now')
            WHERE user_id = ? AND anniversary_month IS NULL
        ''', (month, day, hijri_year, user_id))
        self.db.commit()

    def clear_anniversary(self, user_id: str) -> None:
        self.db.execute('''
            UPDATE zakat_profiles
            SET anniversary_month = NULL, anniversary_day = NULL, anniversary_hijri_year = NULL,
                updated_at = datetime('now')
            WHERE user_id = ?
        ''', (user_id,))
        self.db.commit()

    def has_reminder_event(self, user_id: str, hijri_year: int) -> bool:
        row = self.db.execute(
            'SELECT 1 FROM reminder_events WHERE user_id = ? AND hijri_year = ?',
            (user_id, hijri_year)
        ).fetchone()
        return row is not None

    def record_reminder_event(
        self,
        user_id: str,
        hijri_year: int,
        fired_at: Optional[datetime] = None
    ) -> ReminderEvent:
        """Insert the reminder event for (user_id, hijri_year).

        Raises:
            PersistenceConflict: If the event already exists.
        """
        fired_at = fired_at or datetime.now(timezone.utc)
        try:
            self.db.execute(
                'INSERT INTO reminder_events (user_id, hijri_year, fired_at) VALUES (?, ?, ?)',
                (user_id, hijri_year, fired_at.isoformat())
            )
            self.db.execute('''
                UPDATE zakat_profiles
                SET last_reminder_hijri_year = MAX(COALESCE(last_reminder_hijri_year, 0), ?),
                    updated_at = datetime('now')
                WHERE user_id = ?
            ''', (hijri_year, user_id))
            self.db.commit()
        except sqlite3.IntegrityError as e:
            self.db.rollback()
            raise PersistenceConflict(
                f"Reminder already recorded for {user_id} in {hijri_year}"
            ) from e
        return ReminderEvent(user_id=user_id, hijri_year=hijri_year, fired_at=fired_at)

    def list_reminder_events(self, user_id: str) -> list[ReminderEvent]:
        rows = self.db.execute(
            'SELECT * FROM reminder_events WHERE user_id = ? ORDER BY hijri_year',
            (user_id,)
        ).fetchall()
        return [
            ReminderEvent(
                user_id=row['user_id'],
                hijri_year=row['hijri_year'],
                fired_at=datetime.fromisoformat(row['fired_at']),
            )
            for row in rows
        ]


def get_profile_store() -> ProfileStore:
    """Get a ProfileStore bound to the request database."""
    from zakat_tracker.db import get_db
    return ProfileStore(get_db())
