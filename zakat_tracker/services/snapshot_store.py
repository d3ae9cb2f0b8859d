"""Append-only storage for daily nisab snapshots."""
import sqlite3
from dataclasses import dataclass, asdict
from datetime import date
from typing import Optional

from zakat_tracker.errors import PersistenceConflict


@dataclass(frozen=True)
class NisabSnapshot:
    """Nisab thresholds for one currency on one date."""
    date: date
    currency: str
    gold_per_gram: float
    silver_per_gram: float
    nisab_gold_value: float
    nisab_silver_value: float
    gold_grams: float
    silver_grams: float
    source: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data['date'] = self.date.isoformat()
        return data


def _row_to_snapshot(row: sqlite3.Row) -> NisabSnapshot:
    return NisabSnapshot(
        date=date.fromisoformat(row['date']),
        currency=row['currency'],
        gold_per_gram=row['gold_per_gram'],
        silver_per_gram=row['silver_per_gram'],
        nisab_gold_value=row['nisab_gold_value'],
        nisab_silver_value=row['nisab_silver_value'],
        gold_grams=row['gold_grams'],
        silver_grams=row['silver_grams'],
        source=row['source'],
    )


class SnapshotStore:
    """SQLite-backed NisabSnapshot store keyed by (date, currency)."""

    def __init__(self, db: sqlite3.Connection):
        self.db = db

    def get_snapshot(self, snapshot_date: date, currency: str) -> Optional[NisabSnapshot]:
        row = self.db.execute(
            'SELECT * FROM nisab_snapshots WHERE date = ? AND currency = ?',
            (snapshot_date.isoformat(), currency.upper())
        ).fetchone()
        return _row_to_snapshot(row) if row else None

    def get_latest_snapshot(
        self,
        currency: str,
        on_or_before: Optional[date] = None
    ) -> Optional[NisabSnapshot]:
        """Most recent snapshot for a currency, optionally bounded by date."""
        if on_or_before is None:
            row = self.db.execute(
                'SELECT * FROM nisab_snapshots WHERE currency = ? ORDER BY date DESC LIMIT 1',
                (currency.upper(),)
            ).fetchone()
        else:
            row = self.db.execute(
                '''SELECT * FROM nisab_snapshots
                   WHERE currency = ? AND date <= ?
                   ORDER BY date DESC LIMIT 1''',
                (currency.upper(), on_or_before.isoformat())
            ).fetchone()
        return _row_to_snapshot(row) if row else None

    def insert(self, snapshot: NisabSnapshot) -> NisabSnapshot:
        """Insert a new snapshot.

        Raises:
            PersistenceConflict: If a snapshot already exists for the key.
        """
        try:
            self.db.execute('''
                INSERT INTO nisab_snapshots (
                    date, currency, gold_per_gram, silver_per_gram,
                    nisab_gold_value, nisab_silver_value, gold_grams, silver_grams, source
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                snapshot.date.isoformat(),
                snapshot.currency.upper(),
                snapshot.gold_per_gram,
                snapshot.silver_per_gram,
                snapshot.nisab_gold_value,
                snapshot.nisab_silver_value,
                snapshot.gold_grams,
                snapshot.silver_grams,
                snapshot.source,
            ))
            self.db.commit()
        except sqlite3.IntegrityError as e:
            self.db.rollback()
            if 'UNIQUE' not in str(e):
                raise
            raise PersistenceConflict(
                f"Snapshot exists for {snapshot.date.isoformat()} {snapshot.currency}"
            ) from e
        return snapshot

    def upsert_if_absent(self, snapshot: NisabSnapshot) -> NisabSnapshot:
        """Insert the snapshot unless one exists; return the stored row.

        A lost race with another writer returns the winner's row.
        """
        try:
            self.insert(snapshot)
        except PersistenceConflict:
            pass
        stored = self.get_snapshot(snapshot.date, snapshot.currency)
        if stored is None:
            raise PersistenceConflict(
                f"Snapshot for {snapshot.date.isoformat()} {snapshot.currency} vanished after insert"
            )
        return stored

    def list_snapshots(self, snapshot_date: date) -> list[NisabSnapshot]:
        rows = self.db.execute(
            'SELECT * FROM nisab_snapshots WHERE date = ? ORDER BY currency',
            (snapshot_date.isoformat(),)
        ).fetchall()
        return [_row_to_snapshot(row) for row in rows]

    def count(self, snapshot_date: Optional[date] = None) -> int:
        if snapshot_date is None:
            row = self.db.execute('SELECT COUNT(*) AS cnt FROM nisab_snapshots').fetchone()
        else:
            row = self.db.execute(
                'SELECT COUNT(*) AS cnt FROM nisab_snapshots WHERE date = ?',
                (snapshot_date.isoformat(),)
            ).fetchone()
        return row['cnt']


def get_snapshot_store() -> SnapshotStore:
    """Get a SnapshotStore bound to the request database."""
    from zakat_tracker.db import get_db
    return SnapshotStore(get_db())
