"""Tests for the nisab snapshot store."""
import sqlite3
import pytest
from datetime import date

from zakat_tracker.errors import PersistenceConflict
from zakat_tracker.services.snapshot_store import NisabSnapshot, SnapshotStore


def _snapshot(day=date(2026, 1, 15), currency='USD', gold=65.0, source='test'):
    return NisabSnapshot(
        date=day,
        currency=currency,
        gold_per_gram=gold,
        silver_per_gram=0.85,
        nisab_gold_value=round(gold * 87.48, 2),
        nisab_silver_value=520.51,
        gold_grams=87.48,
        silver_grams=612.36,
        source=source,
    )


class TestSnapshotStore:
    """Tests for SnapshotStore."""

    @pytest.fixture
    def store(self, db_conn):
        return SnapshotStore(db_conn)

    def test_insert_and_get(self, store):
        snapshot = _snapshot()
        store.insert(snapshot)
        assert store.get_snapshot(date(2026, 1, 15), 'usd') == snapshot

    def test_get_missing_returns_none(self, store):
        assert store.get_snapshot(date(2026, 1, 15), 'USD') is None

    def test_duplicate_insert_raises_conflict(self, store):
        store.insert(_snapshot())
        with pytest.raises(PersistenceConflict):
            store.insert(_snapshot(gold=70.0))

    def test_constraint_failure_other_than_duplicate_propagates(self, store):
        snapshot = NisabSnapshot(
            date=date(2026, 1, 15), currency='USD', gold_per_gram=None, silver_per_gram=0.85,
            nisab_gold_value=5686.2, nisab_silver_value=520.51,
            gold_grams=87.48, silver_grams=612.36, source='test',
        )
        with pytest.raises(sqlite3.IntegrityError, match='NOT NULL'):
            store.insert(snapshot)
        assert store.count() == 0

    def test_upsert_if_absent_keeps_first_row(self, store):
        first = store.upsert_if_absent(_snapshot(gold=65.0, source='first'))
        second = store.upsert_if_absent(_snapshot(gold=70.0, source='second'))

        assert second == first
        assert second.source == 'first'
        assert store.count() == 1

    def test_same_date_different_currency_is_separate(self, store):
        store.upsert_if_absent(_snapshot(currency='USD'))
        store.upsert_if_absent(_snapshot(currency='EUR'))
        assert [s.currency for s in store.list_snapshots(date(2026, 1, 15))] == ['EUR', 'USD']
        assert store.count(date(2026, 1, 15)) == 2

    def test_latest_snapshot(self, store):
        store.insert(_snapshot(day=date(2026, 1, 10)))
        store.insert(_snapshot(day=date(2026, 1, 12)))
        store.insert(_snapshot(day=date(2026, 1, 14), currency='EUR'))

        assert store.get_latest_snapshot('USD').date == date(2026, 1, 12)
        assert store.get_latest_snapshot('USD', on_or_before=date(2026, 1, 11)).date == date(2026, 1, 10)
        assert store.get_latest_snapshot('USD', on_or_before=date(2026, 1, 9)) is None
        assert store.get_latest_snapshot('GBP') is None

    def test_to_dict_serializes_date(self):
        data = _snapshot().to_dict()
        assert data['date'] == '2026-01-15'
        assert data['nisab_gold_value'] == 5686.2
