"""Tests for the daily job and its background thread."""
import pytest
from unittest.mock import patch

from zakat_tracker.services.daily_job import run_daily_job, get_recent_job_runs, summarize_nisab
from zakat_tracker.services.hijri_calendar import HijriCalendar
from zakat_tracker.services.nisab import NisabCalculator
from zakat_tracker.services.profile_store import ProfileStore, ZakatProfile
from zakat_tracker.services.reminders import ReminderScheduler
from zakat_tracker.services.snapshot_store import SnapshotStore
from zakat_tracker.services import background_jobs
from tests.fakes.fake_providers import FakeMetalProvider
from tests.fakes.fake_sinks import RecordingSink, FakeWealthSource


@pytest.fixture
def wiring(db_conn):
    """Calculator and scheduler sharing one database."""
    snapshots = SnapshotStore(db_conn)
    profiles = ProfileStore(db_conn)
    provider = FakeMetalProvider(failing=('GBP',))
    sink = RecordingSink()
    calculator = NisabCalculator(provider, snapshots)
    scheduler = ReminderScheduler(
        profiles, snapshots, FakeWealthSource({'u1': 10000.0}), sink,
        calendar=HijriCalendar(), nisab_basis='silver',
    )
    return {
        'db': db_conn,
        'provider': provider,
        'profiles': profiles,
        'sink': sink,
        'calculator': calculator,
        'scheduler': scheduler,
    }


def _run(wiring, today, currencies=('USD', 'EUR', 'GBP')):
    return run_daily_job(
        currencies=list(currencies),
        today=today,
        calculator=wiring['calculator'],
        scheduler=wiring['scheduler'],
        db=wiring['db'],
    )


class TestRunDailyJob:
    """Tests for run_daily_job."""

    def test_refreshes_then_evaluates(self, wiring, frozen_today):
        wiring['profiles'].save_profile(ZakatProfile(user_id='u1'))

        result = _run(wiring, frozen_today)

        assert result['date'] == frozen_today.isoformat()
        assert result['nisab']['updated'] == 2
        assert result['nisab']['failure_count'] == 1
        assert result['success'] is False
        assert result['reminders']['processed'] == 1
        assert result['reminders']['decisions'][0]['action'] == 'anniversary_set'

    def test_logs_both_jobs(self, wiring, frozen_today):
        _run(wiring, frozen_today)

        runs = get_recent_job_runs(wiring['db'])
        by_job = {run['job']: run for run in runs}
        assert by_job['nisab_refresh']['status'] == 'partial'
        assert by_job['nisab_refresh']['records_count'] == 2
        assert by_job['nisab_refresh']['error_count'] == 1
        assert by_job['zakat_reminders']['status'] == 'success'

    def test_second_run_same_day_is_noop(self, wiring, frozen_today):
        _run(wiring, frozen_today, currencies=('USD',))
        calls_after_first = len(wiring['provider'].calls)

        result = _run(wiring, frozen_today, currencies=('USD',))

        assert result['success'] is True
        assert result['nisab']['updated'] == 0
        assert len(wiring['provider'].calls) == calls_after_first

    def test_reminder_errors_reported(self, wiring, frozen_today):
        wiring['profiles'].save_profile(ZakatProfile(user_id='u2', currency='GBP'))

        result = _run(wiring, frozen_today)

        assert result['reminders']['errors'][0]['user_id'] == 'u2'
        by_job = {run['job']: run for run in get_recent_job_runs(wiring['db'])}
        assert by_job['zakat_reminders']['status'] == 'partial'
        assert 'GBP' in by_job['zakat_reminders']['error_message']

    def test_summarize_nisab(self):
        summary = summarize_nisab({
            'created_count': 1,
            'total': 2,
            'success_count': 2,
            'failure_count': 0,
            'success': True,
            'per_currency': {},
        })
        assert summary['updated'] == 1
        assert summary['success'] is True


class TestBackgroundJobs:
    """Tests for the in-process job thread."""

    def test_run_job_cycle_uses_app_context(self, db_app, frozen_time):
        result = background_jobs.run_job_cycle(db_app)
        assert result['date'] == '2026-01-15'
        assert result['nisab']['total'] == 6

    def test_start_and_stop(self, app, monkeypatch):
        monkeypatch.setenv('DAILY_JOB_INTERVAL_SECONDS', '3600')
        with patch.object(background_jobs, 'run_job_cycle') as mock_cycle:
            background_jobs.start_background_jobs(app)
            assert background_jobs._job_thread.is_alive()
            background_jobs.stop_background_jobs()

        assert background_jobs._job_thread is None
        mock_cycle.assert_not_called()
