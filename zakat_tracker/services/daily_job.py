"""Daily entrypoint: refresh nisab snapshots, then run the reminder pass.

Safe to invoke more than once per day; both halves are idempotent.
"""
import logging
import sqlite3
from datetime import date, datetime, timezone
from typing import Optional

from zakat_tracker.services.config import get_nisab_currencies
from zakat_tracker.services.nisab import NisabCalculator, get_nisab_calculator
from zakat_tracker.services.reminders import ReminderScheduler, get_reminder_scheduler
from zakat_tracker.services.time_provider import get_today

logger = logging.getLogger('daily_job')


def summarize_nisab(result: dict) -> dict:
    """Shape a refresh_all_currencies result for the job summary."""
    return {
        'updated': result['created_count'],
        'total': result['total'],
        'success_count': result['success_count'],
        'failure_count': result['failure_count'],
        'success': result['success'],
        'per_currency': result['per_currency'],
    }


def log_job(db: sqlite3.Connection, run_date: date, job: str, status: str,
            records: int, errors: int, error: str | None = None):
    """Log a job run."""
    db.execute('''
        INSERT INTO job_log (run_date, job, status, records_count, error_count, error_message)
        VALUES (?, ?, ?, ?, ?, ?)
    ''', (run_date.isoformat(), job, status, records, errors, error))
    db.commit()


def run_daily_job(
    currencies: Optional[list[str]] = None,
    today: Optional[date] = None,
    calculator: Optional[NisabCalculator] = None,
    scheduler: Optional[ReminderScheduler] = None,
    db: Optional[sqlite3.Connection] = None,
) -> dict:
    """Refresh nisab snapshots for all currencies, then evaluate reminders.

    The reminder pass runs even when some currencies failed; users whose
    currency has no snapshot are reported as per-user errors.
    """
    if today is None:
        today = get_today()
    if currencies is None:
        currencies = get_nisab_currencies()
    if calculator is None:
        calculator = get_nisab_calculator()
    if scheduler is None:
        scheduler = get_reminder_scheduler()
    if db is None:
        from zakat_tracker.db import get_db
        db = get_db()

    logger.info(f"Daily job for {today.isoformat()} ({len(currencies)} currencies)")

    nisab = summarize_nisab(calculator.refresh_all_currencies(today, currencies))
    log_job(
        db, today, 'nisab_refresh',
        'success' if nisab['success'] else ('partial' if nisab['success_count'] else 'failed'),
        nisab['updated'], nisab['failure_count'],
    )

    reminders = scheduler.process_all_users(today)
    log_job(
        db, today, 'zakat_reminders',
        'success' if not reminders['errors'] else 'partial',
        reminders['reminders_sent'], len(reminders['errors']),
        '; '.join(e['error'] for e in reminders['errors'][:5]) or None,
    )

    return {
        'success': nisab['success'] and not reminders['errors'],
        'date': today.isoformat(),
        'nisab': nisab,
        'reminders': reminders,
        'ran_at': datetime.now(timezone.utc).isoformat(),
    }


def get_recent_job_runs(db: sqlite3.Connection, limit: int = 20) -> list[dict]:
    rows = db.execute(
        'SELECT * FROM job_log ORDER BY id DESC LIMIT ?', (limit,)
    ).fetchall()
    return [dict(row) for row in rows]
