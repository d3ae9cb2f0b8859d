"""Tests for Flask CLI commands."""
import json
from dataclasses import replace

from zakat_tracker.db import get_db
from zakat_tracker.services.profile_store import ProfileStore


def test_init_db(app):
    result = app.test_cli_runner().invoke(args=['init-db'])
    assert result.exit_code == 0
    assert 'Initialized database' in result.output


def test_convert_date_gregorian(app):
    result = app.test_cli_runner().invoke(args=['convert-date', '0622-07-16'])
    assert result.exit_code == 0
    assert '1 Muharram 1 / July 16, 622' in result.output
    assert 'Islamic New Year' in result.output


def test_convert_date_hijri(app):
    result = app.test_cli_runner().invoke(args=['convert-date', '--hijri', '1446-10-01'])
    assert result.exit_code == 0
    assert result.output.startswith('1 Shawwal 1446 / ')
    assert 'Eid al-Fitr' in result.output


def test_convert_date_invalid(app):
    result = app.test_cli_runner().invoke(args=['convert-date', '--hijri', '1446-02-30'])
    assert result.exit_code != 0
    assert 'out of range' in result.output


def test_refresh_nisab(db_app, frozen_time):
    result = db_app.test_cli_runner().invoke(args=['refresh-nisab', '-c', 'USD', '-c', 'EUR'])
    assert result.exit_code == 0
    assert 'USD: existing' in result.output
    assert 'EUR: created' in result.output
    assert '2/2 currencies OK' in result.output


def test_refresh_nisab_failure_exits_nonzero(db_app):
    result = db_app.test_cli_runner().invoke(args=['refresh-nisab', '-c', 'JPY', '--date', '2026-01-15'])
    assert result.exit_code == 1
    assert 'JPY: FAILED' in result.output


def test_set_profile_and_wealth_then_process(db_app):
    runner = db_app.test_cli_runner()

    result = runner.invoke(args=['set-profile', 'user-2', '--anniversary', '09-01', '--basis', 'gold'])
    assert result.exit_code == 0
    profile = json.loads(result.output)
    assert (profile['anniversary_month'], profile['anniversary_day']) == (9, 1)
    assert profile['nisab_basis'] == 'gold'

    result = runner.invoke(args=['set-wealth', 'user-2', '9000', '--currency', 'usd'])
    assert result.exit_code == 0
    assert 'Recorded 9000.0 USD for user-2' in result.output

    result = runner.invoke(args=['process-reminders', '--date', '2026-01-15'])
    assert result.exit_code == 0
    assert 'Processed 2 profiles' in result.output


def test_set_profile_keeps_unspecified_fields(db_app):
    with db_app.app_context():
        store = ProfileStore(get_db())
        store.save_profile(replace(store.get_profile('user-1'), nisab_basis='gold'))
        store.set_anniversary('user-1', 9, 1, 1445)

    result = db_app.test_cli_runner().invoke(args=['set-profile', 'user-1', '--currency', 'EUR'])
    assert result.exit_code == 0

    profile = json.loads(result.output)
    assert profile['currency'] == 'EUR'
    assert profile['nisab_basis'] == 'gold'
    assert (profile['anniversary_month'], profile['anniversary_day']) == (9, 1)
    assert profile['anniversary_hijri_year'] == 1445


def test_set_profile_rejects_bad_anniversary(db_app):
    result = db_app.test_cli_runner().invoke(args=['set-profile', 'user-2', '--anniversary', '13-01'])
    assert result.exit_code != 0


def test_run_daily_job(db_app, frozen_time):
    result = db_app.test_cli_runner().invoke(args=['run-daily-job'])
    assert result.exit_code == 0

    summary = json.loads(result.output)
    assert summary['date'] == '2026-01-15'
    assert summary['nisab']['total'] == 6
    assert summary['reminders']['processed'] == 1

    with db_app.app_context():
        count = get_db().execute('SELECT COUNT(*) AS cnt FROM job_log').fetchone()['cnt']
    assert count == 2
