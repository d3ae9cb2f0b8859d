"""Flask CLI commands for the database, daily job and calendar."""
import json
from dataclasses import replace
from datetime import datetime

import click
from flask.cli import with_appcontext

from zakat_tracker.db import init_db, get_db_path
from zakat_tracker.errors import InvalidCalendarInput


def _parse_date(value: str | None):
    from zakat_tracker.services.time_provider import get_today

    if value is None:
        return get_today()
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError as e:
        raise click.BadParameter(f"Invalid date {value!r}. Use YYYY-MM-DD") from e


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Initialize the SQLite database with schema."""
    init_db()
    click.echo(f'Initialized database at {get_db_path()}')


@click.command('refresh-nisab')
@click.option('--currency', '-c', multiple=True, help='Currency to refresh (repeatable). Default: NISAB_CURRENCIES')
@click.option('--date', 'date_str', default=None, help='Snapshot date (YYYY-MM-DD). Default: today')
@with_appcontext
def refresh_nisab_command(currency, date_str):
    """Create nisab snapshots for the given date."""
    from zakat_tracker.services.config import get_nisab_currencies
    from zakat_tracker.services.nisab import get_nisab_calculator

    today = _parse_date(date_str)
    currencies = list(currency) or get_nisab_currencies()
    result = get_nisab_calculator().refresh_all_currencies(today, currencies)

    for code, item in sorted(result['per_currency'].items()):
        if item['status'] == 'failed':
            click.echo(f'  {code}: FAILED ({item["error"]})')
        else:
            snap = item['snapshot']
            click.echo(
                f'  {code}: {item["status"]} gold={snap["nisab_gold_value"]:.2f} '
                f'silver={snap["nisab_silver_value"]:.2f}'
            )
    click.echo(f'{result["success_count"]}/{result["total"]} currencies OK')
    if not result['success']:
        raise SystemExit(1)


@click.command('process-reminders')
@click.option('--date', 'date_str', default=None, help='Evaluation date (YYYY-MM-DD). Default: today')
@with_appcontext
def process_reminders_command(date_str):
    """Evaluate all zakat profiles and send due reminders."""
    from zakat_tracker.services.reminders import get_reminder_scheduler

    result = get_reminder_scheduler().process_all_users(_parse_date(date_str))
    click.echo(
        f'Processed {result["processed"]} profiles, '
        f'sent {result["reminders_sent"]} reminders, {len(result["errors"])} errors'
    )
    for error in result['errors']:
        click.echo(f'  {error["user_id"]}: {error["error"]}')


@click.command('run-daily-job')
@click.option('--date', 'date_str', default=None, help='Job date (YYYY-MM-DD). Default: today')
@with_appcontext
def run_daily_job_command(date_str):
    """Refresh nisab snapshots and run the reminder pass."""
    from zakat_tracker.services.daily_job import run_daily_job

    result = run_daily_job(today=_parse_date(date_str))
    click.echo(json.dumps({
        'date': result['date'],
        'nisab': {k: v for k, v in result['nisab'].items() if k != 'per_currency'},
        'reminders': {
            'processed': result['reminders']['processed'],
            'reminders_sent': result['reminders']['reminders_sent'],
            'errors': result['reminders']['errors'],
        },
    }, indent=2))


@click.command('convert-date')
@click.argument('value')
@click.option('--hijri', is_flag=True, help='Treat VALUE as a Hijri date')
def convert_date_command(value, hijri):
    """Convert a YYYY-MM-DD date between Gregorian and Hijri."""
    from zakat_tracker.services.hijri_calendar import HijriDate, get_calendar, format_dual_date

    calendar = get_calendar()
    try:
        if hijri:
            gregorian = calendar.to_gregorian(HijriDate.fromisoformat(value))
        else:
            gregorian = _parse_date(value)
        dual = calendar.dual_date(gregorian)
    except InvalidCalendarInput as e:
        raise click.BadParameter(str(e)) from e

    click.echo(format_dual_date(dual))
    if dual.holiday:
        click.echo(dual.holiday)


@click.command('set-profile')
@click.argument('user_id')
@click.option('--currency', default=None, help='Ledger currency (default: unchanged, USD for new profiles)')
@click.option('--anniversary', default=None, help='Hijri anniversary as MM-DD (default: unchanged)')
@click.option('--basis', type=click.Choice(['gold', 'silver', 'lower']), default=None,
              help='Per-user nisab basis override')
@with_appcontext
def set_profile_command(user_id, currency, anniversary, basis):
    """Create or update a zakat profile.

    Options that are not given keep their stored values.
    """
    from zakat_tracker.services.profile_store import ZakatProfile, get_profile_store

    month = day = None
    if anniversary:
        try:
            month, day = (int(part) for part in anniversary.split('-'))
        except ValueError as e:
            raise click.BadParameter('Use MM-DD for --anniversary') from e
        if not 1 <= month <= 12 or not 1 <= day <= 30:
            raise click.BadParameter(f'Anniversary out of range: {anniversary}')

    store = get_profile_store()
    existing = store.get_profile(user_id) or ZakatProfile(user_id=user_id)
    changes = {}
    if currency:
        changes['currency'] = currency
    if basis:
        changes['nisab_basis'] = basis
    if anniversary:
        changes.update(anniversary_month=month, anniversary_day=day, anniversary_hijri_year=None)
    profile = store.save_profile(replace(existing, **changes))
    click.echo(json.dumps(profile.to_dict()))


@click.command('set-wealth')
@click.argument('user_id')
@click.argument('amount', type=float)
@click.option('--currency', default='USD', help='Currency of AMOUNT')
@with_appcontext
def set_wealth_command(user_id, amount, currency):
    """Record a user's current qualifying wealth."""
    from zakat_tracker.services.wealth import get_wealth_source

    get_wealth_source().set_wealth(user_id, amount, currency)
    click.echo(f'Recorded {amount} {currency.upper()} for {user_id}')


def register_cli(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(init_db_command)
    app.cli.add_command(refresh_nisab_command)
    app.cli.add_command(process_reminders_command)
    app.cli.add_command(run_daily_job_command)
    app.cli.add_command(convert_date_command)
    app.cli.add_command(set_profile_command)
    app.cli.add_command(set_wealth_command)
