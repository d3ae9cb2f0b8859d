"""API routes for the calendar, nisab snapshots and daily jobs."""
from datetime import datetime, timezone
from flask import Blueprint, jsonify, request

from zakat_tracker.data.hijri import get_hijri_months, get_holidays
from zakat_tracker.errors import InvalidCalendarInput, PriceFetchError
from zakat_tracker.services.config import get_cron_secret, get_nisab_currencies, get_policy_config
from zakat_tracker.services.daily_job import run_daily_job, summarize_nisab
from zakat_tracker.services.hijri_calendar import (
    HijriDate,
    get_calendar,
    format_dual_date,
)
from zakat_tracker.services.nisab import get_nisab_calculator, select_threshold
from zakat_tracker.services.reminders import get_reminder_scheduler
from zakat_tracker.services.snapshot_store import get_snapshot_store
from zakat_tracker.services.time_provider import get_today

api_bp = Blueprint('api', __name__)


def _unauthorized():
    """Return a 401 response unless the request carries the cron secret."""
    secret = get_cron_secret()
    if secret and request.headers.get('Authorization') != f'Bearer {secret}':
        return jsonify({'error': 'Unauthorized'}), 401
    return None


def _parse_date_arg(name: str):
    value = request.args.get(name)
    if value is None:
        return get_today()
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError as e:
        raise InvalidCalendarInput(f"Invalid {name} format. Use YYYY-MM-DD") from e


@api_bp.errorhandler(InvalidCalendarInput)
def _invalid_calendar_input(e):
    return jsonify({'error': str(e)}), 400


@api_bp.route('/nisab/update-daily', methods=['GET', 'POST'])
def nisab_update_daily():
    """Create today's nisab snapshot(s).

    Query Parameters:
        currency: Single currency to refresh (default: all configured)
    """
    denied = _unauthorized()
    if denied:
        return denied

    today = get_today()
    calculator = get_nisab_calculator()
    currency = request.args.get('currency')

    if currency:
        try:
            snapshot = calculator.refresh_daily_snapshot(currency, today)
        except PriceFetchError as e:
            return jsonify({'success': False, 'error': str(e)}), 500
        return jsonify({
            'success': True,
            'message': f'Nisab snapshot available for {snapshot.date.isoformat()}',
            'data': snapshot.to_dict(),
        })

    result = summarize_nisab(calculator.refresh_all_currencies(today, get_nisab_currencies()))
    return jsonify(result), 200 if result['success'] else 500


@api_bp.route('/nisab/latest')
def nisab_latest():
    """Return the most recent nisab snapshot for a currency."""
    currency = request.args.get('currency', 'USD').upper()
    snapshot = get_snapshot_store().get_latest_snapshot(currency)
    if snapshot is None:
        return jsonify({'error': f'No nisab snapshot for {currency}'}), 404

    policy = get_policy_config()
    return jsonify({
        'data': snapshot.to_dict(),
        'threshold': select_threshold(snapshot, policy['nisab_basis']),
        'policy': policy,
    })


@api_bp.route('/zakat/reminders', methods=['GET', 'POST'])
def zakat_reminders():
    """Run the reminder pass for today."""
    denied = _unauthorized()
    if denied:
        return denied

    result = get_reminder_scheduler().process_all_users(get_today())
    return jsonify({
        'success': not result['errors'],
        **result,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


@api_bp.route('/jobs/daily', methods=['GET', 'POST'])
def jobs_daily():
    """Run the full daily job (nisab refresh + reminders)."""
    denied = _unauthorized()
    if denied:
        return denied

    return jsonify(run_daily_job())


@api_bp.route('/calendar/today')
def calendar_today():
    """Return today's date in both calendars."""
    dual = get_calendar().dual_date(get_today())
    return jsonify({**dual.to_dict(), 'formatted': format_dual_date(dual)})


@api_bp.route('/calendar/convert')
def calendar_convert():
    """Convert between calendars.

    Query Parameters:
        date: Gregorian YYYY-MM-DD, or
        hijri: Hijri YYYY-MM-DD
    """
    calendar = get_calendar()
    hijri_arg = request.args.get('hijri')
    if hijri_arg:
        gregorian = calendar.to_gregorian(HijriDate.fromisoformat(hijri_arg))
    else:
        gregorian = _parse_date_arg('date')

    dual = calendar.dual_date(gregorian)
    return jsonify({**dual.to_dict(), 'formatted': format_dual_date(dual)})


@api_bp.route('/calendar/month')
def calendar_month():
    """Return the Gregorian range of a Hijri month."""
    calendar = get_calendar()
    try:
        year = int(request.args['year'])
        month = int(request.args['month'])
    except (KeyError, ValueError):
        return jsonify({'error': 'year and month are required integers'}), 400

    start, end = calendar.month_range(year, month)
    return jsonify({
        'year': year,
        'month': month,
        'name': calendar.month_name(month),
        'days': calendar.month_length(year, month),
        'start': start.isoformat(),
        'end': end.isoformat(),
    })


@api_bp.route('/calendar/reference')
def calendar_reference():
    """Return month names and the holiday table."""
    return jsonify({'months': get_hijri_months(), 'holidays': get_holidays()})


@api_bp.route('/zakat/profile/<user_id>')
def zakat_profile(user_id):
    """Return a profile with its next anniversary and reminder history."""
    from zakat_tracker.services.profile_store import get_profile_store

    store = get_profile_store()
    profile = store.get_profile(user_id)
    if profile is None:
        return jsonify({'error': f'No zakat profile for {user_id}'}), 404

    return jsonify({
        'profile': profile.to_dict(),
        'next_anniversary': get_reminder_scheduler().next_anniversary(profile, get_today()),
        'reminders': [
            {'hijri_year': e.hijri_year, 'fired_at': e.fired_at.isoformat()}
            for e in store.list_reminder_events(user_id)
        ],
    })


@api_bp.route('/status')
def status():
    """Return provider configuration, policy and recent job runs."""
    from zakat_tracker.db import get_db
    from zakat_tracker.services.config import get_provider_keys_status
    from zakat_tracker.services.daily_job import get_recent_job_runs
    from zakat_tracker.services.providers.registry import get_provider_status

    return jsonify({
        'providers': get_provider_status(),
        'keys': get_provider_keys_status(),
        'policy': get_policy_config(),
        'currencies': get_nisab_currencies(),
        'recent_jobs': get_recent_job_runs(get_db(), limit=10),
    })
