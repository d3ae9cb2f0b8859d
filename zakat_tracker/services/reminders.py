"""Zakat obligation tracking and anniversary reminders.

Zakat is due once qualifying wealth has stayed at or above nisab for a
full lunar year, and recurs on that lunar anniversary while wealth stays
at or above nisab. Per user the scheduler moves through:

    unqualified  -> no anniversary set
    tracking     -> anniversary set, wealth may fluctuate
    due          -> today matches the anniversary and wealth >= nisab
    reminded     -> a ReminderEvent exists for this Hijri year

The ReminderEvent row keyed by (user_id, hijri_year) is the only dedup
guard. It is claimed before the notification goes out, so concurrent or
repeated runs send at most one reminder per lunar year.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import date
from typing import Optional

from zakat_tracker.errors import PersistenceConflict, UserEvaluationError
from zakat_tracker.services.config import get_nisab_basis, get_requalify_policy
from zakat_tracker.services.hijri_calendar import HijriCalendar, HijriDate, get_calendar
from zakat_tracker.services.nisab import select_threshold
from zakat_tracker.services.notifications import NotificationSink, build_reminder_message
from zakat_tracker.services.profile_store import ProfileStore, ZakatProfile
from zakat_tracker.services.snapshot_store import SnapshotStore, NisabSnapshot
from zakat_tracker.services.time_provider import get_now
from zakat_tracker.services.wealth import WealthSource

logger = logging.getLogger('reminders')

# Decision actions
ANNIVERSARY_SET = 'anniversary_set'
NOT_QUALIFIED = 'not_qualified'
NOT_DUE = 'not_due'
LAPSED = 'lapsed'
ALREADY_REMINDED = 'already_reminded'
REMINDER_SENT = 'reminder_sent'


@dataclass
class Decision:
    """Outcome of evaluating one user on one day."""
    user_id: str
    action: str
    hijri_year: int
    reminder_sent: bool = False
    detail: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class ReminderScheduler:
    """Evaluates users against their lunar anniversary and nisab."""

    def __init__(
        self,
        profile_store: ProfileStore,
        snapshot_store: SnapshotStore,
        wealth_source: WealthSource,
        notifier: NotificationSink,
        calendar: Optional[HijriCalendar] = None,
        nisab_basis: Optional[str] = None,
        requalify_policy: Optional[str] = None,
    ):
        self.profile_store = profile_store
        self.snapshot_store = snapshot_store
        self.wealth_source = wealth_source
        self.notifier = notifier
        self.calendar = calendar or get_calendar()
        self.nisab_basis = nisab_basis or get_nisab_basis()
        self.requalify_policy = requalify_policy or get_requalify_policy()

    def _is_anniversary(self, profile: ZakatProfile, today_hijri: HijriDate) -> bool:
        anniversary = self.calendar.anniversary_in_year(
            today_hijri.year, profile.anniversary_month, profile.anniversary_day
        )
        return (today_hijri.month, today_hijri.day) == (anniversary.month, anniversary.day)

    def evaluate_user(
        self,
        profile: ZakatProfile,
        today_hijri: HijriDate,
        current_wealth: float,
        nisab_value: float,
    ) -> Decision:
        """Decide whether to set an anniversary or send a reminder today."""
        user_id = profile.user_id
        year = today_hijri.year

        if not profile.has_anniversary:
            if current_wealth >= nisab_value:
                self.profile_store.set_anniversary(user_id, today_hijri.month, today_hijri.day, year)
                logger.info(f"{user_id}: reached nisab, lunar year starts {today_hijri.isoformat()}")
                return Decision(user_id, ANNIVERSARY_SET, year, detail=today_hijri.isoformat())
            return Decision(user_id, NOT_QUALIFIED, year)

        if not self._is_anniversary(profile, today_hijri):
            return Decision(user_id, NOT_DUE, year)

        # The year the anniversary was set is not a completed lunar year
        if profile.anniversary_hijri_year is not None and year <= profile.anniversary_hijri_year:
            return Decision(user_id, NOT_DUE, year, detail='lunar year not yet complete')

        if current_wealth < nisab_value:
            if self.requalify_policy == 'reset':
                self.profile_store.clear_anniversary(user_id)
                detail = 'anniversary cleared'
            else:
                detail = 'anniversary kept'
            logger.info(f"{user_id}: below nisab on anniversary {today_hijri.isoformat()}, {detail}")
            return Decision(user_id, LAPSED, year, detail=detail)

        if self.profile_store.has_reminder_event(user_id, year):
            return Decision(user_id, ALREADY_REMINDED, year)

        try:
            self.profile_store.record_reminder_event(user_id, year, fired_at=get_now())
        except PersistenceConflict:
            return Decision(user_id, ALREADY_REMINDED, year, detail='claimed by a concurrent run')

        message = build_reminder_message(today_hijri, current_wealth, nisab_value, profile.currency)
        self.notifier.send(user_id, message)
        logger.info(f"{user_id}: zakat reminder sent for {year} AH")
        return Decision(user_id, REMINDER_SENT, year, reminder_sent=True)

    def _nisab_snapshot(self, currency: str, today: date, cache: dict) -> NisabSnapshot:
        if currency not in cache:
            snapshot = self.snapshot_store.get_latest_snapshot(currency, on_or_before=today)
            if snapshot is not None and snapshot.date != today:
                logger.warning(f"Using nisab snapshot from {snapshot.date.isoformat()} for {currency}")
            cache[currency] = snapshot
        return cache[currency]

    def evaluate_profile(self, profile: ZakatProfile, today: date, today_hijri: HijriDate, cache: dict) -> Decision:
        """Gather wealth and nisab for a profile, then evaluate it.

        Raises:
            UserEvaluationError: If any step fails.
        """
        try:
            snapshot = self._nisab_snapshot(profile.currency, today, cache)
            if snapshot is None:
                raise UserEvaluationError(profile.user_id, f"No nisab snapshot for {profile.currency}")
            nisab_value = select_threshold(snapshot, profile.nisab_basis or self.nisab_basis)
            wealth = self.wealth_source.get_wealth(profile.user_id, profile.currency)
            return self.evaluate_user(profile, today_hijri, wealth, nisab_value)
        except UserEvaluationError:
            raise
        except Exception as e:
            raise UserEvaluationError(profile.user_id, str(e)) from e

    def process_all_users(self, today: date) -> dict:
        """Evaluate every profile, collecting per-user failures.

        Returns:
            Dict with processed, reminders_sent, errors and decisions.
        """
        today_hijri = self.calendar.to_hijri(today)
        cache: dict = {}
        processed = 0
        reminders_sent = 0
        errors = []
        decisions = []

        for profile in self.profile_store.list_profiles():
            processed += 1
            try:
                decision = self.evaluate_profile(profile, today, today_hijri, cache)
            except UserEvaluationError as e:
                logger.warning(f"Reminder evaluation failed: {e}")
                errors.append({'user_id': e.user_id, 'error': str(e)})
                continue
            decisions.append(decision.to_dict())
            if decision.reminder_sent:
                reminders_sent += 1

        logger.info(
            f"Reminder pass {today.isoformat()} ({today_hijri.isoformat()} AH): "
            f"{processed} processed, {reminders_sent} sent, {len(errors)} errors"
        )

        return {
            'date': today.isoformat(),
            'hijri_date': today_hijri.to_dict(),
            'processed': processed,
            'reminders_sent': reminders_sent,
            'errors': errors,
            'decisions': decisions,
        }

    def next_anniversary(self, profile: ZakatProfile, today: date) -> Optional[dict]:
        """Project the profile's next anniversary onto the Gregorian calendar."""
        if not profile.has_anniversary:
            return None
        hijri = self.calendar.next_occurrence(profile.anniversary_month, profile.anniversary_day, today)
        gregorian = self.calendar.to_gregorian(hijri)
        return {
            'hijri': hijri.to_dict(),
            'gregorian': gregorian.isoformat(),
            'days_until': (gregorian - today).days,
        }


def get_reminder_scheduler() -> ReminderScheduler:
    """Get a ReminderScheduler wired to the request database."""
    from zakat_tracker.services.notifications import get_notification_sink
    from zakat_tracker.services.profile_store import get_profile_store
    from zakat_tracker.services.snapshot_store import get_snapshot_store
    from zakat_tracker.services.wealth import get_wealth_source

    return ReminderScheduler(
        profile_store=get_profile_store(),
        snapshot_store=get_snapshot_store(),
        wealth_source=get_wealth_source(),
        notifier=get_notification_sink(),
    )
