"""Reminder messages and the sinks that deliver them."""
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from zakat_tracker.constants import ZAKAT_RATE, NOTIFICATION_TYPE_ZAKAT_REMINDER
from zakat_tracker.services.hijri_calendar import HijriDate, format_hijri_date

logger = logging.getLogger('notifications')


@dataclass
class ReminderMessage:
    title: str
    message: str
    category: str = 'zakat'
    metadata: dict = field(default_factory=dict)


def format_amount(amount: float, currency: str) -> str:
    """Format as '1,234 USD' (no decimals)."""
    return f"{amount:,.0f} {currency}"


def build_reminder_message(
    hijri_date: HijriDate,
    current_wealth: float,
    nisab_value: float,
    currency: str,
) -> ReminderMessage:
    """Compose the anniversary reminder for a user whose wealth is above nisab."""
    zakat_due = round(current_wealth * ZAKAT_RATE, 2)
    return ReminderMessage(
        title='Zakat Reminder: Your Zakat Is Due',
        message=(
            f"Your lunar year completed on {format_hijri_date(hijri_date)}. "
            f"Your Zakat of {format_amount(zakat_due, currency)} is due. "
            f"Your savings of {format_amount(current_wealth, currency)} exceed "
            f"the Nisab threshold of {format_amount(nisab_value, currency)}."
        ),
        metadata={
            'hijri_date': hijri_date.to_dict(),
            'zakat_amount_due': zakat_due,
            'current_wealth': current_wealth,
            'nisab_threshold': nisab_value,
            'currency': currency,
        },
    )


class NotificationSink(ABC):
    """Delivers a prepared message; delivery mechanics live outside the core."""

    @abstractmethod
    def send(self, user_id: str, message: ReminderMessage) -> None:
        pass


class DatabaseNotificationSink(NotificationSink):
    """Stores reminders as in-app notifications."""

    def __init__(self, db: sqlite3.Connection):
        self.db = db

    def send(self, user_id: str, message: ReminderMessage) -> None:
        self.db.execute('''
            INSERT INTO notifications (user_id, type, title, message, category, metadata)
            VALUES (?, ?, ?, ?, ?, ?)
        ''', (
            user_id,
            NOTIFICATION_TYPE_ZAKAT_REMINDER,
            message.title,
            message.message,
            message.category,
            json.dumps(message.metadata),
        ))
        self.db.commit()
        logger.info(f"Zakat reminder stored for {user_id}")


class LoggingNotificationSink(NotificationSink):
    """Writes reminders to the log only."""

    def send(self, user_id: str, message: ReminderMessage) -> None:
        logger.info(f"Zakat reminder for {user_id}: {message.title} - {message.message}")


def get_notification_sink() -> NotificationSink:
    from zakat_tracker.db import get_db
    from zakat_tracker.services.config import get_notification_sink_name

    name = get_notification_sink_name()
    if name == 'log':
        return LoggingNotificationSink()
    if name == 'database':
        return DatabaseNotificationSink(get_db())
    raise ValueError(f"Unknown NOTIFICATION_SINK: {name}")
