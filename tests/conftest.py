"""Pytest fixtures for Zakat tracker tests."""
import pytest
from datetime import date

from zakat_tracker import create_app
from zakat_tracker.db import connect, get_db, get_schema
from zakat_tracker.services.hijri_calendar import HijriCalendar, reset_calendar
from zakat_tracker.services.time_provider import TimeProvider


# Fixed "today" for deterministic tests - 2026-01-15 is a Wednesday
FROZEN_TODAY = date(2026, 1, 15)

# Environment that would otherwise leak into provider and policy selection
_CONFIG_ENV_VARS = (
    'GOLDAPI_KEY',
    'METALSDEV_KEY',
    'METAL_PROVIDER',
    'PRICING_ALLOW_NETWORK',
    'NISAB_GRAMS_CONVENTION',
    'NISAB_GOLD_GRAMS',
    'NISAB_SILVER_GRAMS',
    'NISAB_BASIS',
    'NISAB_CURRENCIES',
    'ZAKAT_REQUALIFY_POLICY',
    'HIJRI_EPOCH',
    'CRON_SECRET',
    'NOTIFICATION_SINK',
    'DAILY_JOB_BACKGROUND',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Run every test against default configuration."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_calendar()
    yield
    reset_calendar()


@pytest.fixture
def app(tmp_path):
    """Create application for testing.

    Yields:
        Flask application configured for testing.
    """
    app = create_app({'TESTING': True, 'DATA_DIR': str(tmp_path)})
    yield app


@pytest.fixture
def client(app):
    """Create test client.

    Args:
        app: Flask application fixture.

    Yields:
        Flask test client for making requests.
    """
    with app.test_client() as client:
        yield client


@pytest.fixture
def db_app(tmp_path):
    """Create application with a seeded database for testing.

    Seeds a USD nisab snapshot for FROZEN_TODAY, one profile without an
    anniversary and its wealth balance.

    Yields:
        Flask application with seeded database.
    """
    app = create_app({
        'TESTING': True,
        'DATA_DIR': str(tmp_path),
    })

    with app.app_context():
        db = get_db()
        db.executemany('''
            INSERT INTO nisab_snapshots (
                date, currency, gold_per_gram, silver_per_gram,
                nisab_gold_value, nisab_silver_value, gold_grams, silver_grams, source
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', [
            ('2026-01-14', 'USD', 64.0, 0.84, 5598.72, 514.38, 87.48, 612.36, 'seed'),
            ('2026-01-15', 'USD', 65.0, 0.85, 5686.2, 520.51, 87.48, 612.36, 'seed'),
        ])
        db.execute(
            "INSERT INTO zakat_profiles (user_id, currency) VALUES ('user-1', 'USD')"
        )
        db.execute(
            "INSERT INTO wealth_balances (user_id, amount, currency) VALUES ('user-1', 8000, 'USD')"
        )
        db.commit()

    yield app


@pytest.fixture
def db_client(db_app):
    """Create test client with initialized database.

    Yields:
        Flask test client with seeded database.
    """
    with db_app.test_client() as client:
        yield client


@pytest.fixture
def db_conn(tmp_path):
    """Plain SQLite connection with the schema applied, for store tests."""
    conn = connect(str(tmp_path / 'stores.sqlite'))
    conn.executescript(get_schema())
    yield conn
    conn.close()


@pytest.fixture
def calendar():
    """Calendar with the default epoch and tables."""
    return HijriCalendar()


@pytest.fixture
def frozen_time():
    """Fixture that freezes time to FROZEN_TODAY (2026-01-15).

    Yields the TimeProvider for use in tests. Automatically resets
    the default TimeProvider after the test completes.
    """
    provider = TimeProvider(frozen_date=FROZEN_TODAY)
    TimeProvider.set_default(provider)
    yield provider
    TimeProvider.reset_default()


@pytest.fixture
def frozen_today():
    """Returns the frozen date value for assertions."""
    return FROZEN_TODAY
