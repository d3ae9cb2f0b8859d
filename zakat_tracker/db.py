"""SQLite connection management for snapshots, profiles and reminders."""
import os
import sqlite3
from flask import current_app, g


def get_db_path() -> str:
    """Get the path to the SQLite database file."""
    data_dir = current_app.config.get('DATA_DIR', os.path.join(os.path.dirname(__file__), '..', 'data'))
    os.makedirs(data_dir, exist_ok=True)
    return os.path.join(data_dir, 'zakat.sqlite')


def connect(path: str) -> sqlite3.Connection:
    """Open a connection with the row factory the stores expect."""
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


def get_db() -> sqlite3.Connection:
    """Get a database connection, creating one if needed for this request."""
    if 'db' not in g:
        g.db = connect(get_db_path())
    return g.db


def close_db(e=None):
    """Close the database connection at end of request."""
    db = g.pop('db', None)
    if db is not None:
        db.close()


def init_db():
    """Initialize the database with schema."""
    db = get_db()
    db.executescript(get_schema())
    db.commit()


def get_schema() -> str:
    """Return the database schema SQL."""
    return '''
-- Nisab snapshots: one immutable row per (date, currency)
CREATE TABLE IF NOT EXISTS nisab_snapshots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    currency TEXT NOT NULL,
    gold_per_gram REAL NOT NULL,
    silver_per_gram REAL NOT NULL,
    nisab_gold_value REAL NOT NULL,
    nisab_silver_value REAL NOT NULL,
    gold_grams REAL NOT NULL,
    silver_grams REAL NOT NULL,
    source TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(date, currency)
);
CREATE INDEX IF NOT EXISTS idx_nisab_snapshots_currency ON nisab_snapshots(currency, date);

-- Zakat profiles: lunar anniversary (month/day) per user
CREATE TABLE IF NOT EXISTS zakat_profiles (
    user_id TEXT PRIMARY KEY,
    currency TEXT NOT NULL DEFAULT 'USD',
    anniversary_month INTEGER,
    anniversary_day INTEGER,
    anniversary_hijri_year INTEGER,
    last_reminder_hijri_year INTEGER,
    nisab_basis TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    CHECK ((anniversary_month IS NULL) = (anniversary_day IS NULL))
);

-- Reminder events: at most one per (user_id, hijri_year)
CREATE TABLE IF NOT EXISTS reminder_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    hijri_year INTEGER NOT NULL,
    fired_at TEXT NOT NULL,
    UNIQUE(user_id, hijri_year)
);

-- Qualifying wealth per user, maintained by the ledger side of the app
CREATE TABLE IF NOT EXISTS wealth_balances (
    user_id TEXT PRIMARY KEY,
    amount REAL NOT NULL,
    currency TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- In-app notifications produced by the reminder scheduler
CREATE TABLE IF NOT EXISTS notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    category TEXT,
    is_read INTEGER NOT NULL DEFAULT 0,
    metadata TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, created_at);

-- Daily job runs
CREATE TABLE IF NOT EXISTS job_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_date TEXT NOT NULL,
    job TEXT NOT NULL,
    status TEXT NOT NULL,
    records_count INTEGER,
    error_count INTEGER,
    error_message TEXT,
    ran_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_job_log_date ON job_log(run_date, job);
'''


def init_app(app):
    """Register database functions with Flask app and ensure database exists."""
    app.teardown_appcontext(close_db)

    # CREATE IF NOT EXISTS makes this safe on every start
    with app.app_context():
        db = get_db()
        db.executescript(get_schema())
        db.commit()
