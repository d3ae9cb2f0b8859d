"""
Background Daily Job Thread

Runs the daily nisab refresh and reminder pass in-process as a background
thread when the web app starts. Used for single-container deployments
where no external cron calls the /api/v1/jobs/daily endpoint.

The job is idempotent per day, so the thread simply re-runs it on an
interval; runs after the first one on a given day are no-ops.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

logger = logging.getLogger('background_jobs')

# Global to track if job thread is running
_job_thread: Optional[threading.Thread] = None
_stop_event = threading.Event()


def start_background_jobs(app):
    """Start the background job thread if not already running.

    Should be called once when the Flask app starts.
    """
    global _job_thread

    if _job_thread is not None and _job_thread.is_alive():
        logger.info("Background job thread already running")
        return

    _stop_event.clear()
    _job_thread = threading.Thread(target=_job_loop, args=(app,), daemon=True, name='daily-job')
    _job_thread.start()
    logger.info("Background job thread started")


def stop_background_jobs():
    """Stop the background job thread gracefully."""
    global _job_thread

    if _job_thread is None:
        return

    logger.info("Stopping background job thread...")
    _stop_event.set()
    _job_thread.join(timeout=5)
    _job_thread = None
    logger.info("Background job thread stopped")


def run_job_cycle(app) -> dict:
    """Execute one daily job run inside an app context."""
    from zakat_tracker.services.daily_job import run_daily_job

    with app.app_context():
        result = run_daily_job()

    nisab = result['nisab']
    reminders = result['reminders']
    logger.info(
        f"Daily job done: nisab {nisab['updated']}/{nisab['total']} updated, "
        f"{nisab['failure_count']} failed; reminders {reminders['reminders_sent']} sent, "
        f"{len(reminders['errors'])} errors"
    )
    return result


def _job_loop(app):
    """Main loop that runs in the background thread."""
    from zakat_tracker.services.config import get_job_interval_seconds

    sleep_seconds = get_job_interval_seconds()
    logger.info(f"Background job loop started, interval {sleep_seconds}s ({sleep_seconds // 3600}h)")

    # Initial delay to let app fully start
    if _stop_event.wait(timeout=10):
        return

    while not _stop_event.is_set():
        try:
            run_job_cycle(app)
        except Exception as e:
            logger.exception(f"Daily job failed: {e}")

        next_run = datetime.now(timezone.utc) + timedelta(seconds=sleep_seconds)
        logger.info(f"Next daily job run at {next_run.isoformat()}")

        if _stop_event.wait(timeout=sleep_seconds):
            break
