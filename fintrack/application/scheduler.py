"""
Background scheduler: runs periodic jobs inside the FastAPI process.

Jobs:
  - Recurring transactions materialization (daily, RECURRING_JOB_HOUR UTC)
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from fintrack.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _run_recurring_transactions():
    from fintrack.infrastructure.db.session import get_session_factory
    from fintrack.application.recurring import MaterializeDueRecurringUseCase

    Session = get_session_factory()
    db = Session()
    try:
        MaterializeDueRecurringUseCase(db).execute()
    except Exception:
        logger.exception("Recurring transactions job failed")
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler with all periodic jobs."""
    settings = get_settings()

    scheduler.add_job(
        _run_recurring_transactions,
        CronTrigger(hour=settings.RECURRING_JOB_HOUR, minute=5),
        id="recurring_transactions",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Background scheduler started")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
