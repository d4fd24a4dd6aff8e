"""
app/scheduler/jobs.py

APScheduler-based background scheduler for the submission poll cycle.

Schedule
--------
  poll_submissions: every SUBMISSIONS_POLL_INTERVAL_SECONDS (default 60s)

Only one instance of the job runs at a time; missed runs are coalesced
into a single run instead of piling up behind a slow cycle.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down with ``wait=True`` on app shutdown so an
in-flight batch transaction finishes before the process exits.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_submission_pipeline_settings
from app.services.ingestion_pipeline import get_ingestion_pipeline

logger = logging.getLogger(__name__)


def run_submission_poll() -> None:
    """
    Run one scheduled poll cycle, waiting for any manual run to finish first.
    Failures are logged; the next interval retries.
    """
    try:
        summary = get_ingestion_pipeline().run_cycle(wait=True)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Scheduler: poll_submissions failed: %s", exc)
        return

    logger.info(
        "Scheduler: poll_submissions outcome=%s inserted=%s skipped=%s",
        summary.outcome,
        summary.rows_inserted,
        summary.rows_skipped,
    )


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register the periodic submission poll job.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = get_submission_pipeline_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_submission_poll,
        trigger="interval",
        seconds=settings.poll_interval_seconds,
        id="poll_submissions",
        name="Submission spreadsheet poll",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=int(settings.poll_interval_seconds),
    )

    return scheduler
