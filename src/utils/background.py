"""APScheduler setup for in-process delayed jobs (local runs without SQS/EventBridge)."""

from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler

from utils.logging_config import get_logger

logger = get_logger(__name__)


def start_background_scheduler() -> BackgroundScheduler:
    """Start a daemon scheduler whose one-shot jobs run however late they fire."""
    scheduler = BackgroundScheduler(
        timezone="UTC",
        job_defaults={"misfire_grace_time": None, "coalesce": False},
    )
    scheduler.start()
    logger.info("Background scheduler started")
    return scheduler
