import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.services.upload_storage import sweep_stale_uploads

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def sweep_upload_dir() -> int:
    """Remove uploads orphaned by a worker that died mid-request."""
    return sweep_stale_uploads(settings.upload_dir, settings.stale_upload_max_age_minutes * 60)


def schedule_jobs() -> None:
    scheduler.add_job(
        sweep_upload_dir,
        IntervalTrigger(minutes=settings.stale_upload_max_age_minutes),
        id="stale_upload_sweep",
        replace_existing=True,
    )


def start_scheduler():
    """Start the background job scheduler."""
    if not scheduler.running:
        scheduler.start()
        logger.info("Background scheduler started")


def stop_scheduler():
    """Stop the background job scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
