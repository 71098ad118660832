"""RECON — Scheduler Jobs.

APScheduler interval job that syncs the configured accounts through the same
guarded coordinator a user-triggered sync uses.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.config import settings
from app.core.dates import DateRange
from app.services import Services
from app.sync.coordinator import SyncStatus
from app.core.logging import get_logger

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


async def scheduled_sync_job(services: Services):
    """Sync every configured account for the default preset."""
    account_ids = settings.scheduled_account_ids
    logger.info(f"Scheduled sync starting for {len(account_ids)} accounts...")
    date_range = DateRange(preset=settings.default_date_preset)
    results = await services.engine.coordinator.sync_workspace(
        frozenset(account_ids), date_range
    )
    failed = [r.account_id for r in results if r.status == SyncStatus.FAILED]
    if failed:
        logger.error(f"Scheduled sync failed for: {', '.join(failed)}")
    logger.info(
        f"Scheduled sync complete. "
        f"{sum(r.status == SyncStatus.SUCCESS for r in results)}/{len(results)} succeeded"
    )


def start_scheduler(services: Services):
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return
    if not settings.scheduled_account_ids:
        logger.info("Scheduler enabled but no accounts configured")
        return

    scheduler.add_job(
        scheduled_sync_job,
        "interval",
        minutes=settings.sync_interval_minutes,
        args=[services],
        id="scheduled_sync",
        replace_existing=True,
        misfire_grace_time=600,
    )
    scheduler.start()
    logger.info(f"Scheduler started. Syncing every {settings.sync_interval_minutes} min")


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
