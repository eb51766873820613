"""Optional in-process APScheduler for deployments without an external cron."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from lifesync.config import settings
from lifesync.database import SessionLocal
from lifesync.services.snapshot_service import create_weekly_snapshots_for_all_users
from lifesync.services.sync_service import auto_sync_batch

log = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone=settings.timezone)


async def auto_sync_job():
    """Incremental sync of the least recently synced connections."""
    db = SessionLocal()
    try:
        result = await auto_sync_batch(db)
        log.info(f"Scheduled auto-sync finished: {result.synced_users}/{result.total_users} connections")
    except Exception as e:
        log.error(f"Scheduled auto-sync failed: {e}", exc_info=True)
    finally:
        db.close()


async def weekly_snapshot_job():
    db = SessionLocal()
    try:
        result = create_weekly_snapshots_for_all_users(db, week_offset=-1)
        log.info(f"Scheduled weekly snapshots for {result.week_start}: {result.created} created")
    except Exception as e:
        log.error(f"Scheduled weekly snapshots failed: {e}", exc_info=True)
    finally:
        db.close()


def start_scheduler():
    """Register both jobs and start the scheduler."""
    scheduler.add_job(
        auto_sync_job,
        IntervalTrigger(minutes=settings.auto_sync_interval_minutes),
        id="auto_sync_job",
        replace_existing=True,
        max_instances=1,
    )
    scheduler.add_job(
        weekly_snapshot_job,
        CronTrigger.from_crontab(settings.weekly_snapshot_cron, timezone=settings.timezone),
        id="weekly_snapshot_job",
        replace_existing=True,
    )
    if not scheduler.running:
        scheduler.start()
        log.info(
            f"APScheduler started: auto-sync every {settings.auto_sync_interval_minutes} min, "
            f"weekly snapshots at '{settings.weekly_snapshot_cron}'"
        )


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        log.info("APScheduler shut down successfully")
