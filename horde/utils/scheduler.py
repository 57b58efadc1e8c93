"""
Scheduler Service
Manages background maintenance jobs using APScheduler
"""
import logging
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from horde.core.config import settings
from horde.db import notifications as notifications_db
from horde.db import tokens as tokens_db
from horde.db import users as users_db

logger = logging.getLogger(__name__)

PURGE_JOB_ID = "purge_expired_records"

scheduler: BackgroundScheduler = None


def purge_expired_records() -> dict:
    """
    Remove notifications, pending signups and tokens whose expiry has
    passed. DynamoDB TTL deletes lazily, so this keeps queries clean.
    """
    logger.info("Purging expired records...")

    notifications = notifications_db.delete_expired_notifications()

    pending_users = 0
    for pending in users_db.get_expired_pending_users():
        if users_db.delete_pending_user(pending["pending_id"]):
            pending_users += 1

    tokens = 0
    for token in tokens_db.get_expired_tokens():
        if tokens_db.delete_token(token["token"]):
            tokens += 1

    result = {
        "notifications": notifications,
        "pending_users": pending_users,
        "tokens": tokens,
        "ran_at": datetime.utcnow().isoformat(),
    }
    logger.info(
        f"Purge finished: {notifications} notifications, {pending_users} pending users, {tokens} tokens"
    )
    return result


def start_scheduler():
    """Start the background scheduler with the maintenance job"""
    global scheduler

    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled by configuration")
        return

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        purge_expired_records,
        trigger=IntervalTrigger(minutes=settings.CLEANUP_INTERVAL_MINUTES),
        id=PURGE_JOB_ID,
        name="Purge expired records",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started, purging every {settings.CLEANUP_INTERVAL_MINUTES} minutes")


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False, "enabled": settings.SCHEDULER_ENABLED, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })

    return {
        "running": scheduler.running,
        "enabled": settings.SCHEDULER_ENABLED,
        "jobs": jobs
    }
