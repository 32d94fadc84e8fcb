# app/scheduler.py
"""
Background task scheduler for the order lifecycle.

Uses APScheduler to run periodic background jobs for:
- Confirming COD orders nobody acted on
- Expiring unpaid online orders into payment_overdue
- Completing delivered orders after the confirmation window
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED

from app.background_tasks.order_tasks import (
    auto_confirm_cod_orders,
    expire_unpaid_orders,
    auto_complete_delivered_orders,
)

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def _on_job_error(event):
    """Log scheduler job errors with full context."""
    exc = event.exception
    logger.error(
        "Scheduled job FAILED: job_id=%s error=%s",
        event.job_id, exc,
        exc_info=(type(exc), exc, None) if exc else None,
    )
    if event.traceback:
        logger.error("Traceback for job %s:\n%s", event.job_id, event.traceback)


def _on_job_missed(event):
    """Log when a scheduled job misses its execution window."""
    logger.warning(
        "Scheduled job MISSED: job_id=%s scheduled_run_time=%s",
        event.job_id,
        event.scheduled_run_time,
    )


def init_scheduler(start: bool = True):
    """
    Initialize the background scheduler with all periodic tasks.

    This is called once when the application starts up.
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already initialized")
        return scheduler

    scheduler = BackgroundScheduler(
        timezone="UTC",
        job_defaults={
            'coalesce': True,  # Combine missed executions
            'max_instances': 1,  # Only one instance of each job at a time
            'misfire_grace_time': 60  # Allow 60 seconds grace period
        }
    )

    # Job 1: Confirm COD orders still in `new`
    scheduler.add_job(
        func=auto_confirm_cod_orders,
        trigger=IntervalTrigger(minutes=1),
        id='auto_confirm_cod_orders',
        name='Auto-Confirm COD Orders',
        replace_existing=True
    )
    logger.info("Scheduled job: auto_confirm_cod_orders (every 1 minute)")

    # Job 2: Expire unpaid online orders
    scheduler.add_job(
        func=expire_unpaid_orders,
        trigger=IntervalTrigger(minutes=1),
        id='expire_unpaid_orders',
        name='Expire Unpaid Online Orders',
        replace_existing=True
    )
    logger.info("Scheduled job: expire_unpaid_orders (every 1 minute)")

    # Job 3: Complete delivered orders after the confirmation window
    scheduler.add_job(
        func=auto_complete_delivered_orders,
        trigger=IntervalTrigger(minutes=15),
        id='auto_complete_delivered_orders',
        name='Auto-Complete Delivered Orders',
        replace_existing=True
    )
    logger.info("Scheduled job: auto_complete_delivered_orders (every 15 minutes)")

    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    scheduler.add_listener(_on_job_missed, EVENT_JOB_MISSED)

    if start:
        scheduler.start()
        logger.info("Background scheduler started successfully")

    return scheduler


def shutdown_scheduler():
    """
    Gracefully shutdown the scheduler.

    This is called when the application shuts down.
    """
    global scheduler

    if scheduler is not None:
        if scheduler.running:
            scheduler.shutdown(wait=True)
        logger.info("Background scheduler shutdown complete")
        scheduler = None


def get_scheduler_status():
    """
    Get the current status of all scheduled jobs.
    """
    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
            "trigger": str(job.trigger)
        })
    return {"status": "running" if scheduler.running else "stopped", "jobs": jobs}
