"""
Task scheduler for automatic QuickBooks syncs
"""

import threading
from datetime import date
from typing import Callable, Optional

import schedule

from ..quickbooks.models import QuickBooksConfig, SyncOptions
from ..quickbooks.registry import get_shared_client
from ..quickbooks.storage import QuickBooksStore
from ..quickbooks.sync import QuickBooksDataSync
from ..utils.logger import get_logger

logger = get_logger(__name__)

SYNC_TAG = "quickbooks-auto-sync"
FREQUENCIES = ("manual", "daily", "weekly", "monthly")
POLL_INTERVAL_SECONDS = 60

_scheduler_thread: Optional[threading.Thread] = None
_stop_event = threading.Event()


def auto_sync_task(store: QuickBooksStore, config: QuickBooksConfig) -> bool:
    """Run one sync with the default options, using the shared client"""
    try:
        client = get_shared_client(config, store)
    except Exception as e:
        logger.error(f"Automatic sync could not load QuickBooks credentials: {str(e)}")
        return False

    if client is None:
        logger.warning("Skipping automatic sync: QuickBooks is not connected")
        return False

    logger.info(f"Starting automatic QuickBooks sync for company {client.realm_id}")
    try:
        result = QuickBooksDataSync(client, store=store).sync_data(SyncOptions.defaults())
    except Exception as e:
        logger.error(f"Automatic QuickBooks sync crashed: {str(e)}")
        return False

    if result.success:
        logger.info("Automatic QuickBooks sync finished successfully")
    else:
        logger.error(f"Automatic QuickBooks sync failed: {result.error}")
    return result.success


def only_on_first_of_month(task: Callable[[], object],
                           today: Optional[Callable[[], date]] = None) -> Callable[[], None]:
    """Wrap a daily job so it only does work on day 1"""
    today = today or date.today

    def job():
        if today().day == 1:
            task()

    return job


def schedule_auto_sync(frequency: str, schedule_time: str, task: Callable[[], object]):
    """
    Register the auto-sync job

    Args:
        frequency: manual, daily, weekly (Mondays) or monthly (1st of the month)
        schedule_time: Time of day to run (HH:MM)
        task: Callable to run

    Returns:
        The scheduled job, or None for manual
    """
    if frequency not in FREQUENCIES:
        raise ValueError(f"Unknown auto-sync frequency {frequency!r}, expected one of {FREQUENCIES}")

    schedule.clear(SYNC_TAG)

    if frequency == "manual":
        logger.info("Automatic sync disabled (manual)")
        return None
    if frequency == "daily":
        job = schedule.every().day.at(schedule_time).do(task)
    elif frequency == "weekly":
        job = schedule.every().monday.at(schedule_time).do(task)
    else:
        job = schedule.every().day.at(schedule_time).do(only_on_first_of_month(task))

    job.tag(SYNC_TAG)
    logger.info(f"Scheduled {frequency} QuickBooks sync at {schedule_time}")
    return job


def run_scheduler():
    """Run pending jobs until stop_scheduler() is called"""
    logger.info("Starting scheduler thread")

    while not _stop_event.is_set():
        try:
            schedule.run_pending()
        except Exception as e:
            # A failed run must not end the loop
            logger.error(f"Scheduled job failed: {str(e)}")
        _stop_event.wait(POLL_INTERVAL_SECONDS)

    logger.info("Scheduler thread stopped")


def start_scheduler(frequency: str,
                    schedule_time: str,
                    store: QuickBooksStore,
                    config: QuickBooksConfig) -> bool:
    """
    Start the task scheduler

    Returns:
        True when a background thread was started
    """
    global _scheduler_thread

    if _scheduler_thread and _scheduler_thread.is_alive():
        logger.warning("Scheduler is already running")
        return False

    job = schedule_auto_sync(frequency, schedule_time, lambda: auto_sync_task(store, config))
    if job is None:
        return False

    _stop_event.clear()
    _scheduler_thread = threading.Thread(target=run_scheduler, daemon=True)
    _scheduler_thread.start()

    logger.info("Scheduler started")
    return True


def stop_scheduler():
    """Stop the task scheduler"""
    global _scheduler_thread

    _stop_event.set()
    schedule.clear(SYNC_TAG)
    if _scheduler_thread is not None:
        _scheduler_thread.join(timeout=5)
        _scheduler_thread = None

    logger.info("Scheduler stopped")
