"""Optional daily trigger for the notification check.

The check itself stays a one-shot operation (``run_notification_check``);
this scheduler only calls it at a fixed time of day when NOTIFY_DAILY_TIME
is configured.
"""
from typing import Callable, Optional, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger


def parse_daily_time(value: str) -> Optional[Tuple[int, int]]:
    """Parse "HH:MM"; None for blank or invalid values."""
    value = (value or "").strip()
    if not value:
        return None
    try:
        hour_text, minute_text = value.split(":")
        hour, minute = int(hour_text), int(minute_text)
    except ValueError:
        logger.warning(f"通知時刻の形式が不正です (HH:MM): {value}")
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        logger.warning(f"通知時刻が範囲外です: {value}")
        return None
    return hour, minute


class Scheduler:
    """Cron-style scheduler running on the application's event loop.

    Jobs are injected as callables so this module knows nothing about
    customers or Discord.
    """

    def __init__(self):
        self.scheduler = AsyncIOScheduler()

    def add_daily_task(
        self,
        task_func: Callable,
        hour: int = 9,
        minute: int = 0,
        task_id: str = "daily_task",
        task_name: str = "毎日のタスク",
    ):
        """Register a job that runs every day at hour:minute.

        Args:
            task_func: sync or async callable
            hour: 0-23
            minute: 0-59
            task_id: job id, replaces an existing job with the same id
            task_name: readable name for logs
        """
        self.scheduler.add_job(
            task_func,
            trigger=CronTrigger(hour=hour, minute=minute),
            id=task_id,
            name=task_name,
            replace_existing=True,
        )
        logger.info(f"Added daily task '{task_name}' at {hour:02d}:{minute:02d}")

    def add_notification_check(self, check_func: Callable, daily_time: str) -> bool:
        """Schedule the notification check; False when ``daily_time`` is unset."""
        parsed = parse_daily_time(daily_time)
        if parsed is None:
            return False
        hour, minute = parsed
        self.add_daily_task(
            check_func,
            hour=hour,
            minute=minute,
            task_id="notification_check",
            task_name="営業アクション通知",
        )
        return True

    def start(self):
        self.scheduler.start()
        logger.info("Scheduler started")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")
