"""
定时任务调度器

    python -m app.worker.scheduler
"""

import logging
from datetime import timezone

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.worker.tasks import expire_subscriptions, reconcile_subscriptions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_scheduler() -> BlockingScheduler:
    scheduler = BlockingScheduler(timezone=timezone.utc)
    scheduler.add_job(
        expire_subscriptions,
        IntervalTrigger(minutes=settings.RECONCILE_INTERVAL_MINUTES),
        id="expire_subscriptions",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    scheduler.add_job(
        reconcile_subscriptions,
        IntervalTrigger(minutes=settings.RECONCILE_INTERVAL_MINUTES),
        id="reconcile_subscriptions",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    return scheduler


def main() -> None:
    scheduler = build_scheduler()
    logger.info(
        "Scheduler started. Reconcile jobs run every %d minutes.",
        settings.RECONCILE_INTERVAL_MINUTES,
    )
    scheduler.start()


if __name__ == "__main__":
    main()
