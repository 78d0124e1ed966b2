"""Cron scheduling for the subscription sweeps."""

import logging
from dataclasses import dataclass, field

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from meal_subscriptions.services.sweeps import SubscriptionSweepService

_logger = logging.getLogger(__name__)

ACTIVATION_JOB_ID = "activate_new_joiners"
EXIT_JOB_ID = "cancel_exiting_subscriptions"


@dataclass
class SweepScheduler:
    """Runs both sweeps on cron expressions in the business timezone."""

    sweep_service: SubscriptionSweepService
    timezone: str
    activation_cron: str
    exiting_cron: str
    scheduler: AsyncIOScheduler | None = field(default=None, init=False)

    def start(self) -> None:
        """Register the sweep jobs and start the scheduler."""
        if self.scheduler is not None and self.scheduler.running:
            _logger.warning("Sweep scheduler already running")
            return
        self.scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 3600,
            },
        )
        self.scheduler.add_job(
            self.sweep_service.run_activation,
            trigger=CronTrigger.from_crontab(
                self.activation_cron, timezone=self.timezone
            ),
            id=ACTIVATION_JOB_ID,
            name="Activate New_Joiner subscriptions",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.sweep_service.run_exit_cancellation,
            trigger=CronTrigger.from_crontab(self.exiting_cron, timezone=self.timezone),
            id=EXIT_JOB_ID,
            name="Cancel ended Exiting subscriptions",
            replace_existing=True,
        )
        self.scheduler.start()
        _logger.info(
            "Sweep scheduler started (activation=%s, exiting=%s)",
            self.activation_cron,
            self.exiting_cron,
        )

    def shutdown(self) -> None:
        """Stop the scheduler if it is running."""
        if self.scheduler is None or not self.scheduler.running:
            return
        self.scheduler.shutdown(wait=False)
        _logger.info("Sweep scheduler stopped")

    def job_ids(self) -> list[str]:
        """Return the ids of registered jobs."""
        if self.scheduler is None:
            return []
        return [job.id for job in self.scheduler.get_jobs()]
