"""Scheduled monthly benefit rollover."""

from __future__ import annotations

import logging

from .periods import Clock, current_period, previous_period, system_clock

logger = logging.getLogger(__name__)


class RolloverScheduler:
    """Opens each new month period for every card with benefits.

    Uses APScheduler for cron-based scheduling.
    """

    def __init__(self, config, *, clock: Clock = system_clock) -> None:
        """Initialize scheduler with a BenefitsConfig.

        Args:
            config: BenefitsConfig instance.
            clock: Time source used to pick the period being opened.

        Raises:
            ImportError: If apscheduler is not installed.
        """
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.cron import CronTrigger
        except ImportError:
            raise ImportError(
                "apscheduler is required: pip install 'wic-benefits[scheduler]'"
            )

        self._config = config
        self._clock = clock
        self._scheduler = AsyncIOScheduler()
        self._CronTrigger = CronTrigger
        self._running = False

    def setup_jobs(self) -> None:
        """Register scheduled jobs based on config."""
        if not self._config.scheduler.enabled:
            logger.info("Rollover scheduling disabled")
            return

        trigger = self._parse_cron(self._config.scheduler.rollover_schedule)
        self._scheduler.add_job(
            self._job_rollover,
            trigger=trigger,
            id="rollover_benefits",
            name="Monthly benefit rollover",
            replace_existing=True,
        )
        logger.info(
            "Registered rollover job: %s", self._config.scheduler.rollover_schedule
        )

    def start(self) -> None:
        """Start the scheduler."""
        self.setup_jobs()
        self._scheduler.start()
        self._running = True
        logger.info("Scheduler started")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return self._running

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled jobs."""
        jobs = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(next_run) if next_run else None,
            })
        return jobs

    def _parse_cron(self, expr: str):
        """Parse a cron expression into a CronTrigger."""
        parts = expr.split()
        if len(parts) == 5:
            return self._CronTrigger(
                minute=parts[0],
                hour=parts[1],
                day=parts[2],
                month=parts[3],
                day_of_week=parts[4],
            )
        raise ValueError(f"Invalid cron expression: {expr}")

    def run_rollover(self) -> dict[str, int]:
        """Roll every card from last period into the current one.

        Returns:
            Number of benefit rows per card in the new period.
        """
        from .db import BenefitLedger

        to_period = current_period(self._clock)
        from_period = previous_period(to_period)

        ledger = BenefitLedger(
            self._config.database.path,
            clock=self._clock,
            default_allotments=self._config.allotments,
        )
        try:
            result = ledger.rollover_all(from_period, to_period)
        finally:
            ledger.close()

        logger.info(
            "Rolled over %d card(s) from %s to %s", len(result), from_period, to_period
        )
        return {card: len(rows) for card, rows in result.items()}

    async def _job_rollover(self) -> None:
        logger.info("Running benefit rollover job...")
        try:
            self.run_rollover()
        except Exception:
            logger.exception("Benefit rollover job failed")
