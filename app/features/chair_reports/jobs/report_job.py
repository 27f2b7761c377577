"""
Chair report job runner.

Each worker invocation (typically a cron tick) runs one scheduling pass,
mails the run summary to operators, and exits.
"""

import asyncio
from datetime import UTC, datetime

from app.features.chair_reports.services.closing_service import closing_report_service
from app.features.chair_reports.services.run_summary import send_run_summary
from app.features.chair_reports.services.scheduler import report_scheduling_engine
from app.infrastructure.observability.logging import get_logger, log_report_run
from app.services.redis_client import fast_redis

logger = get_logger(__name__)


class ChairReportJob:
    """Runs the scheduling engine; refuses overlapping runs in one process."""

    def __init__(self, engine=None, summary_sender=send_run_summary):
        self.engine = engine or report_scheduling_engine
        self.summary_sender = summary_sender
        self.is_running = False
        self.last_run_time: datetime | None = None

    async def run_once(self, now: datetime | None = None, trigger: str = "cron") -> dict:
        """
        Run a single scheduling invocation.

        Returns:
            Dict: The run log (sent/skipped/errors/items), or a skip marker when
            a run is already in progress

        Raises:
            KVStoreError / OrderSourceError: If items or orders cannot be listed
        """
        if self.is_running:
            logger.warning("Chair report job already running, skipping this iteration")
            return {"skipped": True, "reason": "already_running"}

        try:
            self.is_running = True
            run = await self.engine.run(now=now)
            summary = run.to_dict()

            try:
                summary["summary_sent"] = await self.summary_sender(run, trigger=trigger)
            except Exception as e:
                logger.warning("Run summary failed", error=str(e), error_type=type(e).__name__)
                summary["summary_sent"] = False

            log_report_run(trigger, summary)
            self.last_run_time = datetime.now(UTC)
            return summary
        finally:
            self.is_running = False

    def get_job_status(self) -> dict:
        return {
            "job_name": "chair_reports",
            "is_running": self.is_running,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
        }


chair_report_job = ChairReportJob()


async def _with_redis(job):
    await fast_redis.initialize()
    try:
        return await job()
    finally:
        await fast_redis.close()


async def run_chair_reports() -> dict:
    """Worker entry point: one scheduled pass plus the run summary."""
    return await _with_redis(lambda: chair_report_job.run_once(trigger="worker"))


async def run_closing_reports() -> dict:
    """Worker entry point: FINAL reports for items whose sales have closed."""
    return await _with_redis(closing_report_service.run)


if __name__ == "__main__":
    asyncio.run(run_chair_reports())
