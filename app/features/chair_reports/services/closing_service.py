"""
Closing reports: one FINAL full-lifetime report per item once sales close.
"""

from datetime import UTC, datetime

from app.features.chair_reports.domain.models import OrderSnapshot, as_utc
from app.features.chair_reports.repository.item_config_repository import item_config_repository
from app.features.chair_reports.repository.order_repository import order_repository
from app.features.chair_reports.services.report_service import chair_report_service
from app.features.chair_reports.services.scheduler import list_registered_items
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ClosingReportService:
    def __init__(self, config_store=None, order_source=None, report_sender=None):
        self.config_store = config_store or item_config_repository
        self.order_source = order_source or order_repository
        self.report_sender = report_sender or chair_report_service

    async def run(self, now: datetime | None = None, snapshot: OrderSnapshot | None = None) -> dict:
        """
        Send the FINAL report for every item whose publishEnd has passed.

        The closing marker is written only after a successful send, so a
        failed closing report is retried on the next invocation.
        """
        now = as_utc(now) if now else datetime.now(UTC)
        result = {"sent": 0, "errors": 0, "items": []}

        for config in await list_registered_items(self.config_store):
            if config.publish_end is None or now < config.publish_end:
                continue
            if await self.config_store.get_closing_marker(config.id):
                continue

            if snapshot is None:
                snapshot = await self.order_source.load_snapshot()

            try:
                report = await self.report_sender.send_item_report(
                    kind=config.kind,
                    item_id=config.id,
                    label=config.name,
                    scope="full",
                    snapshot=snapshot,
                    now=now,
                    final=True,
                    chair_emails=list(config.chair_emails),
                )
            except Exception as e:
                logger.error("Closing report raised", item_id=config.id, error=str(e))
                result["errors"] += 1
                result["items"].append({"id": config.id, "ok": False, "error": str(e)})
                continue

            if report.ok:
                await self.config_store.set_closing_marker(config.id, now.isoformat())
                result["sent"] += 1
            else:
                result["errors"] += 1
            result["items"].append(
                {"id": config.id, "ok": report.ok, "count": report.count, "error": report.error}
            )

        logger.info("Closing report run completed", sent=result["sent"], errors=result["errors"])
        return result


closing_report_service = ClosingReportService()
