"""
Scheduling decision engine for recurring chair reports.

One invocation (a cron tick) walks every registered item, decides whether
its report is due for the current calendar period, sends the due ones, and
records the period as sent. Per-item failures are logged and counted but
never abort the run; they leave the stored period untouched so the next
invocation retries. Only failing to enumerate items or orders raises.

The "already sent" check and the "mark as sent" write are a plain
check-then-act pair in the KV store. Two overlapping invocations can both
pass the check and send twice; that is accepted (best-effort idempotency).
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from app.config import settings
from app.features.chair_reports.domain.models import (
    ITEM_KINDS,
    ItemConfig,
    ItemRunLog,
    OrderSnapshot,
    ReportFrequency,
    ReportPeriod,
    ReportRun,
    ReportWindow,
    as_utc,
)
from app.features.chair_reports.pipeline.period import compute_period, normalize_frequency
from app.features.chair_reports.repository.item_config_repository import item_config_repository
from app.features.chair_reports.repository.order_repository import order_repository
from app.features.chair_reports.services.report_service import (
    chair_report_service,
    staggered_send_time,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SKIP_NOT_OPEN = "Not yet open (publishStart in future)"
SKIP_CLOSED = "Closed (publishEnd in past)"
SKIP_FREQUENCY_NONE = "Frequency set to 'none'"
SKIP_NO_PERIOD = "Unrecognized report frequency"
SKIP_ALREADY_SENT = "already sent for this period"


async def list_registered_items(config_store) -> list[ItemConfig]:
    """Banquets, then add-ons, then products; the first occurrence of an id wins."""
    items: list[ItemConfig] = []
    seen: set[str] = set()
    for kind in ITEM_KINDS:
        for config in await config_store.get_item_configs(kind):
            if not config.id or config.id in seen:
                continue
            seen.add(config.id)
            items.append(config)
    return items


@dataclass(slots=True)
class ScheduleDecision:
    config: ItemConfig
    frequency: ReportFrequency
    period: ReportPeriod | None = None
    last_period_id: str | None = None
    skip_reason: str = ""

    @property
    def due(self) -> bool:
        return not self.skip_reason


class ReportSchedulingEngine:
    """Decides, per item, whether a recurring report is due and sends it."""

    def __init__(
        self,
        config_store=None,
        order_source=None,
        report_sender=None,
        stagger_by_kind: bool | None = None,
    ):
        self.config_store = config_store or item_config_repository
        self.order_source = order_source or order_repository
        self.report_sender = report_sender or chair_report_service
        self.stagger_by_kind = (
            settings.REPORTS_STAGGER_BY_KIND if stagger_by_kind is None else stagger_by_kind
        )

    async def list_items(self) -> list[ItemConfig]:
        return await list_registered_items(self.config_store)

    async def evaluate(
        self,
        config: ItemConfig,
        now: datetime,
        prior_window_end: datetime | None = None,
    ) -> ScheduleDecision:
        """Decide whether `config` is due at `now`; reads the stored period only when needed."""
        frequency = normalize_frequency(config.report_frequency_raw)
        decision = ScheduleDecision(config=config, frequency=frequency)

        if config.publish_start is not None and now < config.publish_start:
            decision.skip_reason = SKIP_NOT_OPEN
            return decision
        if config.publish_end is not None and now > config.publish_end:
            decision.skip_reason = SKIP_CLOSED
            return decision
        if frequency is ReportFrequency.NONE:
            decision.skip_reason = SKIP_FREQUENCY_NONE
            return decision

        decision.period = compute_period(frequency, now, prior_window_end)
        if decision.period is None:
            decision.skip_reason = SKIP_NO_PERIOD
            return decision

        decision.last_period_id = await self.config_store.get_period_state(config.id, frequency.value)
        if decision.last_period_id == decision.period.period_id:
            decision.skip_reason = SKIP_ALREADY_SENT
        return decision

    async def run(
        self,
        now: datetime | None = None,
        snapshot: OrderSnapshot | None = None,
    ) -> ReportRun:
        """
        Run one scheduling invocation.

        Args:
            now: Reference instant (defaults to the current UTC time)
            snapshot: Orders for this invocation; loaded once here if omitted

        Returns:
            ReportRun with sent/skipped/error counts and one entry per item

        Raises:
            KVStoreError / OrderSourceError: If items or orders cannot be listed
        """
        now = as_utc(now) if now else datetime.now(UTC)
        run = ReportRun(started_at=now)

        items = await self.list_items()
        if snapshot is None:
            snapshot = await self.order_source.load_snapshot()

        logger.info("Chair report run started", items=len(items), orders=len(snapshot.orders))

        for config in items:
            decision = await self.evaluate(config, now)
            entry = ItemRunLog(
                id=config.id,
                label=config.name,
                kind=config.kind,
                frequency=decision.frequency.value,
                period_id=decision.period.period_id if decision.period else "",
            )

            if not decision.due:
                entry.skipped = True
                entry.skip_reason = decision.skip_reason
                logger.debug("Chair report skipped", item_id=config.id, reason=decision.skip_reason)
                run.record(entry)
                continue

            await self._send_due_item(decision, now, snapshot, entry)
            run.record(entry)

        logger.info(
            "Chair report run completed",
            sent=run.sent,
            skipped=run.skipped,
            errors=run.errors,
        )
        return run

    async def _send_due_item(
        self,
        decision: ScheduleDecision,
        now: datetime,
        snapshot: OrderSnapshot,
        entry: ItemRunLog,
    ) -> None:
        config = decision.config
        period = decision.period
        # Current period so far: calendar start through now
        window = ReportWindow(start=period.window.start, end=now)
        entry.window_start = window.start
        entry.window_end = window.end

        try:
            result = await self.report_sender.send_item_report(
                kind=config.kind,
                item_id=config.id,
                label=config.name,
                scope="window",
                window=window,
                snapshot=snapshot,
                scheduled_at=(
                    staggered_send_time(config.kind, datetime.now(UTC)) if self.stagger_by_kind else None
                ),
                chair_emails=list(config.chair_emails),
                now=now,
            )
        except Exception as e:
            logger.error(
                "Chair report pipeline raised",
                item_id=config.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            entry.error = str(e) or type(e).__name__
            return

        entry.count = result.count
        entry.to = list(result.to)
        entry.bcc = list(result.bcc)

        if not result.ok:
            entry.error = result.message or result.error or "send-failed"
            logger.warning("Chair report not sent", item_id=config.id, error=entry.error)
            return

        entry.ok = True
        await self.config_store.set_period_state(config.id, decision.frequency.value, period.period_id)

    async def debug_schedule(
        self,
        item_id: str,
        now: datetime | None = None,
        prior_window_end: datetime | None = None,
    ) -> dict:
        """Explain what a run at `now` would do for one item, without sending."""
        now = as_utc(now) if now else datetime.now(UTC)
        config = await self.config_store.get_item_config(item_id)
        if config is None:
            return {"ok": False, "id": item_id, "error": "unknown-item"}

        decision = await self.evaluate(config, now, prior_window_end)
        period = decision.period
        return {
            "ok": True,
            "id": config.id,
            "kind": config.kind,
            "publishStart": config.publish_start.isoformat() if config.publish_start else None,
            "publishEnd": config.publish_end.isoformat() if config.publish_end else None,
            "freqRaw": config.report_frequency_raw,
            "freqNormalized": decision.frequency.value,
            "nowUTC": now.isoformat(),
            "periodId": period.period_id if period else None,
            "windowLabel": period.label if period else None,
            "windowStartUTC": period.window.start.isoformat() if period else None,
            "windowEndUTC": period.window.end.isoformat() if period else None,
            "lastPeriodId": decision.last_period_id,
            "due": decision.due,
            "skipReason": decision.skip_reason,
        }


report_scheduling_engine = ReportSchedulingEngine()
