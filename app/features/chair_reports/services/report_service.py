"""
Chair report pipeline: roster -> workbook -> recipients -> delivery -> audit.

Both the scheduled path and the real-time order path converge here; they
differ only in the window they pass (current period vs. item lifetime).
"""

import asyncio
import base64
import html
import re
from datetime import UTC, datetime, timedelta

from app.config import settings
from app.features.chair_reports.domain.models import (
    EmailAttachment,
    EmailMessage,
    MailLogEntry,
    OrderSnapshot,
    ReportResult,
    ReportWindow,
    parse_instant,
)
from app.features.chair_reports.pipeline.roster import (
    ROSTER_HEADER_LABELS,
    build_roster,
    includes_address,
    roster_columns,
)
from app.features.chair_reports.pipeline.spreadsheet import encode_workbook
from app.features.chair_reports.repository.item_config_repository import item_config_repository
from app.features.chair_reports.repository.order_repository import order_repository
from app.features.chair_reports.services.delivery import deliver_with_retry
from app.features.chair_reports.services.email_transport import resend_transport
from app.features.chair_reports.services.mail_audit import mail_audit_recorder
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SCOPE_LABELS = {
    "window": "scheduled reporting period",
    "current-month": "current month (month-to-date)",
    "full": "full history (all orders for this item)",
    "custom": "custom date range",
}

# Scheduled sends are spaced out by kind so chairs are not mailed all at once
PHASE_OFFSET_MINUTES = {"banquet": 0, "addon": 5, "catalog": 10}
DEFAULT_PHASE_OFFSET_MINUTES = 20
MIN_SCHEDULE_LEAD = timedelta(seconds=5)


def resolve_scope_window(
    scope: str,
    now: datetime,
    start_date: str | None = None,
    end_date: str | None = None,
) -> ReportWindow | None:
    """
    Window for the named scopes.

    current-month: 1st of the month (UTC) through now. custom: start_date to
    end_date inclusive (Y-M-D). full and unknown scopes: unbounded (None).
    """
    if scope == "current-month":
        return ReportWindow(start=datetime(now.year, now.month, 1, tzinfo=UTC), end=now)
    if scope == "custom":
        start = parse_instant(start_date)
        end = parse_instant(end_date)
        return ReportWindow(start=start, end=end + timedelta(days=1) if end else None)
    return None


def staggered_send_time(kind: str, now: datetime) -> datetime | None:
    offset = PHASE_OFFSET_MINUTES.get(kind, DEFAULT_PHASE_OFFSET_MINUTES)
    return now + timedelta(minutes=offset) if offset > 0 else None


def report_filename(label: str | None, item_id: str, today: datetime) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", label or item_id or "report", flags=re.IGNORECASE).strip("_")
    return f"{slug or 'report'}_{today.date().isoformat()}.xlsx"


def format_coverage(window: ReportWindow | None, rows: list[dict]) -> str:
    """Human sentence describing the order dates a report covers."""

    def fmt(instant: datetime) -> str:
        return instant.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")

    start = window.start if window else None
    # The window end is exclusive
    end = window.end - timedelta(microseconds=1) if window and window.end else None

    if start is None or end is None:
        dated = [d for d in (parse_instant(r.get("date")) for r in rows) if d]
        if dated:
            start = start or min(dated)
            end = end or max(dated)

    if start is None and end is None:
        return ""

    start_label = fmt(start) if start else "beginning of recorded orders"
    end_label = fmt(end) if end else "now"
    return f"This report covers orders from {start_label} through {end_label}."


def _dedupe(addresses: list[str], exclude: list[str] | None = None) -> list[str]:
    seen = {a.lower() for a in exclude or []}
    out = []
    for address in addresses:
        if address.lower() not in seen:
            seen.add(address.lower())
            out.append(address)
    return out


class ChairReportService:
    """Builds and delivers one item's chair report."""

    def __init__(
        self,
        config_store=None,
        order_source=None,
        transport=None,
        audit=None,
        sleep=asyncio.sleep,
    ):
        self.config_store = config_store or item_config_repository
        self.order_source = order_source or order_repository
        self.transport = transport or resend_transport
        self.audit = audit or mail_audit_recorder
        self._sleep = sleep

    async def resolve_recipients(
        self, item_id: str, chair_emails: list[str] | None = None
    ) -> tuple[list[str], list[str]]:
        """
        Chair emails plus admin fallbacks.

        Returns:
            (to, bcc): chairs and REPORTS_CC fallbacks in `to`; REPORTS_BCC
            admins not already in `to` in `bcc`. With no chairs and no CC the
            admins move to `to`.
        """
        if chair_emails is None:
            chair_emails = await self.config_store.get_chair_emails(item_id)
        chairs = list(chair_emails)
        to = _dedupe([*chairs, *settings.reports_cc_list()])
        bcc = _dedupe(settings.reports_bcc_list(), exclude=to)
        if not to:
            return bcc, []
        return to, bcc

    async def send_item_report(
        self,
        *,
        kind: str,
        item_id: str,
        label: str | None = None,
        scope: str = "current-month",
        window: ReportWindow | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        snapshot: OrderSnapshot | None = None,
        scheduled_at: datetime | None = None,
        now: datetime | None = None,
        final: bool = False,
        chair_emails: list[str] | None = None,
    ) -> ReportResult:
        """
        Build the item's roster, encode it, and email it to the item's chairs.

        Args:
            kind: Line category to report (banquet, addon, catalog)
            item_id: Item id; variants are grouped by base id
            label: Display name used in the subject, filename and legacy matching
            scope: window | current-month | custom | full
            window: Explicit bounds, used as-is when given
            start_date / end_date: Inclusive Y-M-D bounds for scope "custom"
            snapshot: Orders loaded for this invocation (loaded here if omitted)
            scheduled_at: Ask the provider to deliver later
            now: Clock override
            final: Mark the report as the closing (FINAL) report
            chair_emails: Already-resolved chair addresses; looked up when omitted

        Returns:
            ReportResult. Configuration problems and delivery failures are
            reported through `ok`/`error`; nothing is raised for them.
        """
        now = now or datetime.now(UTC)
        kind = str(kind or "").strip().lower()
        item_id = str(item_id or "").strip()

        if not self.transport.configured:
            return ReportResult(ok=False, error="transport-not-configured")
        if not kind or not item_id:
            return ReportResult(ok=False, error="missing-kind-or-id")

        if snapshot is None:
            snapshot = await self.order_source.load_snapshot()
        if window is None:
            window = resolve_scope_window(scope, now, start_date, end_date)

        with_address = includes_address(item_id)
        rows = build_roster(
            snapshot.orders,
            item_id=item_id,
            category=kind,
            window=window,
            include_address=with_address,
            label=label,
        )
        columns = roster_columns(item_id)
        workbook = encode_workbook(columns, rows, ROSTER_HEADER_LABELS, sheet_name="Item Report")
        filename = report_filename(label, item_id, now)

        to, bcc = await self.resolve_recipients(item_id, chair_emails)
        if not to:
            logger.warning("No recipients for chair report", item_id=item_id, kind=kind)
            return ReportResult(ok=False, count=len(rows), error="no-recipient", filename=filename)

        # Provider scheduling is wall-clock; replays with a past `now` send immediately
        if scheduled_at is not None and scheduled_at <= datetime.now(UTC) + MIN_SCHEDULE_LEAD:
            scheduled_at = None

        pretty_kind = "catalog" if kind == "other" else kind
        name = label or item_id
        subject = f"{'FINAL ' if final else ''}Report - {pretty_kind}: {name}"
        message = EmailMessage(
            from_address=settings.RESEND_FROM,
            to=to,
            bcc=bcc,
            subject=subject,
            html=self._render_body(pretty_kind, name, scope, window, rows),
            attachments=[EmailAttachment(filename, base64.b64encode(workbook).decode("ascii"))],
            reply_to=settings.REPLY_TO,
            scheduled_at=scheduled_at,
        )

        delivery = await deliver_with_retry(
            lambda: self.transport.send(message),
            label=f"item-report:{kind}:{item_id}",
            sleep=self._sleep,
        )

        entry = MailLogEntry(
            timestamp=datetime.now(UTC),
            from_address=message.from_address,
            to=[*to, *bcc],
            subject=subject,
            kind="item-report-final" if final else "item-report",
            status="queued" if delivery.ok else "error",
            scheduled_at=scheduled_at,
        )
        if delivery.ok:
            if isinstance(delivery.result, dict):
                entry.result_id = delivery.result.get("id")
        else:
            entry.error = str(delivery.error)
        await self.audit.record(entry)

        if not delivery.ok:
            return ReportResult(
                ok=False,
                count=len(rows),
                to=to,
                bcc=bcc,
                error="send-failed",
                message=str(delivery.error),
                filename=filename,
            )

        logger.info(
            "Chair report sent",
            item_id=item_id,
            kind=kind,
            rows=len(rows),
            recipients=len(to) + len(bcc),
            attempt=delivery.attempt,
            scheduled_at=scheduled_at.isoformat() if scheduled_at else None,
        )
        return ReportResult(
            ok=True,
            count=len(rows),
            to=to,
            bcc=bcc,
            filename=filename,
            scheduled_at=scheduled_at,
        )

    @staticmethod
    def _render_body(
        kind: str, name: str, scope: str, window: ReportWindow | None, rows: list[dict]
    ) -> str:
        coverage = format_coverage(window, rows)
        coverage_html = (
            f'<p style="font-size:12px;color:#555;margin:2px 0 0;">{html.escape(coverage)}</p>'
            if coverage
            else ""
        )
        scope_label = SCOPE_LABELS.get(scope, scope)
        return (
            '<div style="font-family:system-ui,Segoe UI,Arial,sans-serif">'
            f"<p>Attached is the Excel report for <b>{html.escape(kind)}</b> "
            f"&ldquo;{html.escape(name)}&rdquo;.</p>"
            f"<p>Rows: <b>{len(rows)}</b></p>"
            f'<div style="font-size:12px;color:#555;margin:2px 0;">Scope: {html.escape(scope_label)}</div>'
            f"{coverage_html}"
            "</div>"
        )


chair_report_service = ChairReportService()
