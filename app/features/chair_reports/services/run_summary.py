"""
Operator summary email sent after each scheduled run.
"""

import asyncio
import html
from datetime import UTC, datetime

from app.config import settings
from app.features.chair_reports.domain.models import EmailMessage, MailLogEntry, ReportRun
from app.features.chair_reports.services.delivery import deliver_with_retry
from app.features.chair_reports.services.email_transport import resend_transport
from app.features.chair_reports.services.mail_audit import mail_audit_recorder
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SUMMARY_COLUMNS = ("Item", "Kind", "Frequency", "Period", "Result", "Rows", "Recipients")


def _result_cell(entry) -> str:
    if entry.skipped:
        return f"skipped: {entry.skip_reason}"
    if entry.ok:
        return "sent"
    return f"error: {entry.error}"


def render_run_summary(run: ReportRun, trigger: str = "cron") -> str:
    head = "".join(f"<th align=\"left\">{c}</th>" for c in SUMMARY_COLUMNS)
    body = []
    for entry in run.items:
        cells = (
            entry.label or entry.id,
            entry.kind,
            entry.frequency,
            entry.period_id,
            _result_cell(entry),
            str(entry.count) if entry.ok else "",
            ", ".join([*entry.to, *entry.bcc]),
        )
        body.append("<tr>" + "".join(f"<td>{html.escape(c)}</td>" for c in cells) + "</tr>")

    return (
        '<div style="font-family:system-ui,Segoe UI,Arial,sans-serif">'
        f"<p>Chair report run ({html.escape(trigger)}) started "
        f"{html.escape(run.started_at.isoformat())}</p>"
        f"<p>Sent: <b>{run.sent}</b> &middot; Skipped: <b>{run.skipped}</b> "
        f"&middot; Errors: <b>{run.errors}</b></p>"
        f'<table border="1" cellpadding="4" cellspacing="0"><tr>{head}</tr>{"".join(body)}</table>'
        "</div>"
    )


async def send_run_summary(
    run: ReportRun,
    trigger: str = "cron",
    transport=None,
    audit=None,
    sleep=asyncio.sleep,
) -> bool:
    """
    Email the run summary to REPORTS_LOG_TO.

    Best-effort: returns False when there is nobody to notify or delivery
    fails, and never raises.
    """
    transport = transport or resend_transport
    audit = audit or mail_audit_recorder
    recipients = settings.reports_log_to_list()
    if not recipients or not transport.configured:
        return False

    subject = f"Chair reports: {run.sent} sent, {run.skipped} skipped, {run.errors} errors"
    message = EmailMessage(
        from_address=settings.RESEND_FROM,
        to=recipients,
        subject=subject,
        html=render_run_summary(run, trigger),
        reply_to=settings.REPLY_TO,
    )
    delivery = await deliver_with_retry(
        lambda: transport.send(message), label="run-summary", sleep=sleep
    )

    entry = MailLogEntry(
        timestamp=datetime.now(UTC),
        from_address=message.from_address,
        to=recipients,
        subject=subject,
        kind="run-summary",
        status="queued" if delivery.ok else "error",
    )
    if delivery.ok and isinstance(delivery.result, dict):
        entry.result_id = delivery.result.get("id")
    if not delivery.ok:
        entry.error = str(delivery.error)
        logger.warning("Run summary email not sent", error=entry.error)
    await audit.record(entry)
    return delivery.ok
