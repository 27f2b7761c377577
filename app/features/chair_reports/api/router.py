"""
Chair report routes.

Cron, the checkout webhook and operators trigger the engine through these
endpoints; all of them require the REPORT_TOKEN bearer.
"""

from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.verify import report_token_dependency
from app.features.chair_reports.api.schemas import ItemReportRequest, ScheduledRunRequest
from app.features.chair_reports.domain.errors import ChairReportError
from app.features.chair_reports.jobs.report_job import chair_report_job
from app.features.chair_reports.repository.item_config_repository import item_config_repository
from app.features.chair_reports.repository.order_repository import order_repository
from app.features.chair_reports.services.closing_service import closing_report_service
from app.features.chair_reports.services.mail_audit import mail_audit_recorder
from app.features.chair_reports.services.realtime import realtime_dispatch_guard
from app.features.chair_reports.services.report_service import chair_report_service
from app.features.chair_reports.services.scheduler import report_scheduling_engine
from app.infrastructure.observability.logging import get_logger
from app.services.redis_client import KVStoreError

logger = get_logger(__name__)

router = APIRouter(
    prefix="/reports",
    tags=["chair-reports"],
    dependencies=[Depends(report_token_dependency)],
)


def _unavailable(operation: str, error: Exception) -> HTTPException:
    logger.error(f"{operation} failed", error=str(error), error_type=type(error).__name__)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))


@router.post("/scheduled-run")
async def scheduled_run(body: ScheduledRunRequest | None = None) -> dict:
    """Run one scheduling invocation (cron trigger)."""
    try:
        return await chair_report_job.run_once(now=body.now if body else None, trigger="cron")
    except (KVStoreError, ChairReportError) as e:
        raise _unavailable("Scheduled run", e)


@router.post("/closing-run")
async def closing_run() -> dict:
    """Send FINAL reports for items whose sales have closed."""
    try:
        return await closing_report_service.run()
    except (KVStoreError, ChairReportError) as e:
        raise _unavailable("Closing run", e)


@router.post("/orders/{order_id}/dispatch")
async def dispatch_order(order_id: str) -> dict:
    """Order-completed webhook: send real-time chair reports once per order."""
    order = await order_repository.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    try:
        outcome = await realtime_dispatch_guard.maybe_dispatch(order)
    except (KVStoreError, ChairReportError) as e:
        raise _unavailable("Order dispatch", e)
    return asdict(outcome) if outcome else {"order_id": order_id, "skipped": True}


@router.post("/items/{item_id}/send")
async def send_item_report(item_id: str, body: ItemReportRequest) -> dict:
    """Send an ad-hoc report for one item."""
    config = await item_config_repository.get_item_config(item_id)
    label = body.label or (config.name if config else None)

    try:
        result = await chair_report_service.send_item_report(
            kind=body.kind,
            item_id=item_id,
            label=label,
            scope=body.scope,
            start_date=body.start_date,
            end_date=body.end_date,
        )
    except (KVStoreError, ChairReportError) as e:
        raise _unavailable("Item report", e)

    payload = asdict(result)
    payload["scheduled_at"] = result.scheduled_at.isoformat() if result.scheduled_at else None
    return payload


@router.get("/items/{item_id}/schedule")
async def debug_item_schedule(
    item_id: str,
    now: datetime | None = Query(default=None),
    prior_window_end: datetime | None = Query(default=None),
) -> dict:
    """Explain what a scheduled run at `now` (default: current time) would do for one item."""
    result = await report_scheduling_engine.debug_schedule(
        item_id, now=now, prior_window_end=prior_window_end
    )
    if not result.get("ok"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.get("error"))
    return result


@router.get("/mail/last")
async def last_mail() -> dict:
    """Most recent mail audit entry (kept for MAIL_LOG_TTL_S)."""
    return {"entry": await mail_audit_recorder.last()}
