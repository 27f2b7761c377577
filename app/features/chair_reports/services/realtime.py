"""
Real-time dispatch guard for catalog purchases.

When an order completes, each distinct catalog item on it triggers a
full-lifetime chair report. A per-order marker makes webhook redelivery a
no-op. The marker is written after the attempt whether it succeeded or
failed, so a failing send is not retried on every redelivery: the policy
is at most one attempt per order, not exactly-once delivery.
"""

from app.config import settings
from app.features.chair_reports.domain.models import DispatchOutcome, Order, OrderLine
from app.features.chair_reports.repository.item_config_repository import item_config_repository
from app.features.chair_reports.repository.order_repository import order_repository
from app.features.chair_reports.services.report_service import chair_report_service
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DISPATCH_POLICY = "at-most-one-attempt"

REALTIME_CATEGORIES = frozenset({"catalog"})


def _is_realtime_eligible(line: OrderLine) -> bool:
    item_type = str(line.meta.get("itemType") or "").strip().lower()
    return line.category in REALTIME_CATEGORIES or item_type in REALTIME_CATEGORIES


def eligible_items(order: Order) -> list[OrderLine]:
    """First line per (category, base item id) among real-time eligible lines."""
    seen: set[tuple[str, str]] = set()
    out = []
    for line in order.lines:
        if not _is_realtime_eligible(line) or not line.item_id:
            continue
        key = (line.category, line.base_id)
        if key in seen:
            continue
        seen.add(key)
        out.append(line)
    return out


class RealtimeDispatchGuard:
    def __init__(
        self,
        config_store=None,
        order_source=None,
        report_sender=None,
        claim_marker_first: bool | None = None,
    ):
        self.config_store = config_store or item_config_repository
        self.order_source = order_source or order_repository
        self.report_sender = report_sender or chair_report_service
        self.claim_marker_first = (
            settings.REALTIME_CLAIM_MARKER_FIRST if claim_marker_first is None else claim_marker_first
        )

    async def maybe_dispatch(self, order: Order) -> DispatchOutcome | None:
        """
        Send real-time chair reports for `order` unless already attempted.

        Returns:
            DispatchOutcome, or None when the order has no id
        """
        if not order or not order.id:
            return None

        if self.claim_marker_first:
            if not await self.config_store.claim_dispatch_marker(order.id):
                return DispatchOutcome(order_id=order.id, skipped=True, reason="already-dispatched")
        elif await self.config_store.get_dispatch_marker(order.id):
            return DispatchOutcome(order_id=order.id, skipped=True, reason="already-dispatched")

        outcome = DispatchOutcome(order_id=order.id)
        try:
            await self._dispatch(order, outcome)
        except Exception as e:
            logger.error("Real-time chair dispatch failed", order_id=order.id, error=str(e))
        finally:
            if not self.claim_marker_first:
                await self.config_store.set_dispatch_marker(order.id)

        logger.info(
            "Real-time chair dispatch finished",
            order_id=order.id,
            attempted=outcome.attempted,
            sent=outcome.sent,
            policy=DISPATCH_POLICY,
        )
        return outcome

    async def _dispatch(self, order: Order, outcome: DispatchOutcome) -> None:
        lines = eligible_items(order)
        if not lines:
            outcome.reason = "no-eligible-items"
            return

        snapshot = (await self.order_source.load_snapshot()).with_order(order)

        for line in lines:
            outcome.attempted += 1
            try:
                result = await self.report_sender.send_item_report(
                    kind=line.category or "catalog",
                    item_id=line.item_id,
                    label=line.item_name or line.item_id,
                    scope="full",
                    snapshot=snapshot,
                )
            except Exception as e:
                logger.error(
                    "Real-time chair report raised",
                    order_id=order.id,
                    item_id=line.item_id,
                    error=str(e),
                )
                continue
            if result.ok:
                outcome.sent += 1
            else:
                logger.warning(
                    "Real-time chair report not sent",
                    order_id=order.id,
                    item_id=line.item_id,
                    error=result.error,
                )


realtime_dispatch_guard = RealtimeDispatchGuard()
