"""
Redis-backed order source.

Orders are JSON documents under `order:<id>` indexed by the `orders:index`
set. Reads immediately after checkout can see the index before the order
documents, so snapshot loading retries a few times before trusting an
empty result.
"""

import asyncio
import json
from datetime import UTC, datetime

from app.config import settings
from app.features.chair_reports.domain.errors import OrderSourceError
from app.features.chair_reports.domain.models import Order, OrderSnapshot
from app.infrastructure.observability.logging import get_logger
from app.services.redis_client import KVStoreError, fast_redis

logger = get_logger(__name__)

ORDER_INDEX_KEY = "orders:index"
ORDER_KEY_PREFIX = "order:"


class OrderRepository:
    """Read access to persisted orders."""

    def __init__(self, store=None, sleep=asyncio.sleep):
        self.store = store or fast_redis
        self._sleep = sleep

    async def list_all_order_ids(self) -> list[str]:
        try:
            return sorted(await self.store.smembers(ORDER_INDEX_KEY, strict=True))
        except KVStoreError as e:
            raise OrderSourceError(
                f"Cannot list orders: {e}", operation="list_all_order_ids", recoverable=True
            ) from e

    async def get_order(self, order_id: str) -> Order | None:
        raw = await self.store.get(f"{ORDER_KEY_PREFIX}{order_id}")
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Skipping unreadable order document", order_id=order_id)
            return None
        if not isinstance(data, dict):
            return None
        data.setdefault("id", order_id)
        return Order.from_dict(data)

    async def load_snapshot(
        self,
        retries: int | None = None,
        delay_s: float | None = None,
    ) -> OrderSnapshot:
        """
        Load every order once for the current invocation.

        Args:
            retries: Attempts before accepting an empty result
            delay_s: Pause between attempts

        Raises:
            OrderSourceError: If the order index cannot be read at all
        """
        retries = max(1, retries if retries is not None else settings.ORDER_LOAD_RETRIES)
        delay_s = delay_s if delay_s is not None else settings.ORDER_LOAD_RETRY_DELAY_S

        orders: list[Order] = []
        for attempt in range(1, retries + 1):
            ids = await self.list_all_order_ids()
            orders = []
            for order_id in ids:
                order = await self.get_order(order_id)
                if order:
                    orders.append(order)

            # Stop once orders resolve, or when there truly are none
            if orders or not ids:
                break

            logger.warning(
                "Order index not yet consistent, retrying",
                attempt=attempt,
                indexed=len(ids),
            )
            if attempt < retries:
                await self._sleep(delay_s)

        logger.info("Order snapshot loaded", orders=len(orders))
        return OrderSnapshot(orders=orders, loaded_at=datetime.now(UTC))


order_repository = OrderRepository()
