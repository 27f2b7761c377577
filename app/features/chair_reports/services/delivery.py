"""
Delivery-with-retry for outbound sends.

Exactly three sequential attempts; the first is immediate, the second waits
2s and the third 5s. Each attempt makes one send call, never overlapping,
so a slow provider cannot produce duplicate deliveries from parallel retries.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from app.features.chair_reports.domain.models import DeliveryResult
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAX_ATTEMPTS = 3
BACKOFF_SECONDS = (0.0, 2.0, 5.0)  # wait before attempt 1, 2, 3

SendFn = Callable[[], Awaitable[Any]]


async def deliver_with_retry(
    send_fn: SendFn,
    label: str = "email",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> DeliveryResult:
    """
    Run `send_fn` until it returns without raising, at most MAX_ATTEMPTS times.

    Args:
        send_fn: Zero-argument coroutine function performing one send
        label: Identifier used in logs
        sleep: Backoff sleeper (injectable for tests)

    Returns:
        DeliveryResult(ok=True, attempt, result) on the first success, or
        DeliveryResult(ok=False, error) carrying the last raised exception.
        The error is returned untouched; callers decide whether it is fatal.
    """
    last_error: BaseException | None = None

    for attempt in range(1, MAX_ATTEMPTS + 1):
        delay = BACKOFF_SECONDS[attempt - 1]
        if delay > 0:
            await sleep(delay)
        try:
            result = await send_fn()
            if attempt > 1:
                logger.info("Delivery succeeded after retry", label=label, attempt=attempt)
            return DeliveryResult(ok=True, attempt=attempt, result=result)
        except Exception as e:
            last_error = e
            logger.warning(
                "Delivery attempt failed",
                label=label,
                attempt=attempt,
                max_attempts=MAX_ATTEMPTS,
                error=str(e),
                error_type=type(e).__name__,
            )

    logger.error("Delivery failed after all attempts", label=label, error=str(last_error))
    return DeliveryResult(ok=False, attempt=MAX_ATTEMPTS, error=last_error)
