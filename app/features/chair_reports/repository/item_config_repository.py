"""
Redis-backed catalog configuration store.

Holds the catalog lists (banquets / addons / products), per-item overrides,
and the small state slots the report engine writes: the last reported
period per (item, frequency), per-order real-time dispatch markers, and
closing-report markers. Slots are read-then-written without locking.
"""

import json
from datetime import UTC, datetime
from typing import Any

from app.features.chair_reports.domain.models import ITEM_KINDS, ItemConfig
from app.infrastructure.observability.logging import get_logger
from app.services.redis_client import fast_redis

logger = get_logger(__name__)

CATALOG_LIST_KEYS = {
    "banquet": "banquets",
    "addon": "addons",
    "catalog": "products",
}
ITEM_CONFIG_KEY_PREFIX = "itemcfg"
DISPATCH_MARKER_KEY_PREFIX = "order:catalog_chairs_sent:"
CLOSING_MARKER_KEY_PREFIX = "closing:sent:"


def _loads(raw: str | None, default: Any) -> Any:
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


def _is_entry_eligible(entry: Any) -> bool:
    """Archived or inactive entries never reach the scheduler."""
    if not isinstance(entry, dict):
        return False
    if entry.get("active") is False:
        return False
    if entry.get("archived") is True or entry.get("isArchived") is True:
        return False
    return True


class ItemConfigRepository:
    """Configuration and report-state slots in the key-value store."""

    def __init__(self, store=None):
        self.store = store or fast_redis

    def _config_key(self, item_id: str) -> str:
        return f"{ITEM_CONFIG_KEY_PREFIX}:{item_id}"

    def _period_key(self, item_id: str, frequency: str) -> str:
        return f"{ITEM_CONFIG_KEY_PREFIX}:{item_id}:last_period:{frequency}"

    async def _get_overrides(self, item_id: str, strict: bool = False) -> dict:
        overrides = _loads(await self.store.get(self._config_key(item_id), strict=strict), {})
        return overrides if isinstance(overrides, dict) else {}

    async def get_item_configs(self, kind: str) -> list[ItemConfig]:
        """
        List eligible items of one kind with their overrides applied.

        Raises:
            KVStoreError: If the store cannot be read (catastrophic for a run)
        """
        list_key = CATALOG_LIST_KEYS.get(kind)
        if list_key is None:
            raise ValueError(f"Unknown item kind '{kind}'. Expected one of {', '.join(ITEM_KINDS)}")

        entries = _loads(await self.store.get(list_key, strict=True), [])
        if not isinstance(entries, list):
            logger.warning("Catalog list is not a list, ignoring", key=list_key)
            return []

        configs = []
        for entry in entries:
            if not _is_entry_eligible(entry):
                continue
            item_id = str(entry.get("id") or "").strip()
            if not item_id:
                continue
            overrides = await self._get_overrides(item_id, strict=True)
            configs.append(ItemConfig.from_entry(kind, entry, overrides))
        return configs

    async def get_item_config(self, item_id: str) -> ItemConfig | None:
        """Find one item across all catalog lists (first kind wins)."""
        for kind in ITEM_KINDS:
            for config in await self.get_item_configs(kind):
                if config.id == item_id:
                    return config

        overrides = await self._get_overrides(item_id)
        if overrides:
            kind = str(overrides.get("kind") or "catalog").lower()
            return ItemConfig.from_entry(kind, {"id": item_id}, overrides)
        return None

    async def get_chair_emails(self, item_id: str) -> list[str]:
        config = await self.get_item_config(item_id)
        return list(config.chair_emails) if config else []

    async def get_period_state(self, item_id: str, frequency: str) -> str | None:
        return await self.store.get(self._period_key(item_id, frequency))

    async def set_period_state(self, item_id: str, frequency: str, period_id: str) -> bool:
        saved = await self.store.set_with_ttl(self._period_key(item_id, frequency), period_id)
        if not saved:
            logger.warning(
                "Failed to persist last reported period",
                item_id=item_id,
                frequency=frequency,
                period_id=period_id,
            )
        return saved

    async def get_dispatch_marker(self, order_id: str) -> str | None:
        return await self.store.get(f"{DISPATCH_MARKER_KEY_PREFIX}{order_id}")

    async def set_dispatch_marker(self, order_id: str, value: str | None = None) -> bool:
        value = value or datetime.now(UTC).isoformat()
        return await self.store.set_with_ttl(f"{DISPATCH_MARKER_KEY_PREFIX}{order_id}", value)

    async def claim_dispatch_marker(self, order_id: str, value: str | None = None) -> bool:
        """Conditional put; True only for the caller that created the marker."""
        value = value or datetime.now(UTC).isoformat()
        return await self.store.set_if_absent(f"{DISPATCH_MARKER_KEY_PREFIX}{order_id}", value)

    async def get_closing_marker(self, item_id: str) -> str | None:
        return await self.store.get(f"{CLOSING_MARKER_KEY_PREFIX}{item_id}")

    async def set_closing_marker(self, item_id: str, value: str | None = None) -> bool:
        value = value or datetime.now(UTC).isoformat()
        return await self.store.set_with_ttl(f"{CLOSING_MARKER_KEY_PREFIX}{item_id}", value)


item_config_repository = ItemConfigRepository()
