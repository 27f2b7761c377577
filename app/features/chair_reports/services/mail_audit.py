"""
Mail audit recorder.

Keeps the most recent outbound report email in a short-lived slot so admins
can see what was last sent. Observability only: failures here are logged
and swallowed, never raised into the send path.
"""

import json

from app.config import settings
from app.features.chair_reports.domain.models import MailLogEntry
from app.infrastructure.observability.logging import get_logger
from app.services.redis_client import fast_redis

logger = get_logger(__name__)

MAIL_LOG_KEY = "mail:lastlog"


class MailAuditRecorder:
    def __init__(self, store=None, ttl_s: int | None = None):
        self.store = store or fast_redis
        self.ttl_s = ttl_s or settings.MAIL_LOG_TTL_S

    async def record(self, entry: MailLogEntry) -> bool:
        """Best-effort write of the entry; returns False instead of raising."""
        try:
            saved = await self.store.set_with_ttl(MAIL_LOG_KEY, json.dumps(entry.to_dict()), self.ttl_s)
            if not saved:
                logger.warning("Mail audit write was not acknowledged", kind=entry.kind)
            return bool(saved)
        except Exception as e:
            logger.warning("Mail audit write failed", kind=entry.kind, error=str(e))
            return False

    async def last(self) -> dict | None:
        raw = await self.store.get(MAIL_LOG_KEY)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return None


mail_audit_recorder = MailAuditRecorder()
