"""
Outbound email transport backed by Resend.
"""

import asyncio

import resend

from app.config import settings
from app.features.chair_reports.domain.errors import EmailTransportError
from app.features.chair_reports.domain.models import EmailMessage
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def build_resend_params(message: EmailMessage) -> dict:
    """Translate an EmailMessage into the Resend send payload."""
    params = {
        "from": message.from_address,
        "to": list(message.to),
        "subject": message.subject,
        "html": message.html,
    }
    if message.bcc:
        params["bcc"] = list(message.bcc)
    if message.reply_to:
        params["reply_to"] = message.reply_to
    if message.attachments:
        params["attachments"] = [
            {"filename": attachment.filename, "content": attachment.content_b64}
            for attachment in message.attachments
        ]
    if message.scheduled_at:
        params["scheduled_at"] = message.scheduled_at.isoformat()
    return params


class ResendEmailTransport:
    """Sends one message per call; raises on any provider failure."""

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def send(self, message: EmailMessage) -> dict:
        """
        Send the message.

        Returns:
            dict: Provider response, including the message "id"

        Raises:
            EmailTransportError: If no API key is configured or the provider fails
        """
        if not self.configured:
            raise EmailTransportError(
                "Email transport not configured", operation="send", recoverable=False
            )

        resend.api_key = self.api_key
        params = build_resend_params(message)
        try:
            # The Resend SDK is synchronous; keep the event loop free
            response = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            raise EmailTransportError(f"Resend send failed: {e}", operation="send") from e

        logger.info(
            "Email accepted by Resend",
            to_count=len(message.to),
            bcc_count=len(message.bcc),
            subject=message.subject,
            result_id=(response or {}).get("id"),
        )
        return dict(response or {})


resend_transport = ResendEmailTransport()
