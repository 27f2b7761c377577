"""
Domain subpackage for the chair report feature.
"""

from .errors import ChairReportError, EmailTransportError, OrderSourceError
from .models import (
    ITEM_KINDS,
    DeliveryResult,
    DispatchOutcome,
    EmailAttachment,
    EmailMessage,
    ItemConfig,
    ItemRunLog,
    MailLogEntry,
    Order,
    OrderLine,
    OrderSnapshot,
    ReportFrequency,
    ReportPeriod,
    ReportResult,
    ReportRun,
    ReportWindow,
)

__all__ = [
    "ITEM_KINDS",
    "ChairReportError",
    "DeliveryResult",
    "DispatchOutcome",
    "EmailAttachment",
    "EmailMessage",
    "EmailTransportError",
    "ItemConfig",
    "ItemRunLog",
    "MailLogEntry",
    "Order",
    "OrderLine",
    "OrderSnapshot",
    "OrderSourceError",
    "ReportFrequency",
    "ReportPeriod",
    "ReportResult",
    "ReportRun",
    "ReportWindow",
]
