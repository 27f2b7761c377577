"""
Chair report services: the report pipeline and the engines that drive it.
"""

from .closing_service import ClosingReportService, closing_report_service
from .delivery import deliver_with_retry
from .email_transport import ResendEmailTransport, resend_transport
from .mail_audit import MailAuditRecorder, mail_audit_recorder
from .realtime import DISPATCH_POLICY, RealtimeDispatchGuard, realtime_dispatch_guard
from .report_service import ChairReportService, chair_report_service
from .run_summary import send_run_summary
from .scheduler import ReportSchedulingEngine, list_registered_items, report_scheduling_engine

__all__ = [
    "DISPATCH_POLICY",
    "ChairReportService",
    "ClosingReportService",
    "MailAuditRecorder",
    "RealtimeDispatchGuard",
    "ReportSchedulingEngine",
    "ResendEmailTransport",
    "chair_report_service",
    "closing_report_service",
    "deliver_with_retry",
    "list_registered_items",
    "mail_audit_recorder",
    "realtime_dispatch_guard",
    "report_scheduling_engine",
    "resend_transport",
    "send_run_summary",
]
