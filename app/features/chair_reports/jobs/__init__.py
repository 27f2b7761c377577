"""
Job runners for the chair report feature.
"""

from .report_job import ChairReportJob, chair_report_job, run_chair_reports, run_closing_reports

__all__ = ["ChairReportJob", "chair_report_job", "run_chair_reports", "run_closing_reports"]
