"""
Chair report feature package.

Committee chairs receive a spreadsheet roster of everyone who bought their
item, on the item's schedule and in real time for catalog purchases. Every
layer (domain models, pipeline, repositories, services, jobs and API
router) lives in this vertical slice.
"""

# Re-export the primary building blocks for easy access.
from .api.router import router as chair_reports_router  # noqa: F401
from .jobs.report_job import chair_report_job, run_chair_reports, run_closing_reports  # noqa: F401
from .services.realtime import realtime_dispatch_guard  # noqa: F401
from .services.report_service import chair_report_service  # noqa: F401
from .services.scheduler import report_scheduling_engine  # noqa: F401
