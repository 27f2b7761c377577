"""
Chair report API request models.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ScheduledRunRequest(BaseModel):
    """Optional clock override for a scheduled run (tests and replays)."""

    now: datetime | None = Field(default=None, description="Reference instant (default: now)")


class ItemReportRequest(BaseModel):
    """Ad-hoc report for one item."""

    kind: str = Field(..., min_length=1, description="banquet, addon or catalog")
    label: str | None = Field(default=None, description="Display name (default: configured name)")
    scope: str = Field(
        default="current-month",
        pattern="^(current-month|full|custom)$",
        description="current-month, full or custom",
    )
    start_date: str | None = Field(default=None, description="Inclusive Y-M-D start (custom scope)")
    end_date: str | None = Field(default=None, description="Inclusive Y-M-D end (custom scope)")
