"""
Pure pipeline components for chair reports.

Period calculation, roster building and workbook encoding perform no I/O;
services compose them with the stores and the email transport.
"""

from .period import compute_period, compute_period_id, normalize_frequency
from .roster import ROSTER_HEADER_LABELS, build_roster, includes_address, roster_columns
from .spreadsheet import encode_workbook

__all__ = [
    "ROSTER_HEADER_LABELS",
    "build_roster",
    "compute_period",
    "compute_period_id",
    "encode_workbook",
    "includes_address",
    "normalize_frequency",
    "roster_columns",
]
