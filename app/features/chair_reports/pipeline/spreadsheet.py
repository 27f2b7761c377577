"""
Spreadsheet encoder for chair reports.

Turns row dictionaries into an .xlsx workbook: one bold, frozen header row,
then one row per input row projecting exactly the requested columns.
"""

from collections.abc import Mapping, Sequence
from io import BytesIO

import openpyxl
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

MIN_COLUMN_WIDTH = 10
COLUMN_PADDING = 2


def _cell_value(row: Mapping, column: str):
    value = row.get(column)
    # Missing and blank values become truly empty cells
    if value is None or value == "":
        return None
    if isinstance(value, str):
        # Control characters are illegal in sheet XML and would fail the whole report
        return ILLEGAL_CHARACTERS_RE.sub("", value) or None
    return value


def encode_workbook(
    columns: Sequence[str],
    rows: Sequence[Mapping],
    header_labels: Mapping[str, str] | None = None,
    sheet_name: str = "Report",
) -> bytes:
    """
    Encode rows into an xlsx workbook.

    Args:
        columns: Row keys to project, in output order
        rows: Row mappings; keys absent from a row render as empty cells
        header_labels: Optional display label per column key
        sheet_name: Worksheet title

    Returns:
        The workbook as bytes
    """
    labels = header_labels or {}
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_name or "Report"

    ws.append([labels.get(column, column) for column in columns])
    bold_font = Font(bold=True)
    for cell in ws[1]:
        cell.font = bold_font
    ws.freeze_panes = "A2"

    widths = [max(MIN_COLUMN_WIDTH, len(str(labels.get(c, c)))) for c in columns]
    for row in rows:
        values = [_cell_value(row, column) for column in columns]
        ws.append(values)
        for index, value in enumerate(values):
            if value is not None:
                widths[index] = max(widths[index], len(str(value)))

    for index, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(index)].width = width + COLUMN_PADDING

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
