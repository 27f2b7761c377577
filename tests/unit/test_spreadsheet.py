from io import BytesIO

import openpyxl

from app.features.chair_reports.pipeline.spreadsheet import encode_workbook


def _load(data: bytes):
    return openpyxl.load_workbook(BytesIO(data)).active


def test_header_row_is_bold_and_frozen():
    ws = _load(encode_workbook(["#", "attendee"], [], {"attendee": "Attendee"}, sheet_name="Item Report"))

    assert ws.title == "Item Report"
    assert [c.value for c in ws[1]] == ["#", "Attendee"]
    assert all(c.font.bold for c in ws[1])
    assert ws.freeze_panes == "A2"
    assert ws.max_row == 1


def test_rows_project_requested_columns_in_order():
    rows = [
        {"attendee": "Al", "qty": 2, "extra": "dropped"},
        {"qty": 1, "attendee": "Bea", "notes": ""},
    ]

    ws = _load(encode_workbook(["attendee", "qty", "notes"], rows))

    assert [c.value for c in ws[2]] == ["Al", 2, None]
    assert [c.value for c in ws[3]] == ["Bea", 1, None]
    assert ws.max_column == 3


def test_column_width_fits_longest_value_with_minimum():
    rows = [{"attendee": "A very long attendee name", "qty": 1}]

    ws = _load(encode_workbook(["attendee", "qty"], rows))

    assert ws.column_dimensions["A"].width == len("A very long attendee name") + 2
    assert ws.column_dimensions["B"].width == 12


def test_same_rows_encode_to_same_cells():
    rows = [{"attendee": "Al", "qty": 1}]

    first = _load(encode_workbook(["attendee", "qty"], rows))
    second = _load(encode_workbook(["attendee", "qty"], rows))

    assert [[c.value for c in r] for r in first.iter_rows()] == [
        [c.value for c in r] for r in second.iter_rows()
    ]


def test_missing_column_reads_back_empty():
    ws = _load(encode_workbook(["a", "b"], [{"a": 1, "b": "x"}, {"a": 2}]))

    assert ws.max_row == 3
    assert [c.value for c in ws[3]] == [2, None]


def test_control_characters_are_stripped_from_text_cells():
    rows = [{"attendee": "Al\x00", "notes": "engrave\x0bA"}, {"attendee": "Bea", "notes": "\x1f"}]

    ws = _load(encode_workbook(["attendee", "notes"], rows))

    assert [c.value for c in ws[2]] == ["Al", "engraveA"]
    assert [c.value for c in ws[3]] == ["Bea", None]
