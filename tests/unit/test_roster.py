from datetime import UTC, datetime

from app.features.chair_reports.domain.models import Order, ReportWindow
from app.features.chair_reports.pipeline.roster import (
    ADDRESS_ROSTER_COLUMNS,
    ROSTER_COLUMNS,
    build_roster,
    includes_address,
    roster_columns,
)


def _order(order_id: str, created, *lines, purchaser: str = "Pat Buyer") -> Order:
    return Order.from_dict(
        {"id": order_id, "created": created, "lines": list(lines), "purchaser": {"name": purchaser}}
    )


def _line(item_id: str, category: str, name: str = "Gala Dinner", **meta) -> dict:
    return {"itemId": item_id, "itemName": name, "category": category, "qty": 1, "meta": meta}


def test_rows_sorted_by_date_and_counter_skips_rows_without_attendee():
    orders = [
        _order("o2", "2025-03-10T10:00:00Z", _line("gala", "banquet", attendeeName="Bea")),
        _order("o1", "2025-03-02T10:00:00Z", _line("gala", "banquet", attendeeName="Al")),
        _order("o3", "2025-03-05T10:00:00Z", _line("gala", "banquet")),
    ]

    rows = build_roster(orders, item_id="gala", category="banquet")

    assert [r["attendee"] for r in rows] == ["Al", "", "Bea"]
    assert [r["#"] for r in rows] == [1, "", 2]


def test_variants_match_on_base_id_and_category():
    orders = [
        _order(
            "o1",
            "2025-03-02T10:00:00Z",
            _line("gala:adult", "banquet", attendeeName="Al"),
            _line("GALA:child", "banquet", attendeeName="Kid"),
            _line("gala", "addon", attendeeName="Wrong Category"),
            _line("galaxy", "banquet", attendeeName="Wrong Item"),
        )
    ]

    rows = build_roster(orders, item_id="gala", category="banquet")

    assert [r["attendee"] for r in rows] == ["Al", "Kid"]


def test_window_bounds_are_half_open():
    window = ReportWindow(
        start=datetime(2025, 3, 1, tzinfo=UTC), end=datetime(2025, 4, 1, tzinfo=UTC)
    )
    orders = [
        _order("before", "2025-02-28T23:59:59Z", _line("gala", "banquet", attendeeName="A")),
        _order("start", "2025-03-01T00:00:00Z", _line("gala", "banquet", attendeeName="B")),
        _order("end", "2025-04-01T00:00:00Z", _line("gala", "banquet", attendeeName="C")),
    ]

    rows = build_roster(orders, item_id="gala", category="banquet", window=window)

    assert [r["attendee"] for r in rows] == ["B"]


def test_unparsable_dates_are_kept_and_sorted_first():
    window = ReportWindow(start=datetime(2025, 3, 1, tzinfo=UTC))
    orders = [
        _order("o1", "2025-03-02T10:00:00Z", _line("gala", "banquet", attendeeName="Dated")),
        _order("o2", "not a date", _line("gala", "banquet", attendeeName="Undated")),
    ]

    rows = build_roster(orders, item_id="gala", category="banquet", window=window)

    assert [r["attendee"] for r in rows] == ["Undated", "Dated"]
    assert rows[0]["date"] == ""


def test_banquet_notes_join_attendee_and_dietary_notes():
    orders = [
        _order(
            "o1",
            "2025-03-02T10:00:00Z",
            _line("gala", "banquet", attendeeName="Al", attendeeNotes="Aisle seat", dietaryNote="Vegan"),
        )
    ]

    rows = build_roster(orders, item_id="gala", category="banquet")

    assert rows[0]["notes"] == "Aisle seat; Vegan"


def test_other_categories_use_item_note():
    orders = [
        _order(
            "o1",
            "2025-03-02T10:00:00Z",
            _line("pin", "catalog", name="Lapel Pin", itemNote="Gold", dietaryNote="ignored"),
        )
    ]

    rows = build_roster(orders, item_id="pin", category="catalog")

    assert rows[0]["notes"] == "Gold"
    assert rows[0]["item"] == "Lapel Pin"


def test_lines_without_item_id_fall_back_to_label_match():
    orders = [
        _order(
            "o1",
            "2025-03-02T10:00:00Z",
            {"itemName": "Spring Gala Dinner", "category": "banquet", "meta": {"attendeeName": "Al"}},
        )
    ]

    assert build_roster(orders, item_id="gala", category="banquet", label="gala dinner")
    assert build_roster(orders, item_id="gala", category="banquet") == []


def test_address_columns_only_for_address_items():
    assert includes_address("pre-reg")
    assert includes_address("directory:member")
    assert not includes_address("gala")
    assert roster_columns("pre-reg") == ADDRESS_ROSTER_COLUMNS
    assert roster_columns("gala") == ROSTER_COLUMNS

    orders = [
        _order(
            "o1",
            "2025-03-02T10:00:00Z",
            _line("pre-reg", "addon", name="Pre-registration", attendeeName="Al", attendeeCity="Reno"),
        )
    ]

    with_address = build_roster(orders, item_id="pre-reg", category="addon", include_address=True)
    without = build_roster(orders, item_id="pre-reg", category="addon")

    assert with_address[0]["attendee_city"] == "Reno"
    assert without[0]["attendee_city"] == ""


def test_empty_orders_produce_no_rows():
    assert build_roster([], item_id="gala", category="banquet") == []


def test_month_window_keeps_first_two_of_three_orders():
    window = ReportWindow(
        start=datetime(2025, 3, 1, tzinfo=UTC), end=datetime(2025, 4, 1, tzinfo=UTC)
    )
    orders = [
        _order(order_id, created, _line("gala", "banquet", attendeeName=order_id))
        for order_id, created in [("a", "2025-03-01"), ("b", "2025-03-15"), ("c", "2025-04-01")]
    ]

    rows = build_roster(orders, item_id="gala", category="banquet", window=window)

    assert [r["attendee"] for r in rows] == ["a", "b"]
