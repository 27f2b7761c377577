"""
Roster builder: flattens orders into the rows of one item's chair report.

Pure functions only; the caller supplies the order snapshot.
"""

from app.features.chair_reports.domain.models import (
    EPOCH,
    Order,
    OrderLine,
    ReportWindow,
    base_item_id,
)

# Items whose chairs also receive mailing addresses
ADDRESS_ITEM_IDS = frozenset({"pre-reg", "directory"})

ROSTER_COLUMNS = ["#", "date", "attendee", "attendee_title", "attendee_phone", "item", "qty", "notes"]

ADDRESS_ROSTER_COLUMNS = [
    "#",
    "date",
    "attendee",
    "attendee_title",
    "attendee_phone",
    "attendee_email",
    "attendee_addr1",
    "attendee_addr2",
    "attendee_city",
    "attendee_state",
    "attendee_postal",
    "attendee_country",
    "item",
    "qty",
    "notes",
]

ROSTER_HEADER_LABELS = {
    "#": "#",
    "date": "Date",
    "purchaser": "Purchaser",
    "attendee": "Attendee",
    "attendee_title": "Title",
    "attendee_phone": "Phone",
    "attendee_email": "Email",
    "attendee_addr1": "Address 1",
    "attendee_addr2": "Address 2",
    "attendee_city": "City",
    "attendee_state": "State",
    "attendee_postal": "Postal",
    "attendee_country": "Country",
    "item": "Item",
    "qty": "Qty",
    "notes": "Notes",
}

_ADDRESS_META_KEYS = {
    "attendee_addr1": "attendeeAddr1",
    "attendee_addr2": "attendeeAddr2",
    "attendee_city": "attendeeCity",
    "attendee_state": "attendeeState",
    "attendee_postal": "attendeePostal",
    "attendee_country": "attendeeCountry",
}


def includes_address(item_id: str) -> bool:
    return base_item_id(item_id) in ADDRESS_ITEM_IDS


def roster_columns(item_id: str) -> list[str]:
    return list(ADDRESS_ROSTER_COLUMNS if includes_address(item_id) else ROSTER_COLUMNS)


def _line_matches(line: OrderLine, category: str, want_base: str, label: str | None) -> bool:
    if line.category != category:
        return False
    if line.item_id:
        return line.base_id == want_base
    # Legacy lines without an id fall back to a display-name match
    return bool(label) and label.lower() in line.item_name.lower()


def _notes_for(line: OrderLine) -> str:
    meta = line.meta
    if line.category == "banquet":
        return "; ".join(str(v) for v in (meta.get("attendeeNotes"), meta.get("dietaryNote")) if v)
    return str(meta.get("itemNote") or "")


def _row_for(order: Order, line: OrderLine, include_address: bool) -> dict:
    meta = line.meta
    row = {
        "date": order.created.isoformat() if order.created else "",
        "purchaser": order.purchaser_name,
        "attendee": str(meta.get("attendeeName") or ""),
        "attendee_title": str(meta.get("attendeeTitle") or ""),
        "attendee_phone": str(meta.get("attendeePhone") or ""),
        "attendee_email": str(meta.get("attendeeEmail") or ""),
        "item": line.item_name,
        "item_id": line.item_id,
        "qty": line.qty,
        "notes": _notes_for(line),
    }
    for column, meta_key in _ADDRESS_META_KEYS.items():
        row[column] = str(meta.get(meta_key) or "") if include_address else ""
    return row


def build_roster(
    orders: list[Order],
    *,
    item_id: str,
    category: str,
    window: ReportWindow | None = None,
    include_address: bool = False,
    label: str | None = None,
) -> list[dict]:
    """
    Build the ordered report rows for one item.

    Args:
        orders: Every order in the current snapshot
        item_id: Target item id; variants (`id:adult`, `id:child`) match its base
        category: Line category to keep (banquet, addon, catalog, ...)
        window: Optional [start, end) bound on order creation time
        include_address: Populate attendee address columns
        label: Item display name, used only for lines that carry no item id

    Returns:
        Rows sorted by order date (ascending). The "#" counter numbers only
        rows that name an attendee; other rows get a blank counter cell.
    """
    want_category = str(category or "").strip().lower()
    want_base = base_item_id(item_id)

    matched: list[tuple] = []
    for order in orders or []:
        # Orders with unparsable dates are kept; they sort as the epoch
        if window is not None and order.created is not None and not window.contains(order.created):
            continue
        for line in order.lines:
            if _line_matches(line, want_category, want_base, label):
                matched.append((order.created or EPOCH, _row_for(order, line, include_address)))

    matched.sort(key=lambda pair: pair[0])

    rows = []
    counter = 1
    for _, row in matched:
        if row["attendee"].strip():
            row["#"] = counter
            counter += 1
        else:
            row["#"] = ""
        rows.append(row)
    return rows
