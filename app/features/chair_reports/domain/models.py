"""
Domain models for the chair report feature.

These lightweight dataclasses describe catalog configuration, persisted
orders, and the values flowing through the report pipeline. Parsing from
the JSON documents kept in the key-value store happens here so the
pipeline only ever sees typed, UTC-normalized values.
"""

from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

# Enumeration order for scheduled runs: banquets, then add-ons, then products
ITEM_KINDS = ("banquet", "addon", "catalog")

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class ReportFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    NONE = "none"


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _from_epoch_ms(value: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def parse_instant(value: Any) -> datetime | None:
    """
    Parse a stored instant into an aware UTC datetime.

    Accepts datetimes, dates, epoch milliseconds (int/float or digit strings)
    and ISO-8601 strings. Anything unparsable returns None rather than raising.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, (int, float)):
        return _from_epoch_ms(value)

    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return _from_epoch_ms(int(text))
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def base_item_id(raw: str | None) -> str:
    """Portion of an item id before the first ':' (variants share one report)."""
    return str(raw or "").strip().lower().split(":")[0]


def split_emails(raw: Any) -> list[str]:
    if isinstance(raw, (list, tuple)):
        return [str(v).strip() for v in raw if str(v).strip()]
    return [part.strip() for part in str(raw or "").split(",") if part.strip()]


@dataclass(slots=True)
class ItemConfig:
    """Per-item settings for one banquet, add-on or catalog product."""

    id: str
    name: str
    kind: str
    chair_emails: list[str] = field(default_factory=list)
    publish_start: datetime | None = None
    publish_end: datetime | None = None
    report_frequency_raw: str | None = None

    @classmethod
    def from_entry(cls, kind: str, entry: dict, overrides: dict | None = None) -> "ItemConfig":
        """Merge a catalog list entry with its itemcfg overrides (overrides win)."""
        merged = {**(entry or {}), **(overrides or {})}
        item_id = str(merged.get("id") or (entry or {}).get("id") or "").strip()

        chair_raw = merged.get("chairEmails")
        if not chair_raw and isinstance(merged.get("chair"), dict):
            chair_raw = merged["chair"].get("email")

        frequency = merged.get("reportFrequency")
        if frequency is None:
            frequency = merged.get("report_frequency")

        return cls(
            id=item_id,
            name=str(merged.get("name") or item_id),
            kind=str(merged.get("kind") or kind).strip().lower() or kind,
            chair_emails=split_emails(chair_raw),
            publish_start=parse_instant(merged.get("publishStart")),
            publish_end=parse_instant(merged.get("publishEnd")),
            report_frequency_raw=None if frequency is None else str(frequency),
        )


@dataclass(slots=True)
class OrderLine:
    item_id: str
    item_name: str
    category: str
    qty: int = 1
    unit_price: int = 0  # cents
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def base_id(self) -> str:
        return base_item_id(self.item_id)

    @classmethod
    def from_dict(cls, data: dict) -> "OrderLine":
        try:
            qty = int(data.get("qty") or 1)
        except (TypeError, ValueError):
            qty = 1
        try:
            unit_price = int(data.get("unitPrice") or 0)
        except (TypeError, ValueError):
            unit_price = 0
        return cls(
            item_id=str(data.get("itemId") or "").strip(),
            item_name=str(data.get("itemName") or ""),
            category=str(data.get("category") or "other").strip().lower(),
            qty=qty,
            unit_price=unit_price,
            meta=dict(data.get("meta") or {}),
        )


@dataclass(slots=True)
class Order:
    """A completed purchase as persisted by checkout."""

    id: str
    created: datetime | None
    lines: list[OrderLine] = field(default_factory=list)
    purchaser: dict[str, Any] = field(default_factory=dict)
    customer_email: str = ""
    status: str = "paid"

    @property
    def purchaser_name(self) -> str:
        return str(self.purchaser.get("name") or self.customer_email or "")

    @classmethod
    def from_dict(cls, data: dict) -> "Order":
        return cls(
            id=str(data.get("id") or ""),
            created=parse_instant(data.get("created")),
            lines=[OrderLine.from_dict(li) for li in data.get("lines") or [] if isinstance(li, dict)],
            purchaser=dict(data.get("purchaser") or {}),
            customer_email=str(data.get("customer_email") or ""),
            status=str(data.get("status") or "paid"),
        )


@dataclass(slots=True)
class OrderSnapshot:
    """All orders, loaded once per invocation and threaded through the pipeline."""

    orders: list[Order]
    loaded_at: datetime

    def with_order(self, order: Order) -> "OrderSnapshot":
        """Return a snapshot guaranteed to contain `order` (fresh writes may lag the index)."""
        if any(o.id == order.id for o in self.orders):
            return self
        return OrderSnapshot(orders=[*self.orders, order], loaded_at=self.loaded_at)


@dataclass(slots=True, frozen=True)
class ReportWindow:
    """Half-open interval [start, end); a missing bound is unbounded."""

    start: datetime | None = None
    end: datetime | None = None

    def contains(self, instant: datetime) -> bool:
        if self.start is not None and instant < self.start:
            return False
        if self.end is not None and instant >= self.end:
            return False
        return True


@dataclass(slots=True, frozen=True)
class ReportPeriod:
    frequency: ReportFrequency
    period_id: str
    window: ReportWindow
    label: str


@dataclass(slots=True)
class EmailAttachment:
    filename: str
    content_b64: str


@dataclass(slots=True)
class EmailMessage:
    from_address: str
    to: list[str]
    subject: str
    html: str
    attachments: list[EmailAttachment] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    reply_to: str | None = None
    scheduled_at: datetime | None = None


@dataclass(slots=True)
class DeliveryResult:
    ok: bool
    attempt: int = 0
    result: Any = None
    error: BaseException | None = None


@dataclass(slots=True)
class ReportResult:
    """Outcome of one roster/encode/deliver pipeline call."""

    ok: bool
    count: int = 0
    to: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    error: str = ""
    message: str = ""
    filename: str = ""
    scheduled_at: datetime | None = None


@dataclass(slots=True)
class MailLogEntry:
    timestamp: datetime
    from_address: str
    to: list[str]
    subject: str
    kind: str
    status: str
    result_id: str | None = None
    error: str | None = None
    scheduled_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "from": self.from_address,
            "to": list(self.to),
            "subject": self.subject,
            "kind": self.kind,
            "status": self.status,
            "resultId": self.result_id,
            "error": self.error,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
        }


@dataclass(slots=True)
class ItemRunLog:
    """One decision record per item evaluated by a scheduling run."""

    id: str
    label: str
    kind: str
    frequency: str
    period_id: str = ""
    ok: bool = False
    skipped: bool = False
    skip_reason: str = ""
    count: int = 0
    to: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    error: str = ""
    window_start: datetime | None = None
    window_end: datetime | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["window_start"] = self.window_start.isoformat() if self.window_start else None
        data["window_end"] = self.window_end.isoformat() if self.window_end else None
        return data


@dataclass(slots=True)
class ReportRun:
    """In-memory log of one scheduling invocation; never persisted."""

    started_at: datetime
    sent: int = 0
    skipped: int = 0
    errors: int = 0
    items: list[ItemRunLog] = field(default_factory=list)

    def record(self, entry: ItemRunLog) -> None:
        if entry.skipped:
            self.skipped += 1
        elif entry.ok:
            self.sent += 1
        else:
            self.errors += 1
        self.items.append(entry)

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "sent": self.sent,
            "skipped": self.skipped,
            "errors": self.errors,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(slots=True)
class DispatchOutcome:
    order_id: str
    skipped: bool = False
    reason: str = ""
    attempted: int = 0
    sent: int = 0
