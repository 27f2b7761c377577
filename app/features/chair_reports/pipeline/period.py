"""
Period calculator for recurring chair reports.

Maps (frequency, reference instant) to a calendar-aligned period id and the
window [start, end) that period covers. Everything is computed in UTC so the
id is stable for the whole period and changes exactly at its boundaries;
re-running inside one calendar period yields the same id, which is what the
scheduler's "already sent" check relies on.
"""

from datetime import UTC, datetime, timedelta

from app.features.chair_reports.domain.models import (
    ReportFrequency,
    ReportPeriod,
    ReportWindow,
    as_utc,
)

# Legacy labels written by older admin pages
_FREQUENCY_ALIASES = {
    "twice-per-month": ReportFrequency.BIWEEKLY,
    "twice per month": ReportFrequency.BIWEEKLY,
    "twice": ReportFrequency.BIWEEKLY,
    "2x": ReportFrequency.BIWEEKLY,
    "do not auto send": ReportFrequency.NONE,
    "do-not-auto-send": ReportFrequency.NONE,
}

BIWEEKLY_SPLIT_DAY = 15


def normalize_frequency(raw: str | ReportFrequency | None) -> ReportFrequency:
    """
    Normalize a stored frequency value.

    Empty and unrecognized values fall back to monthly; this is the safe
    default the rest of the engine assumes, never an error.
    """
    if isinstance(raw, ReportFrequency):
        return raw

    value = str(raw or "").strip().lower()
    if not value:
        return ReportFrequency.MONTHLY
    if value in _FREQUENCY_ALIASES:
        return _FREQUENCY_ALIASES[value]
    try:
        return ReportFrequency(value)
    except ValueError:
        return ReportFrequency.MONTHLY


def _start_of_day(instant: datetime) -> datetime:
    return datetime(instant.year, instant.month, instant.day, tzinfo=UTC)


def _start_of_month(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=UTC)


def _start_of_next_month(instant: datetime) -> datetime:
    if instant.month == 12:
        return _start_of_month(instant.year + 1, 1)
    return _start_of_month(instant.year, instant.month + 1)


def _calendar_period(frequency: ReportFrequency, ref: datetime) -> tuple[str, datetime, datetime, str]:
    if frequency is ReportFrequency.DAILY:
        start = _start_of_day(ref)
        return start.date().isoformat(), start, start + timedelta(days=1), "Daily"

    if frequency is ReportFrequency.WEEKLY:
        iso_year, iso_week, iso_weekday = ref.isocalendar()
        start = _start_of_day(ref) - timedelta(days=iso_weekday - 1)
        return f"{iso_year}-W{iso_week:02d}", start, start + timedelta(days=7), "Weekly (ISO week)"

    if frequency is ReportFrequency.BIWEEKLY:
        month_start = _start_of_month(ref.year, ref.month)
        split = month_start + timedelta(days=BIWEEKLY_SPLIT_DAY)
        prefix = f"{ref.year}-{ref.month:02d}"
        if ref.day <= BIWEEKLY_SPLIT_DAY:
            return f"{prefix}-1", month_start, split, "Twice-per-month (1st-15th)"
        return f"{prefix}-2", split, _start_of_next_month(ref), "Twice-per-month (16th-end)"

    start = _start_of_month(ref.year, ref.month)
    return f"{ref.year}-{ref.month:02d}", start, _start_of_next_month(ref), "Monthly"


def compute_period(
    frequency: str | ReportFrequency | None,
    reference: datetime,
    prior_window_end: datetime | None = None,
) -> ReportPeriod | None:
    """
    Compute the period containing `reference`.

    Args:
        frequency: Raw or normalized report frequency
        reference: Instant to locate (naive values are treated as UTC)
        prior_window_end: Optional end of the last reported window; when it
            is before the period end the window starts there instead of at the
            calendar boundary. The period id is unaffected.

    Returns:
        ReportPeriod, or None for frequency "none" (never auto-send)
    """
    freq = normalize_frequency(frequency)
    if freq is ReportFrequency.NONE:
        return None

    ref = as_utc(reference)
    period_id, start, end, label = _calendar_period(freq, ref)

    if prior_window_end is not None:
        prior = as_utc(prior_window_end)
        if prior < end and prior != start:
            start = prior
            label = f"{label}, continuing from last window"

    return ReportPeriod(
        frequency=freq,
        period_id=period_id,
        window=ReportWindow(start=start, end=end),
        label=label,
    )


def compute_period_id(frequency: str | ReportFrequency | None, reference: datetime) -> str | None:
    period = compute_period(frequency, reference)
    return period.period_id if period else None
