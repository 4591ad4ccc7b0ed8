from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime
from typing import Any


def today() -> date:
    return date.today()


def coerce_date(value: Any) -> date | None:
    """Best-effort conversion to a calendar date.

    Accepts ``date``/``datetime`` instances and ISO-ish strings
    (``2024-01-05``, ``2024-01-05T10:00:00Z``, ``2024/01/05``). Time-of-day is
    dropped. Returns None for anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in ("%Y/%m/%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to the valid range for the given year/month."""
    return min(day, monthrange(year, month)[1])


def month_occurrence(anchor: date, months: int, target_day: int) -> date:
    """Return the date `months` months after anchor's month, on target_day clamped to month end."""
    month = anchor.month - 1 + months
    year = anchor.year + month // 12
    month = month % 12 + 1
    return date(year, month, clamp_day_to_month(year, month, target_day))


def months_between(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def sunday_weekday(d: date) -> int:
    """Weekday number with 0 = Sunday .. 6 = Saturday."""
    return d.isoweekday() % 7


def month_bounds(d: date) -> tuple[date, date]:
    """Return (first_day, last_day) of d's month."""
    return d.replace(day=1), d.replace(day=monthrange(d.year, d.month)[1])
