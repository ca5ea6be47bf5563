"""
Centralized datetime utilities.

Timestamps are stored as naive UTC (``TIMESTAMP WITHOUT TIME ZONE``).
All conversions between aware input and stored values go through here.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current time in UTC (naive)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Convert any datetime to naive UTC for database storage.

    Aware datetimes are shifted to UTC before tzinfo is stripped; naive
    datetimes are assumed to already be UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)

    return dt


def start_of_month(now: Optional[datetime] = None) -> datetime:
    """First instant of the month containing ``now``."""
    now = now or utc_now()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def start_of_next_month(now: Optional[datetime] = None) -> datetime:
    """First instant of the month after the one containing ``now``."""
    first = start_of_month(now)
    if first.month == 12:
        return first.replace(year=first.year + 1, month=1)
    return first.replace(month=first.month + 1)


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a stored timestamp as ISO-8601 UTC."""
    if dt is None:
        return None
    return to_naive_utc(dt).isoformat() + "Z"
