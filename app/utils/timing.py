from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC now, matching what the timestamp columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # PostgreSQL hands back aware datetimes, SQLite naive ones
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def elapsed(start: datetime, end: Optional[datetime] = None) -> float:
    """Seconds between ``start`` and ``end`` (default now), never negative."""
    end = as_naive_utc(end) if end else utcnow()
    return max(0.0, (end - as_naive_utc(start)).total_seconds())
