from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def seconds_since(then: Optional[datetime], now: Optional[datetime] = None) -> float:
    """Elapsed seconds between a naive-UTC timestamp and now (0 when unknown)."""
    if then is None:
        return 0.0
    now = now or utcnow()
    return max((now - then).total_seconds(), 0.0)


def minutes(value: float) -> timedelta:
    return timedelta(minutes=value)
