from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def unix_ms(dt: Optional[datetime] = None) -> int:
    """Milliseconds since the epoch; naive datetimes are treated as UTC."""
    if dt is None:
        dt = utcnow()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def from_unix_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)


def store_zone(name: Optional[str]) -> tzinfo:
    """Zone the shop prints times in; UTC when unset."""
    if not name:
        return timezone.utc
    return ZoneInfo(name)


def display_datetime(dt: datetime, tz: Optional[tzinfo] = None) -> str:
    """
    Invoice-style date: DD/MM/YYYY, HH:MM.
    Naive datetimes are treated as UTC and shown in tz.
    """
    if tz is not None:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(tz)
    return dt.strftime("%d/%m/%Y, %H:%M")


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
