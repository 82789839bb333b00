from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime string and normalize to UTC-naive.

    - None / "" -> None
    - "YYYY-MM-DD" -> midnight, or 23:59:59.999999 when end_of_day is set
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped

    Raises ValueError for anything else.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if len(s) == 10 and "T" not in s:
        day = date.fromisoformat(s)
        return datetime.combine(day, time.max if end_of_day else time.min)

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


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
