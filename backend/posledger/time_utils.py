from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC; every stored timestamp uses this."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _is_date_only(value: str) -> bool:
    return len(value) == 10 and value[4] == "-" and value[7] == "-"


def parse_iso_datetime(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse an ISO-8601 string into a UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC, or the last instant of that day when
      end_of_day is set (inclusive upper bounds)
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped

    Raises ValueError for anything else.
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if _is_date_only(s):
        day = datetime.fromisoformat(s).date()
        return datetime.combine(day, time.max if end_of_day else time.min)

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_window(start: Optional[str], end: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive [start, end] from query strings; rejects a reversed window."""
    start_dt = parse_iso_datetime(start)
    end_dt = parse_iso_datetime(end, end_of_day=True)
    if start_dt and end_dt and start_dt > end_dt:
        raise ValueError("start must not be after end")
    return start_dt, end_dt


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with a trailing 'Z'; naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
