"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- Calendar dates (shift_date, punch_date, "today" for metrics) use the organization's timezone.
"""
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for check_in_time, punch_time, locked_at, etc."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def org_zone(tz_name: Optional[str]) -> ZoneInfo:
    """ZoneInfo for an organization; unknown or empty names fall back to DEFAULT_TIMEZONE."""
    try:
        return ZoneInfo(tz_name or settings.DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(settings.DEFAULT_TIMEZONE)


def local_date(tz_name: Optional[str], at: Optional[datetime] = None) -> date:
    """Calendar date in the organization's timezone for the given UTC time (default now)."""
    return ensure_utc(at or now_utc()).astimezone(org_zone(tz_name)).date()


def iso_8601_utc(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with Z for UTC."""
    if dt is None:
        return None
    s = ensure_utc(dt).isoformat()
    if s.endswith("+00:00"):
        s = s[:-6] + "Z"
    return s
