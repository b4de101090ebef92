"""
Time handling: UTC for stored instants, the reporting zone for calendar days.

Timestamps (issued_at, settled_at, session expiry) are always aware UTC.
Dates that bucket money (payment_date, reporting periods, realized credit)
are calendar days in the tenant's reporting timezone.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def reporting_zone(tz_name: str) -> ZoneInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ValueError: Unknown timezone name
    """
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {tz_name}")


def parse_iso(iso_string: str) -> datetime:
    """
    Parse an ISO 8601 timestamp to an aware UTC datetime.

    Raises ValueError if string has no timezone info.
    """
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot parse naive datetime string. "
            "Include timezone offset (e.g., 'Z' or '+00:00')."
        )
    return dt.astimezone(timezone.utc)


def local_date(dt: datetime, tz_name: str) -> date:
    """Calendar day an aware instant falls on in ``tz_name``."""
    if dt.tzinfo is None:
        raise ValueError("Cannot localize naive datetime. Datetime must be timezone-aware.")
    return dt.astimezone(reporting_zone(tz_name)).date()


def local_today(tz_name: str) -> date:
    """
    Current calendar day in the given timezone.

    Reporting periods are resolved in the tenant's local day, not UTC, so
    "last 7 days" matches the tenant's wall calendar.
    """
    return local_date(now_utc(), tz_name)
