"""
Date and Time utilities

This module handles all date/time conversions for guide and fixture data.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo
import logging

logger = logging.getLogger(__name__)

XMLTV_TIME_LENGTH = 14


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def parse_xmltv_time(token: str) -> datetime:
    """
    Convert an XMLTV time token to a UTC datetime

    Only the literal numeric offset in the token is used; no timezone
    database is consulted. A '+HHMM' wall clock is ahead of UTC, so the
    offset is subtracted to reach UTC.

    Args:
        token: XMLTV time like '20080715003000 -0600' or '20080715003000'

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the token is shorter than 14 characters or malformed
    """
    if not token or len(token) < XMLTV_TIME_LENGTH:
        raise DateFormatError(f"XMLTV time too short: '{token}'")

    try:
        dt = datetime(
            int(token[0:4]),
            int(token[4:6]),
            int(token[6:8]),
            int(token[8:10]),
            int(token[10:12]),
            int(token[12:14]),
            tzinfo=timezone.utc,
        )
    except ValueError as e:
        raise DateFormatError(f"Invalid XMLTV time: '{token}'") from e

    offset = token[XMLTV_TIME_LENGTH:].strip()
    if offset:
        dt -= timedelta(minutes=_parse_offset_minutes(offset, token))

    return dt


def _parse_offset_minutes(offset: str, token: str) -> int:
    """Parse '+HHMM' / '-HHMM' into signed minutes"""
    if len(offset) != 5 or offset[0] not in "+-" or not offset[1:].isdigit():
        raise DateFormatError(f"Invalid XMLTV offset in '{token}'")

    minutes = int(offset[1:3]) * 60 + int(offset[3:5])
    return minutes if offset[0] == "+" else -minutes


def format_xmltv_time(instant: datetime, offset_minutes: int = 0) -> str:
    """
    Format a datetime as an XMLTV time token with the given offset

    Args:
        instant: Timezone-aware datetime
        offset_minutes: Offset of the wall clock to render, east of UTC positive

    Returns:
        Token like '20231027183000 +0200'
    """
    local = instant.astimezone(timezone.utc) + timedelta(minutes=offset_minutes)
    sign = "+" if offset_minutes >= 0 else "-"
    hours, minutes = divmod(abs(offset_minutes), 60)
    return f"{local.strftime('%Y%m%d%H%M%S')} {sign}{hours:02d}{minutes:02d}"


def _normalize_iso8601_string(date_str: str) -> str:
    """Normalize ISO8601 string by replacing 'Z' with '+00:00'

    Args:
        date_str: ISO8601 datetime string

    Returns:
        Normalized string with explicit timezone offset
    """
    return date_str.replace('Z', '+00:00') if date_str.endswith('Z') else date_str


def parse_iso8601_to_utc(date_str: str) -> datetime:
    """
    Parse ISO8601 date string and convert to UTC datetime

    Used for fixture kickoff times.

    Args:
        date_str: ISO8601 datetime string (e.g., '2025-10-09T19:45:00Z')

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the date string format is invalid
    """
    try:
        normalized = _normalize_iso8601_string(date_str)
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, AttributeError, TypeError) as e:
        raise DateFormatError(f"Invalid ISO8601 datetime format: '{date_str}'") from e


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def local_date(instant: datetime, tz_name: str) -> date:
    """Calendar date of an instant in the given IANA timezone"""
    if tz_name == "UTC":
        return instant.astimezone(timezone.utc).date()
    return instant.astimezone(ZoneInfo(tz_name)).date()


def local_date_string(instant: datetime, tz_name: str) -> str:
    """Calendar date as 'YYYY-MM-DD', the key used for day-scoped cache entries"""
    return local_date(instant, tz_name).isoformat()


def kickoff_label(kickoff: datetime, now: datetime, tz_name: str) -> str:
    """
    Display label for a kickoff time

    Returns 'HH:MM' in the local timezone, prefixed with 'Tom ' when the
    kickoff falls on a different local day than now.
    """
    zone = timezone.utc if tz_name == "UTC" else ZoneInfo(tz_name)
    local_kickoff = kickoff.astimezone(zone)
    label = local_kickoff.strftime("%H:%M")
    if local_kickoff.date() != now.astimezone(zone).date():
        return f"Tom {label}"
    return label
