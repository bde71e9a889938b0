import datetime
from zoneinfo import ZoneInfo
import os


def get_timezone() -> ZoneInfo:
    """
    Get timezone
    """
    tz = os.getenv("TZ", "UTC")
    return ZoneInfo(tz)


timezone = get_timezone()


def get_now_with_timezone() -> datetime.datetime:
    """
    Get current time with local timezone
    return datetime.datetime(2026, 10, 19, 20, 17, 41, tzinfo=zoneinfo.ZoneInfo(key='UTC'))
    """
    return datetime.datetime.now(tz=timezone)


def to_timezone(dt: datetime.datetime, tz: ZoneInfo = None) -> datetime.datetime:
    """
    Convert datetime object to specified timezone
    """
    if tz is None:
        tz = timezone
    return dt.astimezone(tz)


def to_iso_format(dt: datetime.datetime) -> str:
    """
    Convert datetime object to ISO format string (with timezone)
    return 2026-10-19T20:20:06.517301+00:00
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone)
    return dt.astimezone(timezone).isoformat()
