"""
Server clock helpers.

All timestamps are stored in UTC; calendar rules (weeks, salary months)
are evaluated in the business timezone.
"""

from datetime import datetime, date, time, timezone
from zoneinfo import ZoneInfo

from fincore.app.core.config import settings


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.business_timezone)


def utcnow() -> datetime:
    """Server-computed current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def ensure_aware(moment: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def to_local(moment: datetime) -> datetime:
    return ensure_aware(moment).astimezone(business_tz())


def local_day(moment: datetime) -> date:
    return to_local(moment).date()


def local_start_of_day(day: date) -> datetime:
    """Midnight of a local calendar day, expressed in UTC."""
    return datetime.combine(day, time.min, tzinfo=business_tz()).astimezone(timezone.utc)


def local_end_of_day(day: date) -> datetime:
    """Last representable instant of a local calendar day, in UTC."""
    return datetime.combine(day, time.max, tzinfo=business_tz()).astimezone(timezone.utc)


def local_moment(day: date, hour: int) -> datetime:
    return datetime.combine(day, time(hour=hour), tzinfo=business_tz()).astimezone(timezone.utc)
