"""
Business-day helpers.

Timestamps are stored in UTC. A "day" for closings and day filters is the
calendar day in the business timezone (Pakistan Standard Time by default),
midnight to midnight.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from aquadesk.core.config import settings


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as sqlite hands them back) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def business_date(value: Optional[datetime] = None) -> date:
    """Calendar date of `value` (default: now) in the business timezone."""
    moment = as_utc(value) if value is not None else utc_now()
    return moment.astimezone(business_tz()).date()


def day_bounds(reference_date: date) -> Tuple[datetime, datetime]:
    """UTC [start, end) of the business day `reference_date`."""
    tz = business_tz()
    start = datetime.combine(reference_date, time.min, tzinfo=tz)
    end = datetime.combine(reference_date + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
