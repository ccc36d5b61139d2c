"""
Business calendar helpers.

All stored timestamps are naive UTC. Business-local values (today's date,
the daily send time, rendered dates) use a fixed UTC offset from config so
results never depend on where the worker happens to run.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from ..config import BUSINESS_UTC_OFFSET_HOURS


def utcnow() -> datetime:
    """Current instant as naive UTC, matching the database columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def business_offset(offset_hours: Optional[int] = None) -> timedelta:
    return timedelta(hours=BUSINESS_UTC_OFFSET_HOURS if offset_hours is None else offset_hours)


def to_business_time(moment_utc: datetime, offset_hours: Optional[int] = None) -> datetime:
    """Shift a naive UTC datetime to business-local wall clock time"""
    return moment_utc + business_offset(offset_hours)


def business_today(now_utc: datetime, offset_hours: Optional[int] = None) -> date:
    return to_business_time(now_utc, offset_hours).date()


def business_day_start_utc(now_utc: datetime, offset_hours: Optional[int] = None) -> datetime:
    """UTC instant at which the current business-local day began"""
    local_midnight = datetime.combine(business_today(now_utc, offset_hours), datetime.min.time())
    return local_midnight - business_offset(offset_hours)
