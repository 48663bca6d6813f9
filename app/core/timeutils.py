"""Report calendar helpers. Stored timestamps are UTC; reports cut days in REPORT_TIMEZONE."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings


def report_tz() -> ZoneInfo:
    return ZoneInfo(settings.report_timezone)


def local_today() -> date:
    return datetime.now(report_tz()).date()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """UTC [start, end) of a calendar day in the report timezone."""
    tz = report_tz()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def range_bounds(first_day: date, last_day: date) -> Tuple[datetime, datetime]:
    start, _ = day_bounds(first_day)
    _, end = day_bounds(last_day)
    return start, end


def to_local_date(value: datetime) -> date:
    """Calendar date of a stored timestamp; naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(report_tz()).date()
