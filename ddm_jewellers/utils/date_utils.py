"""Date manipulation utilities"""

import calendar
from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the given month"""
    return calendar.monthrange(year, month)[1]


def add_months(from_date: datetime, months: int, day: int) -> datetime:
    """Move forward whole months and land on `day`, clamped to the month's last day"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    return from_date.replace(year=year, month=month, day=min(day, last_day_of_month(year, month)))


def js_weekday(value: datetime) -> int:
    """Weekday number with Sunday = 0 ... Saturday = 6"""
    return (value.weekday() + 1) % 7


def next_weekday(from_date: datetime, target_day: int) -> datetime:
    """Next occurrence of target_day (Sunday = 0) strictly after from_date"""
    days_until_target = (target_day - js_weekday(from_date) + 7) % 7 or 7
    return from_date + timedelta(days=days_until_target)
