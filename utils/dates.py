"""Calendar helpers for period windows."""

import calendar
from datetime import datetime, timedelta


def start_of_month(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def end_of_month(moment: datetime) -> datetime:
    last_day = calendar.monthrange(moment.year, moment.month)[1]
    return moment.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999999)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def add_weeks(moment: datetime, weeks: int) -> datetime:
    return moment + timedelta(weeks=weeks)


def month_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


def to_naive_local(moment: datetime) -> datetime:
    """Offset-aware datetimes are converted to local time and stripped of tzinfo."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)
