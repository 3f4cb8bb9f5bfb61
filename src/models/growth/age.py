"""
Child age helpers.

WHO growth standards index ages in days; monthly tables use an average
month of 30.4375 days, so fractional months are days / 30.4375.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union

from dateutil.parser import isoparse

from .config import DAYS_PER_MONTH

DateLike = Union[date, datetime, str]


def to_date(value: DateLike) -> date:
    """Normalize a date, datetime or ISO 8601 string to a calendar date.

    - aware datetimes are converted to UTC first
    - naive datetimes and plain strings are taken as-is
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return value
    else:
        dt = isoparse(str(value).strip())

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.date()


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def age_in_days(birth_date: DateLike, measured_on: Optional[DateLike] = None) -> int:
    born = to_date(birth_date)
    on = to_date(measured_on) if measured_on is not None else today_utc()
    days = (on - born).days
    if days < 0:
        raise ValueError(f"Measurement date {on} is before birth date {born}")
    return days


def age_in_months(birth_date: DateLike, measured_on: Optional[DateLike] = None) -> float:
    """Fractional age in months as used for WHO table lookup."""
    return age_in_days(birth_date, measured_on) / DAYS_PER_MONTH


def completed_months(birth_date: DateLike, measured_on: Optional[DateLike] = None) -> int:
    """Whole calendar months since birth (a month completes on the birth day-of-month)."""
    born = to_date(birth_date)
    on = to_date(measured_on) if measured_on is not None else today_utc()
    if on < born:
        raise ValueError(f"Measurement date {on} is before birth date {born}")
    months = (on.year - born.year) * 12 + (on.month - born.month)
    if on.day < born.day:
        months -= 1
    return months
