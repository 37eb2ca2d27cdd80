"""Calendar-date helpers. Bookings are keyed by date only; time of day never matters."""

from datetime import date, datetime, timedelta, timezone
from typing import Tuple, Union
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def today_in(timezone_name: str) -> date:
    """Today's calendar date in the given IANA timezone"""
    return datetime.now(ZoneInfo(timezone_name)).date()


def to_calendar_date(value: Union[date, datetime, str]) -> date:
    """
    Normalize a date-ish value to a calendar date.

    Accepts ``date``, ``datetime`` (time discarded) or an ISO string such as
    ``2025-06-10`` or ``2025-06-10T14:30:00Z``.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip().split("T")[0])
    raise TypeError(f"Cannot convert {type(value).__name__} to a calendar date")


def day_window(day: date) -> Tuple[date, date]:
    """[day, day + 1) as a start-inclusive / end-exclusive range"""
    return day, day + timedelta(days=1)


def tomorrow_window(today: date) -> Tuple[date, date]:
    return day_window(today + timedelta(days=1))
