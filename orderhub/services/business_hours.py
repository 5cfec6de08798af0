"""
Business hours helpers.

Days are numbered 0 = Sunday ... 6 = Saturday and times are "HH:MM"
strings compared lexically in the restaurant's own timezone. A range
whose close time is earlier than its open time runs past midnight.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DAYS_OF_WEEK = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]

DEFAULT_OPEN_TIME = "11:00"
DEFAULT_CLOSE_TIME = "21:00"


class HoursLike(Protocol):
    day_of_week: int
    is_open: bool
    open_time: str
    close_time: str


def _zone(timezone: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{timezone}', falling back to UTC")
        return ZoneInfo("UTC")


def local_now(timezone: str, now: Optional[datetime] = None) -> datetime:
    """``now`` (or the current instant) converted to the restaurant's timezone."""
    zone = _zone(timezone)
    if now is None:
        return datetime.now(zone)
    if now.tzinfo is None:
        return now.replace(tzinfo=zone)
    return now.astimezone(zone)


def day_of_week(moment: datetime) -> int:
    return moment.isoweekday() % 7


def is_time_in_range(current: str, open_time: str, close_time: str) -> bool:
    if close_time < open_time:
        return current >= open_time or current <= close_time
    return open_time <= current <= close_time


def _hours_for(hours: Iterable[HoursLike], day: int) -> Optional[HoursLike]:
    for entry in hours:
        if entry.day_of_week == day:
            return entry
    return None


def is_restaurant_open(
    timezone: str,
    hours: list[HoursLike],
    now: Optional[datetime] = None,
) -> bool:
    """No hours configured means closed."""
    if not hours:
        return False

    moment = local_now(timezone, now)
    today = _hours_for(hours, day_of_week(moment))
    if today is None or not today.is_open:
        return False

    return is_time_in_range(moment.strftime("%H:%M"), today.open_time, today.close_time)


def get_next_opening_time(
    timezone: str,
    hours: list[HoursLike],
    now: Optional[datetime] = None,
) -> Optional[dict[str, str]]:
    """
    The next ``{"day": ..., "time": "HH:MM"}`` the restaurant opens, looking
    at most a week ahead. Today only counts while before its opening time.
    """
    if not hours:
        return None

    moment = local_now(timezone, now)
    current_day = day_of_week(moment)
    current_time = moment.strftime("%H:%M")

    for offset in range(7):
        day = (current_day + offset) % 7
        entry = _hours_for(hours, day)
        if entry is None or not entry.is_open:
            continue
        if offset == 0 and current_time >= entry.open_time:
            continue
        return {"day": DAYS_OF_WEEK[day], "time": entry.open_time}

    return None


def format_time_for_display(time: str) -> str:
    """'13:05' -> '1:05 PM'"""
    hours, minutes = time.split(":")
    hour = int(hours)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes} {suffix}"


def get_restaurant_status(
    timezone: str,
    hours: list[HoursLike],
    now: Optional[datetime] = None,
) -> dict:
    """``{"is_open", "message", "next_opening"}`` for the storefront banner."""
    if is_restaurant_open(timezone, hours, now):
        return {"is_open": True, "message": "Open now", "next_opening": None}

    next_opening = get_next_opening_time(timezone, hours, now)
    if next_opening:
        return {
            "is_open": False,
            "message": (
                f"Closed • Opens {next_opening['day']} at "
                f"{format_time_for_display(next_opening['time'])}"
            ),
            "next_opening": next_opening,
        }

    return {"is_open": False, "message": "Currently closed", "next_opening": None}


def default_business_hours() -> list[dict]:
    """Every day open 11:00-21:00."""
    return [
        {
            "day_of_week": day,
            "is_open": True,
            "open_time": DEFAULT_OPEN_TIME,
            "close_time": DEFAULT_CLOSE_TIME,
        }
        for day in range(7)
    ]
