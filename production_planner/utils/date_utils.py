# production_planner/utils/date_utils.py
from datetime import date, datetime, timedelta
from typing import Union

WEEKDAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

def convert_to_date(value: Union[date, datetime, str]) -> date:
    """Convert a value to a date object.

    Args:
        value: date, datetime or ISO formatted string (YYYY-MM-DD)

    Returns:
        Date object
    """
    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        # Accept full timestamps as well as plain dates
        return datetime.fromisoformat(value.strip()[:10]).date()

    raise ValueError(f"Cannot convert {value!r} to a date")

def weekday_name(day_index: int) -> str:
    """Get the weekday name for a Monday-based weekday index."""
    return WEEKDAY_NAMES[day_index % 7]

def is_payday_period(target: date, start_day: int = 25, end_day: int = 5) -> bool:
    """Check whether a date falls in the payday window.

    The window wraps the month boundary, e.g. the 25th through the 5th.

    Args:
        target: Date to check
        start_day: First day of the window
        end_day: Last day of the window in the following month

    Returns:
        True if the date is in the payday window
    """
    day = target.day
    if start_day <= end_day:
        return start_day <= day <= end_day
    return day >= start_day or day <= end_day

def date_range(start: date, days: int) -> list:
    """Get the list of dates from start covering the given number of days."""
    return [start + timedelta(days=offset) for offset in range(days + 1)]
