"""Date manipulation utilities"""

import calendar
from datetime import date
from typing import Tuple


def parse_month_key(month_key: str) -> Tuple[int, int]:
    """Parse "YYYY-MM" into (year, month)"""
    try:
        year_text, month_text = month_key.split("-")
        year, month = int(year_text), int(month_text)
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid month key: {month_key!r}") from e
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month key: {month_key!r}")
    return year, month


def month_key(day: date) -> str:
    """Format the month containing `day` as "YYYY-MM" """
    return f"{day.year:04d}-{day.month:02d}"


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, clamping `day` into [1, last day of month]"""
    return date(year, month, max(1, min(day, last_day_of_month(year, month))))


def month_bounds(month_key_: str) -> Tuple[date, date]:
    """First and last calendar day of a "YYYY-MM" month (inclusive)"""
    year, month = parse_month_key(month_key_)
    return date(year, month, 1), date(year, month, last_day_of_month(year, month))


def shift_month(year: int, month: int, months: int) -> Tuple[int, int]:
    """Move (year, month) by a signed number of months"""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def prev_month_key(month_key_: str) -> str:
    year, month = shift_month(*parse_month_key(month_key_), -1)
    return f"{year:04d}-{month:02d}"


def day_in_month(month_key_: str, day: int) -> date:
    """Day-of-month inside a "YYYY-MM" month, clamped to its length"""
    year, month = parse_month_key(month_key_)
    return clamp_day(year, month, day)


def add_months_keep_day(from_date: date, target_day: int, months: int = 1) -> date:
    """Move `months` months forward and land on `target_day` (clamped)"""
    year, month = shift_month(from_date.year, from_date.month, months)
    return clamp_day(year, month, target_day)

