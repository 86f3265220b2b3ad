"""
Calendar helpers shared by the ledger and the budget engine.
"""

import calendar
from datetime import date, datetime
from typing import Union


def as_date(value: Union[date, datetime]) -> date:
    """Collapse a datetime to its calendar day; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month."""
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def add_months(day: date, months: int) -> date:
    """
    Shift a date by whole months, clamping to the end of shorter months.

    Jan 31 + 1 month is Feb 28 (or 29), never an overflow into March.
    """
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, days_in_month(year, month)))
