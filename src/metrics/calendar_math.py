"""
Calendar helpers for month boundaries and inclusive day counting.

All ranges are (start, end) pairs of calendar dates, both ends inclusive.
"""
from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import List, Tuple

from dateutil.relativedelta import relativedelta

DateRange = Tuple[date, date]


def _as_date(day) -> date:
    """Drop time-of-day from datetimes and pandas timestamps."""
    if isinstance(day, datetime):
        return day.date()
    return day


def month_start(day) -> date:
    day = _as_date(day)
    return day.replace(day=1)


def month_end(day) -> date:
    day = _as_date(day)
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def month_range(day) -> DateRange:
    """First and last calendar day of the month containing ``day``."""
    return month_start(day), month_end(day)


def overlap_days(range_a: DateRange, range_b: DateRange) -> int:
    """
    Number of days two inclusive ranges share.

    Disjoint or degenerate (end before start) overlaps count as 0.
    """
    start = max(_as_date(range_a[0]), _as_date(range_b[0]))
    end = min(_as_date(range_a[1]), _as_date(range_b[1]))
    if end < start:
        return 0
    return (end - start).days + 1


def total_days(date_range: DateRange) -> int:
    """Inclusive day count of a range, never less than 1."""
    start, end = _as_date(date_range[0]), _as_date(date_range[1])
    return max(1, (end - start).days + 1)


def add_months(day, months: int) -> date:
    """First day of the month ``months`` after the month containing ``day``."""
    return month_start(day) + relativedelta(months=months)


def month_sequence(start, count: int) -> List[date]:
    """``count`` consecutive month starts beginning at the month of ``start``."""
    return [add_months(start, i) for i in range(max(count, 0))]
