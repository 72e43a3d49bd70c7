"""
Revenue allocation: how much a single line item contributes to a month.

Recurring items contribute their full monthly rate in every month they are
live. One-off (project) items spread their total value pro rata by day across
their start/end window.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from src.config import config
from src.data.models import ContractLineItem
from src.metrics.calendar_math import month_range, overlap_days, total_days

ZERO = Decimal(0)


def recurring_active_in_month(item: ContractLineItem, month: date) -> bool:
    """
    Check if a recurring item is live during the month containing ``month``.

    Live means not started after month end and not ended before month start.
    An item that carries an end date counts even when ``is_active`` has been
    cleared: termination is signalled by the end date, not the flag.
    Whether a cleared flag should also stop billing is an open product question.
    """
    start, end = month_range(month)
    if item.start_date is not None and item.start_date > end:
        return False
    if item.end_date is not None and item.end_date < start:
        return False
    return item.is_active or item.end_date is not None


def _cumulative_share(value: Decimal, elapsed_days: int, window_days: int) -> Decimal:
    """Quantized share of ``value`` earned after ``elapsed_days`` of the window."""
    if elapsed_days <= 0:
        return ZERO
    if elapsed_days >= window_days:
        return value
    share = value * Decimal(elapsed_days) / Decimal(window_days)
    return share.quantize(config.money_quantum, rounding=ROUND_HALF_UP)


def project_allocation(item: ContractLineItem, month: date) -> Decimal:
    """
    Portion of a one-off item's total value that falls in the given month.

    Computed as cumulative-through-month-end minus cumulative-before-month-start
    so that the monthly shares always add back up to the item's value.
    """
    if item.start_date is None or item.end_date is None:
        return ZERO
    if item.has_inverted_window:
        return ZERO

    window = (item.start_date, item.end_date)
    m_start, m_end = month_range(month)
    if overlap_days(window, (m_start, m_end)) == 0:
        return ZERO

    window_days = total_days(window)
    days_before = (m_start - item.start_date).days
    days_through = (m_end - item.start_date).days + 1

    return (
        _cumulative_share(item.monthly_value, days_through, window_days)
        - _cumulative_share(item.monthly_value, days_before, window_days)
    )


def allocate(item: ContractLineItem, month: date) -> Decimal:
    """Revenue the item recognises in the month containing ``month``."""
    if item.has_inverted_window:
        return ZERO
    if item.is_one_off:
        return project_allocation(item, month)
    if recurring_active_in_month(item, month):
        return item.monthly_value
    return ZERO
