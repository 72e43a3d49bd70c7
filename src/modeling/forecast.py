"""
Rolling capacity forecast built from contracted billing.

Each forecast month is an independent capacity aggregation; the series is
rebuilt from the line items on every call.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Collection, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from src.config import config
from src.data.models import ContractLineItem, to_decimal
from src.metrics.calendar_math import month_sequence, month_start
from src.metrics.capacity import (
    GroupKey,
    MonthlyCapacity,
    aggregate,
    capacity_status,
    percentage_of,
)

MODES = ("currency", "percentage")


@dataclass(frozen=True)
class ForecastPoint:
    """One month on the forecast timeline, in the requested mode."""
    month: date
    capacity: MonthlyCapacity
    total: Decimal
    breakdown: Tuple[Tuple[str, Decimal], ...]
    mode: str = "currency"


@dataclass(frozen=True)
class StaffingFlag:
    """Staffing read-out for one forecast month."""
    month: date
    percentage: Decimal
    status: str
    staffing: str


def _to_point(capacity: MonthlyCapacity,
              mode: str,
              effective_target: Optional[Decimal]) -> ForecastPoint:
    breakdown = [(g.key, g.actual) for g in capacity.groups]
    if mode == "currency":
        return ForecastPoint(
            month=capacity.month,
            capacity=capacity,
            total=capacity.total_actual,
            breakdown=tuple(breakdown),
            mode=mode,
        )

    # One divisor for the total and every bar so the bars add up to the total
    divisor = effective_target if effective_target is not None else capacity.total_target
    return ForecastPoint(
        month=capacity.month,
        capacity=capacity,
        total=percentage_of(capacity.total_actual, divisor),
        breakdown=tuple((key, percentage_of(amount, divisor)) for key, amount in breakdown),
        mode=mode,
    )


def forecast(items: Collection[ContractLineItem],
             start_month: date,
             month_count: int,
             group_key: GroupKey,
             targets: Mapping[str, Any],
             mode: str = "currency",
             effective_target: Any = None,
             excluded_services: Optional[Collection[str]] = None) -> List[ForecastPoint]:
    """
    Capacity for ``month_count`` consecutive months from ``start_month``.

    Args:
        items: Contract line items in scope
        start_month: Any day in the first month
        month_count: Number of months; 0 or less gives an empty forecast
        group_key: Aggregation dimension (service, team, member)
        targets: Targets keyed by aggregation key
        mode: "currency" for raw amounts, "percentage" for percent of target
        effective_target: Single target for a team/member scoped forecast.
            In percentage mode every amount is divided by it; when omitted the
            month's overall target is used.
        excluded_services: Override for the services left out of capacity

    Returns:
        List of ForecastPoint, one per month, in calendar order
    """
    if mode not in MODES:
        raise ValueError(f"Unknown forecast mode: {mode!r} (expected one of {MODES})")

    # Every month re-reads the items, so one-shot iterables are materialised once
    items = tuple(items)
    if effective_target is not None:
        effective_target = to_decimal(effective_target)

    points = []
    for month in month_sequence(start_month, month_count):
        capacity = aggregate(items, month, group_key, targets, excluded_services=excluded_services)
        points.append(_to_point(capacity, mode, effective_target))
    return points


def forecast_as_of(items: Collection[ContractLineItem],
                   as_of: date,
                   group_key: GroupKey,
                   targets: Mapping[str, Any],
                   month_count: Optional[int] = None,
                   **kwargs) -> List[ForecastPoint]:
    """Forecast anchored to the month containing ``as_of``."""
    if month_count is None:
        month_count = config.forecast_months
    return forecast(items, month_start(as_of), month_count, group_key, targets, **kwargs)


def staffing_flags(points: List[ForecastPoint], target: Any = None) -> List[StaffingFlag]:
    """
    Flag months that are over or under staffed.

    A month is "over" when billing exceeds the upper band and "under" while it
    sits in the healthy band, i.e. there is room for more work.
    """
    flags = []
    for point in points:
        divisor = to_decimal(target) if target is not None else point.capacity.total_target
        pct = percentage_of(point.capacity.total_actual, divisor)
        status = capacity_status(pct)
        if status == "over":
            staffing = "over"
        elif status == "healthy":
            staffing = "under"
        else:
            staffing = "ok"
        flags.append(StaffingFlag(month=point.month, percentage=pct, status=status, staffing=staffing))
    return flags


def forecast_to_frame(points: List[ForecastPoint], target: Any = None) -> pd.DataFrame:
    """
    Tidy forecast table, one row per month.

    Returns DataFrame with:
    - month, total_actual, total_target
    - value: the point total in the forecast's mode
    - percentage, status: against ``target`` or each month's overall target
    - delta_pct: change in percentage from the previous month
    - top_group: largest contributor that month
    """
    columns = ["month", "total_actual", "total_target", "value", "percentage",
               "status", "delta_pct", "top_group"]
    if len(points) == 0:
        return pd.DataFrame(columns=columns)

    flags = staffing_flags(points, target)
    df = pd.DataFrame({
        "month": pd.to_datetime([p.month for p in points]),
        "total_actual": [float(p.capacity.total_actual) for p in points],
        "total_target": [float(p.capacity.total_target) for p in points],
        "value": [float(p.total) for p in points],
        "percentage": [float(f.percentage) for f in flags],
        "status": [f.status for f in flags],
        "top_group": [p.capacity.groups[0].key if p.capacity.groups else None for p in points],
    })
    df["delta_pct"] = df["percentage"].diff().fillna(0)
    df["delta_pct"] = np.where(np.isfinite(df["delta_pct"]), df["delta_pct"], 0.0)
    return df[columns]
