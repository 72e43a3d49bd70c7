"""
Capacity metrics pack.

Single source of truth for: monthly billing per service/team/member, target
capacity, and percentage-of-target scores.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Collection, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from src.config import config
from src.data.models import ContractLineItem
from src.metrics.allocation import allocate
from src.metrics.calendar_math import month_start
from src.metrics.targets import target_for, total_target

ZERO = Decimal(0)
HUNDRED = Decimal(100)

GroupKey = Callable[[ContractLineItem], Optional[str]]


@dataclass(frozen=True)
class ServiceCapacity:
    """Billing against target for one aggregation key in one month."""
    key: str
    actual: Decimal
    target: Decimal
    percentage: Decimal
    client_ids: Tuple[str, ...]


@dataclass(frozen=True)
class MonthlyCapacity:
    """All aggregation groups for one month plus overall totals."""
    month: date
    groups: Tuple[ServiceCapacity, ...]
    total_actual: Decimal
    total_target: Decimal
    total_percentage: Decimal

    def group(self, key: str) -> Optional[ServiceCapacity]:
        for row in self.groups:
            if row.key == key:
                return row
        return None


# =============================================================================
# GROUPING KEYS
# =============================================================================

def by_service(item: ContractLineItem) -> Optional[str]:
    return item.service


def by_member(item: ContractLineItem) -> Optional[str]:
    return item.assignee_id


def by_team(client_teams: Mapping[str, str]) -> GroupKey:
    """Group by the team owning each item's client; unknown clients drop out."""
    def key(item: ContractLineItem) -> Optional[str]:
        return client_teams.get(item.client_id)
    return key


def scoped(group_key: GroupKey, client_ids: Collection[str]) -> GroupKey:
    """Restrict a grouping key to items belonging to the given clients."""
    allowed = frozenset(client_ids)

    def key(item: ContractLineItem) -> Optional[str]:
        if item.client_id not in allowed:
            return None
        return group_key(item)
    return key


# =============================================================================
# AGGREGATION
# =============================================================================

def percentage_of(actual: Decimal, target: Decimal) -> Decimal:
    """actual / target * 100, or 0 when the target is undefined."""
    if target > 0:
        return actual / target * HUNDRED
    return ZERO


def aggregate(items: Iterable[ContractLineItem],
              month: date,
              group_key: GroupKey,
              targets: Mapping[str, Any],
              excluded_services: Optional[Collection[str]] = None) -> MonthlyCapacity:
    """
    Group one month's allocations and score each group against its target.

    Groups are sorted by descending actual; ties keep first-seen key order.
    The overall target counts every configured target, including keys with
    no billing this month.
    """
    if excluded_services is None:
        excluded_services = config.excluded_services

    month = month_start(month)
    actuals: Dict[str, Decimal] = {}
    clients: Dict[str, Dict[str, None]] = {}

    for item in items:
        if item.service in excluded_services:
            continue

        amount = allocate(item, month)
        if amount == 0:
            continue

        key = group_key(item)
        if key is None:
            continue

        if key not in actuals:
            actuals[key] = ZERO
            clients[key] = {}
        actuals[key] += amount
        clients[key][item.client_id] = None

    groups = []
    for key, actual in actuals.items():
        target = target_for(targets, key)
        groups.append(ServiceCapacity(
            key=key,
            actual=actual,
            target=target,
            percentage=percentage_of(actual, target),
            client_ids=tuple(clients[key]),
        ))
    groups.sort(key=lambda g: -g.actual)

    total_actual = sum((g.actual for g in groups), ZERO)
    overall_target = total_target(targets)

    return MonthlyCapacity(
        month=month,
        groups=tuple(groups),
        total_actual=total_actual,
        total_target=overall_target,
        total_percentage=percentage_of(total_actual, overall_target),
    )


# =============================================================================
# STATUS & COMPARISON
# =============================================================================

def capacity_status(percentage) -> str:
    """Band a capacity percentage: healthy, busy or over."""
    pct = float(percentage)
    if pct < config.capacity_busy_threshold:
        return "healthy"
    if pct <= config.capacity_over_threshold:
        return "busy"
    return "over"


def capacity_delta(current: MonthlyCapacity, following: MonthlyCapacity) -> Decimal:
    """Change in overall percentage from one month to the next."""
    return following.total_percentage - current.total_percentage


def capacity_to_frame(capacity: MonthlyCapacity,
                      client_names: Optional[Mapping[str, str]] = None) -> pd.DataFrame:
    """
    Render a month's groups as a table for the presentation layer.

    Returns DataFrame with:
    - key, actual, target, percentage, status
    - client_count and client_names (names resolved externally)
    """
    columns = ["key", "actual", "target", "percentage", "status", "client_count", "client_names"]
    if len(capacity.groups) == 0:
        return pd.DataFrame(columns=columns)

    names = client_names or {}
    rows: List[Dict[str, Any]] = []
    for g in capacity.groups:
        rows.append({
            "key": g.key,
            "actual": float(g.actual),
            "target": float(g.target),
            "percentage": float(g.percentage),
            "client_count": len(g.client_ids),
            "client_names": [names.get(cid, "Unknown") for cid in g.client_ids],
        })

    df = pd.DataFrame(rows)
    df["status"] = np.select(
        [
            df["percentage"] < config.capacity_busy_threshold,
            df["percentage"] <= config.capacity_over_threshold,
        ],
        ["healthy", "busy"],
        default="over",
    )
    return df[columns]
