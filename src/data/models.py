"""
Contract line item model.

Line items arrive from the contract store as loose records (strings, floats,
pandas timestamps). They are normalised once here so the metrics layer only
ever sees dates and Decimals.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Optional

import pandas as pd


class BillingType(str, Enum):
    """How a line item bills."""

    RECURRING = "recurring"
    ONE_OFF = "one-off"

    @classmethod
    def parse(cls, value: Any) -> "BillingType":
        # Anything that isn't explicitly a project bills as a retainer
        if isinstance(value, BillingType):
            return value
        if isinstance(value, str) and value.strip().lower() == cls.ONE_OFF.value:
            return cls.ONE_OFF
        return cls.RECURRING


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_decimal(value: Any) -> Decimal:
    """Coerce a money value to Decimal. Missing or unparseable values are 0."""
    if isinstance(value, Decimal):
        return value
    if _is_missing(value):
        return Decimal(0)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal(0)


def to_date(value: Any) -> Optional[date]:
    """Coerce a date-like value to a calendar date, dropping time-of-day."""
    if _is_missing(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def to_bool(value: Any) -> bool:
    if _is_missing(value):
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("true", "t", "1", "yes", "y")
    return bool(value)


def _to_optional_str(value: Any) -> Optional[str]:
    if _is_missing(value):
        return None
    return str(value)


@dataclass(frozen=True)
class ContractLineItem:
    """One billable component of a client contract.

    For recurring items ``monthly_value`` is the monthly rate. For one-off
    items it is the total contract value, spread over the start/end window.
    """

    id: str
    client_id: str
    service: str
    billing_type: BillingType
    monthly_value: Decimal
    is_active: bool = True
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    assignee_id: Optional[str] = None

    @property
    def is_recurring(self) -> bool:
        return self.billing_type is BillingType.RECURRING

    @property
    def is_one_off(self) -> bool:
        return self.billing_type is BillingType.ONE_OFF

    @property
    def has_inverted_window(self) -> bool:
        """True when both dates are set and the end falls before the start."""
        return (
            self.start_date is not None
            and self.end_date is not None
            and self.end_date < self.start_date
        )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ContractLineItem":
        """Build an item from a contract store row (snake_case keys)."""
        return cls(
            id=str(record.get("id")),
            client_id=str(record.get("client_id")),
            service=str(record.get("service") or ""),
            billing_type=BillingType.parse(record.get("billing_type")),
            monthly_value=to_decimal(record.get("monthly_value")),
            is_active=to_bool(record.get("is_active")),
            start_date=to_date(record.get("start_date")),
            end_date=to_date(record.get("end_date")),
            assignee_id=_to_optional_str(record.get("assignee_id")),
        )
