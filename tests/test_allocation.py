"""
Tests for per-month revenue allocation.
"""
import pytest
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.data.models import BillingType, ContractLineItem
from src.metrics.allocation import allocate, recurring_active_in_month, project_allocation
from src.metrics.calendar_math import month_sequence


def _item(billing_type=BillingType.RECURRING, value="500", **kwargs):
    fields = dict(
        id="li-1",
        client_id="c-1",
        service="seo",
        billing_type=billing_type,
        monthly_value=Decimal(value),
        is_active=True,
    )
    fields.update(kwargs)
    return ContractLineItem(**fields)


def _project(value, start, end, **kwargs):
    return _item(BillingType.ONE_OFF, value, start_date=start, end_date=end, **kwargs)


class TestRecurringAllocation:
    """Tests for retainer billing."""

    def test_open_ended_bills_every_month(self):
        """Active retainer with no dates bills its rate every month."""
        item = _item(value="500")
        for month in month_sequence(date(2024, 1, 1), 12):
            assert allocate(item, month) == Decimal("500")

    def test_inactive_without_end_date_bills_nothing(self):
        item = _item(is_active=False)
        assert allocate(item, date(2024, 1, 1)) == 0

    def test_inactive_ignores_start_date(self):
        item = _item(is_active=False, start_date=date(2023, 6, 1))
        assert allocate(item, date(2024, 1, 1)) == 0

    def test_inactive_with_end_date_still_bills_until_end(self):
        """An end date, not the flag, marks termination."""
        item = _item(is_active=False, end_date=date(2024, 3, 31))
        assert allocate(item, date(2024, 3, 1)) == Decimal("500")
        assert allocate(item, date(2024, 4, 1)) == 0

    def test_not_started_yet(self):
        item = _item(start_date=date(2024, 2, 1))
        assert allocate(item, date(2024, 1, 1)) == 0
        assert allocate(item, date(2024, 2, 1)) == Decimal("500")

    def test_start_on_last_day_of_month_counts(self):
        item = _item(start_date=date(2024, 1, 31))
        assert recurring_active_in_month(item, date(2024, 1, 1)) is True

    def test_end_on_last_day_of_month(self):
        """End date on the last day of M: active in M, inactive in M+1."""
        item = _item(end_date=date(2024, 1, 31))
        assert allocate(item, date(2024, 1, 1)) == Decimal("500")
        assert allocate(item, date(2024, 2, 1)) == 0

    def test_full_value_not_prorated(self):
        """Retainers bill the whole rate even for a partial month."""
        item = _item(start_date=date(2024, 1, 20), end_date=date(2024, 2, 5))
        assert allocate(item, date(2024, 1, 1)) == Decimal("500")
        assert allocate(item, date(2024, 2, 1)) == Decimal("500")

    def test_inverted_window_contributes_zero(self):
        item = _item(start_date=date(2024, 1, 20), end_date=date(2024, 1, 10))
        assert allocate(item, date(2024, 1, 1)) == 0


class TestProjectAllocation:
    """Tests for pro-rata project allocation."""

    def test_spans_two_months(self):
        """3000 over Jan 16 - Feb 14 (30 days) splits 1600 / 1400."""
        item = _project("3000", date(2024, 1, 16), date(2024, 2, 14))

        jan = allocate(item, date(2024, 1, 1))
        feb = allocate(item, date(2024, 2, 1))

        assert jan == Decimal("1600")
        assert feb == Decimal("1400")
        assert jan + feb == Decimal("3000")

    def test_missing_dates_contribute_zero(self):
        assert allocate(_project("3000", None, date(2024, 2, 14)), date(2024, 1, 1)) == 0
        assert allocate(_project("3000", date(2024, 1, 16), None), date(2024, 1, 1)) == 0

    def test_outside_window(self):
        item = _project("3000", date(2024, 1, 16), date(2024, 2, 14))
        assert allocate(item, date(2023, 12, 1)) == 0
        assert allocate(item, date(2024, 3, 1)) == 0

    def test_single_day_window(self):
        """Same start and end: whole value lands in that month only."""
        item = _project("1200", date(2024, 6, 15), date(2024, 6, 15))
        assert allocate(item, date(2024, 6, 1)) == Decimal("1200")
        assert allocate(item, date(2024, 5, 1)) == 0
        assert allocate(item, date(2024, 7, 1)) == 0

    def test_inverted_window_contributes_zero(self):
        item = _project("3000", date(2024, 2, 14), date(2024, 1, 16))
        for month in month_sequence(date(2024, 1, 1), 3):
            assert allocate(item, month) == 0

    def test_ignores_active_flag(self):
        """Projects are gated by their window only."""
        item = _project("3000", date(2024, 1, 16), date(2024, 2, 14), is_active=False)
        assert project_allocation(item, date(2024, 1, 1)) == Decimal("1600")

    @pytest.mark.parametrize("value,start,end", [
        ("1000", date(2024, 1, 10), date(2024, 4, 20)),
        ("999.99", date(2023, 11, 3), date(2024, 2, 27)),
        ("10000", date(2024, 2, 1), date(2025, 1, 31)),
        ("7", date(2024, 3, 30), date(2024, 5, 2)),
    ])
    def test_conservation(self, value, start, end):
        """Monthly shares add back up to the project value exactly."""
        item = _project(value, start, end)
        months = month_sequence(start, 15)
        total = sum((allocate(item, m) for m in months), Decimal(0))
        assert total == Decimal(value)

    def test_shares_are_non_negative(self):
        item = _project("1000", date(2024, 1, 10), date(2024, 4, 20))
        for month in month_sequence(date(2024, 1, 1), 4):
            assert allocate(item, month) > 0


class TestAllocationPurity:
    """Repeated calls give identical results."""

    def test_idempotent(self):
        item = _project("3000", date(2024, 1, 16), date(2024, 2, 14))
        assert allocate(item, date(2024, 1, 1)) == allocate(item, date(2024, 1, 1))

    def test_mid_month_day_selects_month(self):
        item = _project("3000", date(2024, 1, 16), date(2024, 2, 14))
        assert allocate(item, date(2024, 1, 28)) == allocate(item, date(2024, 1, 1))
