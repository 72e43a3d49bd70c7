"""
Tests for schema validation and record conversion.
"""
import logging
import pytest
import pandas as pd
import numpy as np
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.data.models import BillingType, ContractLineItem
from src.metrics.capacity import aggregate, by_member
from src.data.schema import (
    validate_required_columns,
    check_optional_columns,
    validate_schema,
    line_items_from_frame,
    targets_from_frame,
    find_window_issues,
    SchemaValidationError
)


def _line_items_frame(**overrides):
    data = {
        "id": ["li-1", "li-2", "li-3"],
        "client_id": ["c1", "c1", "c2"],
        "service": ["seo", "paid-advertising", "creative"],
        "billing_type": ["recurring", "one-off", "one-off"],
        "monthly_value": [500.0, 3000.0, "1200"],
        "is_active": [True, True, False],
        "start_date": [None, "2024-01-16", "2024-03-10"],
        "end_date": [None, "2024-02-14", "2024-03-01"],
        "assignee_id": ["u1", None, np.nan],
    }
    data.update(overrides)
    return pd.DataFrame(data)


class TestValidateRequiredColumns:
    """Tests for required column validation."""

    def test_all_columns_present(self):
        """All required columns present should return valid."""
        is_valid, missing = validate_required_columns(_line_items_frame(), "contract_line_items")

        assert is_valid is True
        assert missing == []

    def test_missing_columns(self):
        """Missing columns should be detected."""
        df = pd.DataFrame({"id": ["li-1"], "service": ["seo"]})

        is_valid, missing = validate_required_columns(df, "contract_line_items")

        assert is_valid is False
        assert "monthly_value" in missing
        assert "billing_type" in missing

    def test_unknown_table_is_valid(self):
        is_valid, missing = validate_required_columns(pd.DataFrame(), "not_a_table")
        assert is_valid is True


class TestValidateSchema:
    """Tests for full schema validation."""

    def test_strict_raises(self):
        df = pd.DataFrame({"service": ["seo"]})
        with pytest.raises(SchemaValidationError):
            validate_schema(df, "capacity_targets", strict=True)

    def test_non_strict_reports(self):
        df = pd.DataFrame({"service": ["seo"]})
        result = validate_schema(df, "capacity_targets", strict=False)

        assert result["is_valid"] is False
        assert result["missing_required"] == ["monthly_target"]
        assert result["total_rows"] == 1

    def test_optional_columns(self):
        df = _line_items_frame().drop(columns=["assignee_id"])
        assert check_optional_columns(df, "contract_line_items") == ["assignee_id"]


class TestLineItemsFromFrame:
    """Tests for converting exported rows into line items."""

    def test_converts_types(self):
        items = line_items_from_frame(_line_items_frame())

        assert len(items) == 3
        first, project, _ = items
        assert first.billing_type is BillingType.RECURRING
        assert first.monthly_value == Decimal("500")
        assert first.start_date is None
        assert first.assignee_id == "u1"
        assert project.billing_type is BillingType.ONE_OFF
        assert project.start_date == date(2024, 1, 16)
        assert project.end_date == date(2024, 2, 14)
        assert project.assignee_id is None

    def test_unknown_billing_type_is_recurring(self):
        items = line_items_from_frame(_line_items_frame(billing_type=["monthly", "one-off", None]))
        assert items[0].billing_type is BillingType.RECURRING
        assert items[2].billing_type is BillingType.RECURRING

    def test_logs_inverted_window(self, caplog):
        """End-before-start items are kept but logged."""
        with caplog.at_level(logging.WARNING, logger="src.data.schema"):
            items = line_items_from_frame(_line_items_frame())

        assert items[2].has_inverted_window
        assert "li-3" in caplog.text

    def test_numeric_ids_with_gaps_keep_integer_form(self):
        """Integer assignee ids with a missing value stay "7", not "7.0"."""
        df = _line_items_frame().iloc[:2].copy()
        df["assignee_id"] = [7, None]
        items = line_items_from_frame(df)

        assert [i.assignee_id for i in items] == ["7", None]

        result = aggregate(items, date(2024, 1, 1), by_member, {"7": 100})
        assert [g.key for g in result.groups] == ["7"]
        assert result.group("7").target == Decimal("100")

    def test_numeric_client_ids(self):
        df = _line_items_frame(client_id=[101, 102, 103])
        items = line_items_from_frame(df)
        assert [i.client_id for i in items] == ["101", "102", "103"]

    def test_empty(self):
        assert line_items_from_frame(pd.DataFrame()) == []

    def test_strict_missing_columns(self):
        with pytest.raises(SchemaValidationError):
            line_items_from_frame(pd.DataFrame({"id": ["li-1"]}))

    def test_does_not_modify_frame(self):
        df = _line_items_frame()
        before = df.copy()
        line_items_from_frame(df)
        pd.testing.assert_frame_equal(df, before)


class TestFindWindowIssues:
    """Tests for date problem detection."""

    def test_issues(self):
        items = [
            ContractLineItem("a", "c1", "seo", BillingType.ONE_OFF, Decimal("100"),
                             start_date=date(2024, 1, 1)),
            ContractLineItem("b", "c1", "seo", BillingType.RECURRING, Decimal("100"),
                             start_date=date(2024, 2, 1), end_date=date(2024, 1, 1)),
            ContractLineItem("c", "c1", "seo", BillingType.RECURRING, Decimal("100")),
        ]
        issues = find_window_issues(items)

        assert issues["missing_project_dates"] == ["a"]
        assert issues["inverted_window"] == ["b"]


class TestTargetsFromFrame:
    """Tests for capacity target conversion."""

    def test_resolves_team_total(self):
        df = pd.DataFrame({
            "service": ["seo", "creative", "__team_total__"],
            "monthly_target": [10000, 5000, 20000],
        })
        targets = targets_from_frame(df)

        assert targets.per_service == {"seo": Decimal("10000"), "creative": Decimal("5000")}
        assert targets.team_total == Decimal("20000")

    def test_missing_targets_are_zero(self):
        df = pd.DataFrame({"service": ["seo", "creative"], "monthly_target": [10000, None]})
        targets = targets_from_frame(df)

        assert targets.per_service["creative"] == 0
        assert targets.team_total == Decimal("10000")

    def test_empty(self):
        targets = targets_from_frame(pd.DataFrame())
        assert targets.team_total == 0
