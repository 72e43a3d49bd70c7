"""
Schema validation and record conversion for exported contract data.
"""
import logging

import pandas as pd
from typing import List, Tuple, Dict

from src.config import REQUIRED_COLUMNS, OPTIONAL_COLUMNS
from src.data.models import BillingType, ContractLineItem
from src.metrics.targets import ResolvedTargets, resolve_targets

logger = logging.getLogger(__name__)


class SchemaValidationError(Exception):
    """Raised when required columns are missing."""
    pass


def validate_required_columns(df: pd.DataFrame, table_name: str) -> Tuple[bool, List[str]]:
    """
    Validate that required columns exist in dataframe.
    Returns (is_valid, missing_columns).
    """
    if table_name not in REQUIRED_COLUMNS:
        return True, []

    required = REQUIRED_COLUMNS[table_name]
    missing = [col for col in required if col not in df.columns]

    return len(missing) == 0, missing


def check_optional_columns(df: pd.DataFrame, table_name: str) -> List[str]:
    """
    Check which optional columns are missing.
    Returns list of missing optional columns.
    """
    if table_name not in OPTIONAL_COLUMNS:
        return []

    optional = OPTIONAL_COLUMNS[table_name]
    missing = [col for col in optional if col not in df.columns]

    return missing


def validate_schema(df: pd.DataFrame, table_name: str, strict: bool = True) -> Dict:
    """
    Full schema validation.

    Args:
        df: DataFrame to validate
        table_name: Name of table for column requirements lookup
        strict: If True, raise error on missing required columns

    Returns:
        Dict with validation results
    """
    is_valid, missing_required = validate_required_columns(df, table_name)
    missing_optional = check_optional_columns(df, table_name)

    result = {
        "is_valid": is_valid,
        "missing_required": missing_required,
        "missing_optional": missing_optional,
        "total_columns": len(df.columns),
        "total_rows": len(df),
    }

    if strict and not is_valid:
        raise SchemaValidationError(
            f"Missing required columns in {table_name}: {missing_required}"
        )

    if missing_optional:
        logger.warning("%s: missing optional columns (will degrade gracefully): %s",
                       table_name, missing_optional)

    return result


def ensure_column_types(df: pd.DataFrame) -> pd.DataFrame:
    """Ensure consistent column types."""
    df = df.copy()

    if "monthly_value" in df.columns:
        df["monthly_value"] = pd.to_numeric(df["monthly_value"], errors="coerce")
    if "monthly_target" in df.columns:
        df["monthly_target"] = pd.to_numeric(df["monthly_target"], errors="coerce")

    date_cols = ["start_date", "end_date"]
    for col in date_cols:
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], errors="coerce")

    id_cols = ["id", "client_id", "assignee_id"]
    for col in id_cols:
        if col in df.columns:
            # Integer ids with gaps load as float; keep "7" rather than "7.0"
            if pd.api.types.is_float_dtype(df[col]):
                present = df[col].dropna()
                if (present == present.round()).all():
                    df[col] = df[col].astype("Int64")
            df[col] = df[col].astype("string")

    return df


def find_window_issues(items: List[ContractLineItem]) -> Dict[str, List[str]]:
    """
    Ids of items that will contribute nothing because of their dates.

    Returns dict with:
    - inverted_window: end date before start date
    - missing_project_dates: one-off items without both dates
    """
    issues = {"inverted_window": [], "missing_project_dates": []}
    for item in items:
        if item.has_inverted_window:
            issues["inverted_window"].append(item.id)
        elif item.billing_type is BillingType.ONE_OFF and (item.start_date is None or item.end_date is None):
            issues["missing_project_dates"].append(item.id)
    return issues


def line_items_from_frame(df: pd.DataFrame, strict: bool = True) -> List[ContractLineItem]:
    """
    Convert an exported contract_line_items table into line items.

    Items with date problems are kept (they allocate zero) and logged.
    """
    if len(df) == 0:
        return []

    validate_schema(df, "contract_line_items", strict=strict)
    df = ensure_column_types(df)

    items = [ContractLineItem.from_record(record) for record in df.to_dict(orient="records")]

    issues = find_window_issues(items)
    for item_id in issues["inverted_window"]:
        logger.warning("Line item %s ends before it starts; it will not contribute", item_id)
    for item_id in issues["missing_project_dates"]:
        logger.info("One-off line item %s has no complete date window; it will not contribute", item_id)

    return items


def targets_from_frame(df: pd.DataFrame, strict: bool = True) -> ResolvedTargets:
    """Resolve an exported capacity_targets table."""
    if len(df) == 0:
        return resolve_targets([])

    validate_schema(df, "capacity_targets", strict=strict)
    df = ensure_column_types(df)
    df["monthly_target"] = df["monthly_target"].fillna(0)

    return resolve_targets(zip(df["service"].astype(str), df["monthly_target"]))
