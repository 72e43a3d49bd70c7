#!/usr/bin/env python
"""
Build the capacity forecast mart from exported contract data.

Usage:
    python scripts/build_forecast.py
    python scripts/build_forecast.py --data-dir /path/to/data --months 12
    python scripts/build_forecast.py --as-of 2024-03-15 --mode percentage
"""
import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
from src.config import config, configure_logging, MART_FILES
from src.data.loader import _load_file
from src.data.schema import line_items_from_frame, targets_from_frame, SchemaValidationError
from src.metrics.capacity import by_service
from src.modeling.forecast import forecast_as_of, forecast_to_frame

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Build capacity forecast mart")
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Override data directory"
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Anchor date (YYYY-MM-DD); defaults to today"
    )
    parser.add_argument(
        "--months",
        type=int,
        default=config.forecast_months,
        help="Number of months to forecast"
    )
    parser.add_argument(
        "--mode",
        choices=["currency", "percentage"],
        default="currency",
        help="Report raw amounts or percent of target"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args()
    configure_logging("DEBUG" if args.verbose else None)

    data_dir = Path(args.data_dir) if args.data_dir else config.data_dir
    processed_dir = data_dir / "processed"
    marts_dir = data_dir / "marts"
    as_of = args.as_of or date.today()

    print(f"Building capacity forecast...")
    print(f"  Source: {processed_dir}")
    print(f"  Output: {marts_dir}")
    print(f"  As of:  {as_of.isoformat()} ({args.months} months, {args.mode})")
    print()

    items_df = _load_file(processed_dir / "contract_line_items")
    if items_df is None:
        print(f"ERROR: Could not load contract_line_items from {processed_dir}")
        print("Please ensure the file exists as .parquet or .csv")
        sys.exit(1)

    targets_df = _load_file(processed_dir / "capacity_targets")
    if targets_df is None:
        logger.warning("No capacity_targets found; percentages will read 0")
        targets_df = pd.DataFrame()

    try:
        items = line_items_from_frame(items_df)
        targets = targets_from_frame(targets_df)
    except SchemaValidationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print(f"Loaded {len(items):,} line items, {len(targets.per_service)} service targets")

    points = forecast_as_of(
        items,
        as_of,
        by_service,
        targets.per_service,
        month_count=args.months,
        mode=args.mode,
        effective_target=targets.team_total if args.mode == "percentage" else None,
    )
    df = forecast_to_frame(points, target=targets.team_total)

    marts_dir.mkdir(parents=True, exist_ok=True)
    filepath = marts_dir / f"{MART_FILES['capacity_forecast']}.parquet"
    df.to_parquet(filepath, index=False)

    print()
    print(df.to_string(index=False))
    print()
    print(f"✓ Saved capacity_forecast: {len(df):,} rows")


if __name__ == "__main__":
    main()
