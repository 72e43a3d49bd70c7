#!/usr/bin/env python
"""
Check exported contract data before it feeds the capacity forecast.

Usage:
    python scripts/validate_inputs.py
    python scripts/validate_inputs.py --data-dir /path/to/data
"""
import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import config, configure_logging, TABLE_FILES
from src.data.loader import _load_file
from src.data.schema import validate_schema, line_items_from_frame, find_window_issues


def report_table(processed_dir: Path, table_key: str) -> bool:
    """Print findings for one exported table; False when it can't be used."""
    df = _load_file(processed_dir / TABLE_FILES[table_key])
    if df is None:
        print(f"  ✗ {table_key}: no .parquet or .csv export found")
        return False

    schema = validate_schema(df, table_key, strict=False)
    print(f"  {'✓' if schema['is_valid'] else '✗'} {table_key}: "
          f"{schema['total_rows']:,} rows, {schema['total_columns']} columns")
    if not schema["is_valid"]:
        print(f"    Missing required: {schema['missing_required']}")
        return False
    if schema["missing_optional"]:
        print(f"    ⚠ Missing optional: {schema['missing_optional']}")

    if table_key == "contract_line_items":
        issues = find_window_issues(line_items_from_frame(df, strict=False))
        for label, key in [("End before start", "inverted_window"),
                           ("One-off without dates", "missing_project_dates")]:
            if issues[key]:
                print(f"    ⚠ {label} (contributes 0): {issues[key]}")
    return True


def main():
    parser = argparse.ArgumentParser(description="Validate exported contract data")
    parser.add_argument("--data-dir", type=str, default=None, help="Override data directory")
    args = parser.parse_args()
    configure_logging()

    data_dir = Path(args.data_dir) if args.data_dir else config.data_dir
    processed_dir = data_dir / "processed"
    print(f"Validating exports in {processed_dir}")

    results = [report_table(processed_dir, key) for key in TABLE_FILES]

    if all(results):
        print("✓ All validations passed")
        sys.exit(0)
    print("✗ Validation failed - see errors above")
    sys.exit(1)


if __name__ == "__main__":
    main()
