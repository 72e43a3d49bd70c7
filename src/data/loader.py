"""
Data loading utilities with Streamlit caching.

The capacity engine never fetches anything itself; these loaders are the
calling layer. Cached results are keyed by the loader arguments and expire
after ``config.cache_ttl_seconds``.
"""
import logging

import pandas as pd
import streamlit as st
from pathlib import Path
from typing import Optional, Dict, Any, List, Sequence

from src.config import config, TABLE_FILES, MART_FILES
from src.data.models import ContractLineItem
from src.data.schema import line_items_from_frame, targets_from_frame
from src.metrics.targets import ResolvedTargets

logger = logging.getLogger(__name__)


def _normalise_column_selection(columns: Optional[Sequence[str]]) -> Optional[list]:
    """Deduplicate and normalise a requested column list."""
    if not columns:
        return None
    return list(dict.fromkeys(str(col) for col in columns))


def _load_file(filepath: Path, columns: Optional[Sequence[str]] = None) -> Optional[pd.DataFrame]:
    """Load a single file (parquet or csv), optionally selecting columns."""
    selected_cols = _normalise_column_selection(columns)
    parquet_path = filepath.with_suffix(".parquet")
    csv_path = filepath.with_suffix(".csv")

    if parquet_path.exists():
        df = pd.read_parquet(parquet_path)
    elif csv_path.exists():
        df = pd.read_csv(csv_path)
    else:
        return None

    if selected_cols:
        keep_cols = [col for col in selected_cols if col in df.columns]
        df = df[keep_cols]
    return df


def _table_path(table_name: str, data_dir: Optional[Path] = None) -> Path:
    base = Path(data_dir) if data_dir is not None else config.data_dir
    return base / "processed" / TABLE_FILES[table_name]


@st.cache_data(ttl=config.cache_ttl_seconds, show_spinner=False)
def load_contract_line_items_frame(data_dir: Optional[str] = None) -> pd.DataFrame:
    """Load the exported contract_line_items table (empty if absent)."""
    filepath = _table_path("contract_line_items", data_dir)
    df = _load_file(filepath)
    if df is None:
        logger.warning("Could not find contract_line_items in %s", filepath.parent)
        return pd.DataFrame()
    return df


@st.cache_data(ttl=config.cache_ttl_seconds, show_spinner=False)
def load_capacity_targets_frame(data_dir: Optional[str] = None) -> pd.DataFrame:
    """Load the exported capacity_targets table (empty if absent)."""
    filepath = _table_path("capacity_targets", data_dir)
    df = _load_file(filepath)
    if df is None:
        logger.warning("Could not find capacity_targets in %s", filepath.parent)
        return pd.DataFrame()
    return df


def load_contract_line_items(data_dir: Optional[str] = None) -> List[ContractLineItem]:
    """Load and convert line items."""
    return line_items_from_frame(load_contract_line_items_frame(data_dir))


def load_capacity_targets(data_dir: Optional[str] = None) -> ResolvedTargets:
    """Load and resolve capacity targets."""
    return targets_from_frame(load_capacity_targets_frame(data_dir))


def get_data_status(data_dir: Optional[str] = None) -> Dict[str, Any]:
    """Get status of all data files."""
    base = Path(data_dir) if data_dir is not None else config.data_dir
    status = {
        "processed": {},
        "marts": {},
    }

    for key, filename in TABLE_FILES.items():
        parquet_path = base / "processed" / f"{filename}.parquet"
        csv_path = base / "processed" / f"{filename}.csv"
        status["processed"][key] = {
            "parquet_exists": parquet_path.exists(),
            "csv_exists": csv_path.exists(),
        }

    for key, filename in MART_FILES.items():
        parquet_path = base / "marts" / f"{filename}.parquet"
        csv_path = base / "marts" / f"{filename}.csv"
        status["marts"][key] = {
            "parquet_exists": parquet_path.exists(),
            "csv_exists": csv_path.exists(),
        }

    return status
