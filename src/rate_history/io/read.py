from __future__ import annotations

from pathlib import Path

import pandas as pd

from rate_history.io.schema import normalize_records

REQUIRED_COLUMNS = ["state_name", "service_category", "service_code", "rate", "rate_effective_date"]


def _validate_required_columns(df: pd.DataFrame) -> pd.DataFrame:
    for column in REQUIRED_COLUMNS:
        if column not in df.columns:
            raise ValueError(f"Rate records missing column: {column}")
    return df


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
        return pd.read_csv(path, encoding="utf-8-sig", dtype=str, keep_default_na=False)
    raise ValueError(f"Unsupported table file type: {path.suffix}")


def load_rate_records(path: Path) -> pd.DataFrame:
    """Load a local rate-record table and return canonical columns."""
    return normalize_records(_validate_required_columns(load_table(path)))
