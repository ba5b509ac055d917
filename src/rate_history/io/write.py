from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import pandas as pd

TableFormat = Literal["csv", "parquet"]

TABLE_SUFFIXES: dict[str, str] = {"csv": ".csv", "parquet": ".parquet"}


def table_path(stem: Path, fmt: str) -> Path:
    """Output path for a table named `stem`; unknown formats fail before anything is written."""
    suffix = TABLE_SUFFIXES.get(fmt)
    if suffix is None:
        raise ValueError(
            f"Unsupported table format: {fmt}. Expected one of: {', '.join(TABLE_SUFFIXES)}"
        )
    return stem.with_suffix(suffix)


def write_table(df: pd.DataFrame, stem: Path, fmt: TableFormat | str = "csv") -> Path:
    """Write a rate/chart table; missing values become empty cells in CSV output."""
    path = table_path(stem, fmt)
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "parquet":
        df.to_parquet(path, index=False)
    else:
        df.to_csv(path, index=False, na_rep="", encoding="utf-8", lineterminator="\n")
    return path


def write_summary(data: dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, sort_keys=True, default=str), encoding="utf-8")
    return path
