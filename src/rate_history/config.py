from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ITEMS_PER_PAGE = 1000
DEFAULT_TABLE_PAGE_SIZE = 50


class FilterOptionsConfig(BaseModel):
    path: str = "data/filter_options.json.gz"


class QueryConfig(BaseModel):
    mode: Literal["http", "postgres"] = "http"
    base_url: str | None = None
    db_url: str | None = None
    table_name: str = "state_payment_comparison"
    order_by: str = "id"
    items_per_page: int = Field(default=DEFAULT_ITEMS_PER_PAGE, ge=1)
    timeout_seconds: float | None = Field(default=None, gt=0)


class TableConfig(BaseModel):
    page_size: int = Field(default=DEFAULT_TABLE_PAGE_SIZE, ge=1)


class ChartConfig(BaseModel):
    per_hour: bool = False


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "parquet"] = "csv"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    filter_options: FilterOptionsConfig = Field(default_factory=FilterOptionsConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    table: TableConfig = Field(default_factory=TableConfig)
    chart: ChartConfig = Field(default_factory=ChartConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.filter_options.path = (
        _resolve_optional_path(config.filter_options.path, base_dir) or ""
    )
    config.query.base_url = config.query.base_url or os.getenv("RATE_HISTORY_API_URL")
    config.query.db_url = (
        config.query.db_url or os.getenv("RATE_HISTORY_DB_URL") or os.getenv("DATABASE_URL")
    )
    return config
