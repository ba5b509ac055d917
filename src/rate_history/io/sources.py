from __future__ import annotations

from pathlib import Path
from typing import Mapping

import pandas as pd

from rate_history.config import QueryConfig
from rate_history.facets.predicates import facet_mask
from rate_history.facets.selections import Selections
from rate_history.io.http_source import HttpPageFetcher
from rate_history.io.rates_postgres import PostgresPageFetcher
from rate_history.io.read import load_rate_records
from rate_history.io.schema import normalize_records
from rate_history.pipeline.accumulator import PageFetcher, RecordPage


class FramePageFetcher:
    """Serve filtered pages from an in-memory record table."""

    def __init__(self, records: pd.DataFrame) -> None:
        self.records = normalize_records(records)

    def __call__(self, criteria: Mapping[str, str], page: int, items_per_page: int) -> RecordPage:
        matching = self.records.loc[facet_mask(self.records, Selections.from_mapping(criteria))]
        start = (page - 1) * items_per_page
        rows = matching.iloc[start : start + items_per_page].reset_index(drop=True)
        return RecordPage(records=rows, total_count=len(matching))


def build_page_fetcher(query: QueryConfig, records_path: Path | None = None) -> PageFetcher:
    """Return the record source: a local table when given, else `query.mode`."""
    if records_path is not None:
        return FramePageFetcher(load_rate_records(records_path))

    if query.mode == "postgres":
        if not query.db_url:
            raise ValueError("query.db_url must be set when query.mode is 'postgres'")
        return PostgresPageFetcher(
            db_url=query.db_url,
            table_name=query.table_name,
            order_by=query.order_by,
        )

    if not query.base_url:
        raise ValueError(
            "query.base_url must be set (or RATE_HISTORY_API_URL exported) "
            "when query.mode is 'http'"
        )
    return HttpPageFetcher(query.base_url, timeout_seconds=query.timeout_seconds)
