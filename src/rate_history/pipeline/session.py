from __future__ import annotations

import logging
import math
from datetime import date
from pathlib import Path
from typing import Any, Mapping, Sequence

import pandas as pd

from rate_history.config import DEFAULT_ITEMS_PER_PAGE, DEFAULT_TABLE_PAGE_SIZE
from rate_history.errors import FilterOptionsDecodeError, PageFetchError
from rate_history.export.rows import build_export_rows
from rate_history.facets.codec import decode_combinations, load_filter_options
from rate_history.facets.resolver import available_options, resolve_all_options
from rate_history.facets.selections import Selections
from rate_history.features.grouping import LatestEntryReducer, visible_columns
from rate_history.features.timeseries import ChartDataset, assemble_chart
from rate_history.io.schema import empty_records
from rate_history.pipeline.accumulator import PageFetcher, accumulate_pages

LOGGER = logging.getLogger(__name__)


class ExplorerSession:
    """State for one exploration: selections, loaded data, and derived views.

    Every search takes a generation token; a result is applied only if its token
    is still current, so a reset or newer search makes older results stale.
    """

    def __init__(
        self,
        fetch_page: PageFetcher | None = None,
        *,
        items_per_page: int = DEFAULT_ITEMS_PER_PAGE,
        table_page_size: int = DEFAULT_TABLE_PAGE_SIZE,
        per_hour: bool = False,
        today: date | None = None,
    ) -> None:
        self.fetch_page = fetch_page
        self.items_per_page = items_per_page
        self.table_page_size = table_page_size
        self.per_hour = per_hour
        self.today = today

        self.combinations = pd.DataFrame()
        self.selections = Selections()
        self.records = empty_records()
        self.entries = empty_records()
        self.selected: list[int] = []
        self.error_message: str | None = None
        self.generation = 0

    def load_filter_options(self, source: str | Path | Mapping[str, Any]) -> bool:
        """Load combinations from a file path or an already-parsed payload."""
        try:
            if isinstance(source, Mapping):
                combinations = decode_combinations(source)
            else:
                combinations = load_filter_options(source)
        except FilterOptionsDecodeError as exc:
            LOGGER.warning("Could not load filter options: %s", exc)
            self.combinations = pd.DataFrame()
            self.error_message = f"Could not load filter options: {exc}"
            return False
        self.combinations = combinations
        self.error_message = None
        LOGGER.info("Loaded %s filter combinations", len(combinations))
        return True

    def options_for(self, facet: str) -> list[str]:
        return available_options(self.combinations, self.selections, facet)

    def all_options(self) -> dict[str, list[str]]:
        return resolve_all_options(self.combinations, self.selections)

    def select(self, facet: str, value: str | Sequence[str] | None) -> Selections:
        self.selections = self.selections.with_value(facet, value)
        return self.selections

    def begin_search(self) -> int:
        self.selections.validate()
        self.generation += 1
        return self.generation

    def apply_search(self, token: int, records: pd.DataFrame, entries: pd.DataFrame) -> bool:
        if token != self.generation:
            LOGGER.info(
                "Discarding stale search result (generation %s, current %s)",
                token,
                self.generation,
            )
            return False
        self.records = records
        self.entries = entries
        self.selected = []
        self.error_message = None
        return True

    def search(self) -> bool:
        """Fetch every matching record and rebuild the grouped table.

        Returns False when the fetch failed or its result went stale; on failure
        the previous table stays in place and `error_message` is set.
        """
        if self.fetch_page is None:
            raise RuntimeError("ExplorerSession has no page fetcher configured")
        token = self.begin_search()
        reducer = LatestEntryReducer(self.selections)
        try:
            records = accumulate_pages(
                self.fetch_page,
                self.selections.to_criteria(),
                items_per_page=self.items_per_page,
                on_page=reducer.add_page,
            )
        except PageFetchError as exc:
            if token == self.generation:
                LOGGER.warning("Search failed on page %s: %s", exc.page, exc)
                self.error_message = f"Could not load rate data: {exc}. Please try again."
            return False
        return self.apply_search(token, records, reducer.result())

    def toggle_entry(self, index: int) -> list[int]:
        if index < 0 or index >= len(self.entries):
            raise IndexError(f"entry index {index} out of range (0..{len(self.entries) - 1})")
        if index in self.selected:
            self.selected.remove(index)
        else:
            self.selected.append(index)
        return list(self.selected)

    def selected_entries(self) -> pd.DataFrame:
        return self.entries.iloc[self.selected].reset_index(drop=True)

    def chart(self) -> ChartDataset:
        return assemble_chart(
            self.selected_entries(), self.records, today=self.today, per_hour=self.per_hour
        )

    def visible_columns(self) -> list[str]:
        return visible_columns(self.entries)

    def page_count(self) -> int:
        return max(1, math.ceil(len(self.entries) / self.table_page_size))

    def table_page(self, page: int = 1) -> pd.DataFrame:
        if page < 1:
            raise ValueError("page must be >= 1")
        start = (page - 1) * self.table_page_size
        rows = self.entries.iloc[start : start + self.table_page_size]
        return rows[self.visible_columns()].reset_index(drop=True)

    def export_rows(self) -> pd.DataFrame:
        return build_export_rows(self.records)

    def reset(self) -> None:
        self.generation += 1
        self.selections = Selections()
        self.records = empty_records()
        self.entries = empty_records()
        self.selected = []
        self.error_message = None
