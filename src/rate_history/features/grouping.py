from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import pandas as pd

from rate_history.facets.predicates import facet_mask
from rate_history.facets.selections import BLANK_SENTINEL, Selections
from rate_history.io.schema import CONFIGURATION_COLUMNS, empty_records, normalize_records
from rate_history.preprocess.dates import parse_effective_dates
from rate_history.preprocess.rates import parse_rates

LOGGER = logging.getLogger(__name__)

GROUP_KEY_COLUMNS: tuple[str, ...] = CONFIGURATION_COLUMNS

VISIBLE_COLUMNS: tuple[str, ...] = (
    "state_name",
    "service_category",
    "service_code",
    "service_description",
    "program",
    "location_region",
    "modifier_1",
    "modifier_2",
    "modifier_3",
    "modifier_4",
    "duration_unit",
    "rate",
    "rate_effective_date",
)
ALWAYS_VISIBLE_COLUMNS = frozenset(
    {"state_name", "service_category", "service_code", "rate", "rate_effective_date"}
)

_EFFECTIVE_AT = "_effective_at"
_RATE_VALUE = "_rate_value"


def latest_per_configuration(records: pd.DataFrame | Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Keep one record per configuration: the latest effective date, then the larger rate.

    Unparseable dates rank below every valid date. Rows come back ordered by the
    configuration columns.
    """
    frame = normalize_records(records)
    if frame.empty:
        return frame

    working = frame.assign(
        **{
            _EFFECTIVE_AT: parse_effective_dates(frame["rate_effective_date"]),
            _RATE_VALUE: parse_rates(frame["rate"]),
        }
    )
    working = working.sort_values(
        [_EFFECTIVE_AT, _RATE_VALUE], na_position="first", kind="mergesort"
    )
    latest = working.drop_duplicates(subset=list(GROUP_KEY_COLUMNS), keep="last")
    latest = latest.sort_values(list(GROUP_KEY_COLUMNS), kind="mergesort")
    return latest.drop(columns=[_EFFECTIVE_AT, _RATE_VALUE]).reset_index(drop=True)


def select_latest_entries(
    records: pd.DataFrame | Iterable[Mapping[str, Any]],
    selections: Selections,
) -> pd.DataFrame:
    frame = normalize_records(records)
    filtered = frame.loc[facet_mask(frame, selections)]
    entries = latest_per_configuration(filtered)
    LOGGER.debug("Grouped %s records into %s configurations", len(frame), len(entries))
    return entries


class LatestEntryReducer:
    """Fold record pages into the latest entry per configuration as they arrive."""

    def __init__(self, selections: Selections | None = None) -> None:
        self.selections = selections or Selections()
        self.pages_seen = 0
        self.records_seen = 0
        self._latest = empty_records()

    def add_page(self, records: pd.DataFrame | Iterable[Mapping[str, Any]]) -> None:
        page = normalize_records(records)
        self.pages_seen += 1
        self.records_seen += len(page)
        page = page.loc[facet_mask(page, self.selections)]
        if page.empty:
            return
        if self._latest.empty:
            combined = page
        else:
            combined = pd.concat([self._latest, page], ignore_index=True)
        self._latest = latest_per_configuration(combined)

    def result(self) -> pd.DataFrame:
        return self._latest.copy()


def visible_columns(entries: pd.DataFrame) -> list[str]:
    columns: list[str] = []
    for column in VISIBLE_COLUMNS:
        if column in ALWAYS_VISIBLE_COLUMNS:
            columns.append(column)
            continue
        if column not in entries.columns:
            continue
        text = entries[column].fillna("").astype(str).str.strip()
        if (~text.isin(["", BLANK_SENTINEL])).any():
            columns.append(column)
    return columns
