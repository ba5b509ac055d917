from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping

import numpy as np
import pandas as pd

from rate_history.facets.predicates import split_codes
from rate_history.io.schema import (
    CONFIGURATION_COLUMNS,
    MODIFIER_COLUMNS,
    MODIFIER_DETAIL_COLUMNS,
    normalize_records,
)
from rate_history.preprocess.dates import DISPLAY_DATE_FORMAT, parse_effective_dates
from rate_history.preprocess.rates import hourly_multiplier, parse_rates

LOGGER = logging.getLogger(__name__)

CHART_PALETTE: tuple[str, ...] = (
    "#3b82f6",
    "#ef4444",
    "#10b981",
    "#f59e0b",
    "#8b5cf6",
    "#ec4899",
    "#06b6d4",
    "#f97316",
    "#84cc16",
    "#6366f1",
)

POINT_CONTEXT_COLUMNS: tuple[str, ...] = (
    "state_name",
    "service_code",
    "program",
    "location_region",
    "duration_unit",
    *[column for pair in zip(MODIFIER_COLUMNS, MODIFIER_DETAIL_COLUMNS) for column in pair],
)

_EFFECTIVE_AT = "_effective_at"
_RATE_VALUE = "_rate_value"


@dataclass(frozen=True)
class ChartPoint:
    effective_date: date
    rate: float | None
    observed: float | None
    carried: bool = False
    context: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.effective_date.strftime(DISPLAY_DATE_FORMAT),
            "rate": self.rate,
            "observed": self.observed,
            "carried": self.carried,
            **self.context,
        }


@dataclass(frozen=True)
class ChartSeries:
    label: str
    color: str
    points: list[ChartPoint | None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "color": self.color,
            "points": [point.to_dict() if point is not None else None for point in self.points],
        }


@dataclass(frozen=True)
class ChartDataset:
    dates: list[date]
    series: list[ChartSeries]

    def to_dict(self) -> dict[str, Any]:
        return {
            "dates": [value.strftime(DISPLAY_DATE_FORMAT) for value in self.dates],
            "series": [series.to_dict() for series in self.series],
        }

    def to_frame(self) -> pd.DataFrame:
        """Long table with one row per (series, date) that has a point."""
        rows = []
        for series in self.series:
            for point in series.points:
                if point is None:
                    continue
                rows.append(
                    {
                        "label": series.label,
                        "date": point.effective_date.strftime(DISPLAY_DATE_FORMAT),
                        "rate": point.rate,
                        "observed": point.observed,
                        "carried": point.carried,
                    }
                )
        return pd.DataFrame(rows, columns=["label", "date", "rate", "observed", "carried"])


def series_label(entry: Mapping[str, Any]) -> str:
    def part(column: str) -> str:
        return str(entry.get(column) or "").strip() or "-"

    return " | ".join(
        [
            str(entry.get("state_name") or "").strip(),
            str(entry.get("service_code") or "").strip(),
            part("program"),
            part("location_region"),
            part("provider_type"),
            part("modifier_1"),
        ]
    )


def series_color(index: int) -> str:
    return CHART_PALETTE[index % len(CHART_PALETTE)]


def _configuration_mask(frame: pd.DataFrame, entry: Mapping[str, Any]) -> pd.Series:
    mask = pd.Series(True, index=frame.index, dtype=bool)
    for column in CONFIGURATION_COLUMNS:
        expected = str(entry.get(column) or "").strip()
        if column == "service_code" and "," in expected:
            mask &= frame[column].eq(expected) | frame[column].isin(split_codes(expected))
        else:
            mask &= frame[column].eq(expected)
    return mask


def _entry_history(frame: pd.DataFrame, entry: Mapping[str, Any]) -> pd.DataFrame:
    history = frame.loc[_configuration_mask(frame, entry)]
    undated = history[_EFFECTIVE_AT].isna()
    if undated.any():
        LOGGER.warning(
            "Leaving %s record(s) with unparseable effective dates off the chart for %s",
            int(undated.sum()),
            series_label(entry),
        )
        history = history.loc[~undated]
    # Same-date observations collapse to the highest rate.
    history = history.sort_values(
        [_EFFECTIVE_AT, _RATE_VALUE], na_position="first", kind="mergesort"
    )
    return history.drop_duplicates(subset=[_EFFECTIVE_AT], keep="last").reset_index(drop=True)


def _rate_or_none(value: Any, multiplier: float) -> float | None:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return float(value) * multiplier


def assemble_chart(
    selected_entries: pd.DataFrame | Iterable[Mapping[str, Any]],
    records: pd.DataFrame | Iterable[Mapping[str, Any]],
    today: date | None = None,
    per_hour: bool = False,
) -> ChartDataset:
    """Build one forward-filled series per selected entry on a shared date axis.

    The axis is the union of every series' dates plus today, ascending. With no
    dated observation at all the axis stays empty. A date without an
    observation carries the most recent earlier value (with `observed` left as
    None); dates before a series' first observation have no point.
    """
    entries = normalize_records(selected_entries)
    if entries.empty:
        return ChartDataset(dates=[], series=[])

    frame = normalize_records(records)
    frame = frame.assign(
        **{
            _EFFECTIVE_AT: parse_effective_dates(frame["rate_effective_date"]),
            _RATE_VALUE: parse_rates(frame["rate"]),
        }
    )

    entry_rows = entries.to_dict(orient="records")
    histories = [_entry_history(frame, entry) for entry in entry_rows]

    axis_stamps: set[pd.Timestamp] = set()
    for history in histories:
        axis_stamps.update(history[_EFFECTIVE_AT].tolist())
    if axis_stamps:
        axis_stamps.add(pd.Timestamp(today or date.today()))
    axis = pd.DatetimeIndex(sorted(axis_stamps))

    series: list[ChartSeries] = []
    for index, (entry, history) in enumerate(zip(entry_rows, histories)):
        multiplier = hourly_multiplier(entry.get("duration_unit")) if per_hour else 1.0
        observed_index = pd.DatetimeIndex(history[_EFFECTIVE_AT])
        if len(history):
            positions = observed_index.get_indexer(axis, method="pad")
        else:
            positions = np.full(len(axis), -1)

        points: list[ChartPoint | None] = []
        for stamp, position in zip(axis, positions):
            if position < 0:
                points.append(None)
                continue
            row = history.iloc[position]
            value = _rate_or_none(row[_RATE_VALUE], multiplier)
            is_observed = row[_EFFECTIVE_AT] == stamp
            points.append(
                ChartPoint(
                    effective_date=stamp.date(),
                    rate=value,
                    observed=value if is_observed else None,
                    carried=not is_observed,
                    context={column: str(row[column]) for column in POINT_CONTEXT_COLUMNS},
                )
            )
        series.append(
            ChartSeries(label=series_label(entry), color=series_color(index), points=points)
        )

    LOGGER.debug("Assembled %s chart series over %s dates", len(series), len(axis))
    return ChartDataset(dates=[stamp.date() for stamp in axis], series=series)
