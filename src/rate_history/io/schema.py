from __future__ import annotations

from typing import Any, Iterable, Mapping

import pandas as pd

MODIFIER_COLUMNS = ("modifier_1", "modifier_2", "modifier_3", "modifier_4")
MODIFIER_DETAIL_COLUMNS = tuple(f"{column}_details" for column in MODIFIER_COLUMNS)

# Every dimension of a rate record except its rate and effective date.
CONFIGURATION_COLUMNS = (
    "state_name",
    "service_category",
    "service_code",
    "service_description",
    "program",
    "location_region",
    "modifier_1",
    "modifier_1_details",
    "modifier_2",
    "modifier_2_details",
    "modifier_3",
    "modifier_3_details",
    "modifier_4",
    "modifier_4_details",
    "duration_unit",
    "provider_type",
)

RATE_RECORD_COLUMNS = CONFIGURATION_COLUMNS + ("rate", "rate_effective_date")


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def normalize_records(records: pd.DataFrame | Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Return rate records with every canonical column present as stripped text.

    Missing optional fields become empty strings so grouping keys and equality
    checks never see a mix of None, NaN and "".
    """
    if isinstance(records, pd.DataFrame):
        frame = records.copy()
    else:
        frame = pd.DataFrame(list(records))

    for column in RATE_RECORD_COLUMNS:
        if column not in frame.columns:
            frame[column] = ""
    for column in RATE_RECORD_COLUMNS:
        frame[column] = frame[column].map(_clean_text).astype(object)

    extra_columns = [column for column in frame.columns if column not in RATE_RECORD_COLUMNS]
    return frame[list(RATE_RECORD_COLUMNS) + extra_columns].reset_index(drop=True)


def empty_records() -> pd.DataFrame:
    return pd.DataFrame({column: pd.Series(dtype=object) for column in RATE_RECORD_COLUMNS})
