from __future__ import annotations

import gzip
import json
import logging
from pathlib import Path
from typing import Any, Mapping

import numpy as np
import pandas as pd

from rate_history.errors import FilterOptionsDecodeError

LOGGER = logging.getLogger(__name__)

BLANK_CODE = -1

# Long section names and the short aliases used by the published blob.
SECTION_ALIASES = {
    "mappings": ("mappings", "m"),
    "columns": ("columns", "c"),
    "values": ("values", "v"),
}


def _section(payload: Mapping[str, Any], name: str) -> Any:
    for key in SECTION_ALIASES[name]:
        if key in payload:
            return payload[key]
    raise FilterOptionsDecodeError(f"filter options payload missing '{name}' section")


def _decode_column(column: str, dictionary: Any, codes: Any, row_count: int) -> np.ndarray:
    if not isinstance(dictionary, list):
        raise FilterOptionsDecodeError(f"mapping for column '{column}' must be a list")
    try:
        raw = np.asarray(codes)
    except (TypeError, ValueError) as exc:
        raise FilterOptionsDecodeError(f"column '{column}' contains non-integer codes") from exc
    # Floats would truncate and bools would alias 0/1, so only true integers decode.
    if raw.size and (raw.dtype == np.bool_ or not np.issubdtype(raw.dtype, np.integer)):
        raise FilterOptionsDecodeError(f"column '{column}' contains non-integer codes")
    code_array = raw.astype(np.int64)
    if code_array.ndim != 1 or len(code_array) != row_count:
        raise FilterOptionsDecodeError(
            f"column '{column}' has {code_array.size} codes, expected {row_count}"
        )
    if row_count and (code_array.min() < BLANK_CODE or code_array.max() >= len(dictionary)):
        raise FilterOptionsDecodeError(f"column '{column}' has codes outside its mapping")

    # The blank code (-1) indexes the appended empty string.
    lookup = np.asarray([str(value) for value in dictionary] + [""], dtype=object)
    return lookup[code_array]


def decode_combinations(payload: Mapping[str, Any]) -> pd.DataFrame:
    """Expand a dictionary-encoded columnar payload into one row per combination."""
    if not isinstance(payload, Mapping):
        raise FilterOptionsDecodeError("filter options payload must be a mapping/object")

    if "combinations" in payload and not any(key in payload for key in ("m", "mappings")):
        combinations = payload["combinations"]
        if not isinstance(combinations, list):
            raise FilterOptionsDecodeError("'combinations' section must be a list")
        return pd.DataFrame(combinations).fillna("").astype(str)

    mappings = _section(payload, "mappings")
    columns = _section(payload, "columns")
    values = _section(payload, "values")
    if not isinstance(mappings, Mapping):
        raise FilterOptionsDecodeError("'mappings' section must be a mapping/object")
    if not isinstance(columns, list) or not isinstance(values, list):
        raise FilterOptionsDecodeError("'columns' and 'values' sections must be lists")
    if len(columns) != len(values):
        raise FilterOptionsDecodeError(
            f"payload has {len(columns)} columns but {len(values)} value arrays"
        )
    if not columns:
        return pd.DataFrame()

    row_count = len(values[0]) if isinstance(values[0], list) else -1
    if row_count < 0:
        raise FilterOptionsDecodeError("value arrays must be lists of integer codes")

    decoded: dict[str, np.ndarray] = {}
    for column, codes in zip(columns, values):
        if column not in mappings:
            raise FilterOptionsDecodeError(f"no mapping for column '{column}'")
        decoded[column] = _decode_column(column, mappings[column], codes, row_count)

    frame = pd.DataFrame(decoded, columns=list(columns))
    LOGGER.debug("Decoded %s combinations across %s facets", len(frame), len(columns))
    return frame


def encode_combinations(frame: pd.DataFrame) -> dict[str, Any]:
    """Build a columnar payload from combination rows; blanks encode as -1."""
    mappings: dict[str, list[str]] = {}
    values: list[list[int]] = []
    columns = [str(column) for column in frame.columns]
    for column in frame.columns:
        text = frame[column].fillna("").astype(str).str.strip()
        dictionary = sorted({value for value in text if value})
        index = {value: position for position, value in enumerate(dictionary)}
        mappings[str(column)] = dictionary
        values.append([index.get(value, BLANK_CODE) for value in text])
    return {"mappings": mappings, "columns": columns, "values": values}


def load_filter_options(path: str | Path) -> pd.DataFrame:
    """Read a (optionally gzip-compressed) JSON filter-options file and decode it."""
    source_path = Path(path)
    try:
        if source_path.suffix == ".gz":
            with gzip.open(source_path, "rt", encoding="utf-8") as handle:
                payload = json.load(handle)
        else:
            with source_path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
    except (OSError, EOFError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FilterOptionsDecodeError(f"{source_path}: {exc}") from exc
    return decode_combinations(payload)
