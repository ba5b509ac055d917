from __future__ import annotations

import logging
import re

import pandas as pd

from rate_history.facets.predicates import column_text, facet_mask, modifier_codes, split_codes
from rate_history.facets.selections import (
    BLANK_SENTINEL,
    FACET_CHAIN,
    SECONDARY_FACETS,
    Selections,
    facet_columns,
    normalize_facet_name,
)

LOGGER = logging.getLogger(__name__)

NUMERIC_CODE_RE = re.compile(r"^\d+$")
LETTER_PREFIX_CODE_RE = re.compile(r"^[A-Z]\d+$")
LETTER_SUFFIX_CODE_RE = re.compile(r"^(\d+)[A-Z]$")


def service_code_sort_key(code: str) -> tuple[int, int, str]:
    """Numeric codes first, then letter+digits, then digits+letter, then the rest."""
    text = str(code).strip()
    if NUMERIC_CODE_RE.match(text):
        return (0, int(text), text)
    if LETTER_PREFIX_CODE_RE.match(text):
        return (1, 0, text)
    suffix_match = LETTER_SUFFIX_CODE_RE.match(text)
    if suffix_match:
        return (2, int(suffix_match.group(1)), text)
    return (3, 0, text)


def _surviving(combinations: pd.DataFrame, selections: Selections, facet: str) -> pd.DataFrame:
    return combinations.loc[facet_mask(combinations, selections, exclude=facet)]


def _blank_present(frame: pd.DataFrame, facet: str) -> bool:
    if frame.empty:
        return False
    if facet == "modifier":
        codes = modifier_codes(frame)
        if not codes:
            return True
        no_modifiers = pd.Series(True, index=frame.index, dtype=bool)
        for series in codes:
            no_modifiers &= series.eq("")
        return bool(no_modifiers.any())
    return bool(column_text(frame, facet).eq("").any())


def has_blank_entries(combinations: pd.DataFrame, selections: Selections, facet: str) -> bool:
    """Whether any combination reachable under `selections` is blank for `facet`."""
    name = normalize_facet_name(facet)
    return _blank_present(_surviving(combinations, selections, name), name)


def available_options(combinations: pd.DataFrame, selections: Selections, facet: str) -> list[str]:
    """Values of `facet` reachable from every other current selection."""
    name = normalize_facet_name(facet)
    if combinations.empty:
        return []

    surviving = _surviving(combinations, selections, name)
    values: set[str] = set()
    for column in facet_columns(name):
        if column not in surviving.columns:
            continue
        for value in column_text(surviving, column):
            if not value:
                continue
            if name == "service_code":
                values.update(split_codes(value))
            else:
                values.add(value)

    if name == "service_code":
        options = sorted(values, key=service_code_sort_key)
    else:
        options = sorted(values)

    if name in SECONDARY_FACETS and _blank_present(surviving, name):
        options.insert(0, BLANK_SENTINEL)
    return options


def resolve_all_options(combinations: pd.DataFrame, selections: Selections) -> dict[str, list[str]]:
    options = {facet: available_options(combinations, selections, facet) for facet in FACET_CHAIN}
    LOGGER.debug(
        "Resolved facet options: %s",
        ", ".join(f"{facet}={len(values)}" for facet, values in options.items()),
    )
    return options
