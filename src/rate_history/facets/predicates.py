from __future__ import annotations

from typing import Iterable

import pandas as pd

from rate_history.facets.selections import (
    BLANK_SENTINEL,
    FACET_CHAIN,
    Selections,
    modifier_code,
)
from rate_history.io.schema import MODIFIER_COLUMNS


def column_text(frame: pd.DataFrame, column: str) -> pd.Series:
    """Stripped text for a column; a missing column or a literal `-` reads as blank."""
    if column not in frame.columns:
        return pd.Series("", index=frame.index, dtype=object)
    text = frame[column].astype(object).where(frame[column].notna(), "")
    text = text.map(lambda item: str(item).strip())
    return text.where(text != BLANK_SENTINEL, "")


def split_codes(value: str) -> list[str]:
    return [part.strip() for part in str(value).split(",") if part.strip()]


def _match_values(text: pd.Series, selected: Iterable[str]) -> pd.Series:
    chosen = list(selected)
    mask = text.isin([value for value in chosen if value != BLANK_SENTINEL])
    if BLANK_SENTINEL in chosen:
        mask |= text.eq("")
    return mask


def _match_state(text: pd.Series, selected: Iterable[str]) -> pd.Series:
    wanted = {value.strip().upper() for value in selected}
    return text.str.upper().isin(wanted)


def _match_service_codes(text: pd.Series, selected: Iterable[str]) -> pd.Series:
    wanted = {code for value in selected for code in split_codes(value)}
    matches = [any(code in wanted for code in split_codes(item)) for item in text]
    return pd.Series(matches, index=text.index, dtype=bool)


def modifier_codes(frame: pd.DataFrame) -> list[pd.Series]:
    return [
        column_text(frame, column).map(modifier_code)
        for column in MODIFIER_COLUMNS
        if column in frame.columns
    ]


def _match_modifiers(frame: pd.DataFrame, selected: Iterable[str]) -> pd.Series:
    chosen = list(selected)
    wanted = {modifier_code(value) for value in chosen if value != BLANK_SENTINEL}
    codes = modifier_codes(frame)
    mask = pd.Series(False, index=frame.index, dtype=bool)
    for series in codes:
        mask |= series.isin(wanted)
    if BLANK_SENTINEL in chosen:
        # "-" means the row carries no modifier at all.
        no_modifiers = pd.Series(True, index=frame.index, dtype=bool)
        for series in codes:
            no_modifiers &= series.eq("")
        mask |= no_modifiers
    return mask


def facet_match(frame: pd.DataFrame, facet: str, selected: Iterable[str]) -> pd.Series:
    if facet == "modifier":
        return _match_modifiers(frame, selected)
    text = column_text(frame, facet)
    if facet == "state_name":
        return _match_state(text, selected)
    if facet == "service_code":
        return _match_service_codes(text, selected)
    return _match_values(text, selected)


def facet_mask(
    frame: pd.DataFrame,
    selections: Selections,
    exclude: str | None = None,
) -> pd.Series:
    """Rows consistent with every set facet, optionally ignoring one facet.

    Shared by option resolution (which ignores the target facet) and record
    grouping (which ignores nothing), so both filter identically.
    """
    mask = pd.Series(True, index=frame.index, dtype=bool)
    for facet in FACET_CHAIN:
        if facet == exclude:
            continue
        selected = selections.values(facet)
        if selected:
            mask &= facet_match(frame, facet, selected)
    return mask
