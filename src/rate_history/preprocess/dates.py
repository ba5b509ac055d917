from __future__ import annotations

from datetime import date

import pandas as pd

US_DATE_FORMAT = "%m/%d/%Y"
ISO_DATE_FORMAT = "%Y-%m-%d"
DISPLAY_DATE_FORMAT = "%m/%d/%Y"


def _generic_timestamp(text: str) -> pd.Timestamp:
    if not text:
        return pd.NaT
    try:
        parsed = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError):
        return pd.NaT
    if pd.isna(parsed):
        return pd.NaT
    # Keep the wall-clock calendar day; converting to UTC can shift it by one.
    if parsed.tzinfo is not None:
        parsed = parsed.tz_localize(None)
    return parsed.normalize()


def parse_effective_dates(values: pd.Series) -> pd.Series:
    """Parse effective-date text into timezone-free midnight timestamps.

    `MM/DD/YYYY` is tried first, then `YYYY-MM-DD`, then generic parsing for
    anything else. Unparseable values become NaT.
    """
    text = values.astype(object).where(values.notna(), "").map(lambda item: str(item).strip())
    parsed = pd.to_datetime(text, format=US_DATE_FORMAT, errors="coerce")
    missing_mask = parsed.isna()
    if missing_mask.any():
        parsed.loc[missing_mask] = pd.to_datetime(
            text.loc[missing_mask], format=ISO_DATE_FORMAT, errors="coerce"
        )
    missing_mask = parsed.isna()
    if missing_mask.any():
        parsed.loc[missing_mask] = text.loc[missing_mask].map(_generic_timestamp)
    return pd.to_datetime(parsed, errors="coerce")


def parse_effective_date(value: str | None) -> date | None:
    parsed = parse_effective_dates(pd.Series([value], dtype=object)).iloc[0]
    if pd.isna(parsed):
        return None
    return parsed.date()


def format_effective_date(value: str | None) -> str:
    """Render an effective date as MM/DD/YYYY, or its original text when unparseable."""
    text = str(value or "").strip()
    if not text:
        return "-"
    parsed = parse_effective_date(text)
    if parsed is None:
        return text
    return parsed.strftime(DISPLAY_DATE_FORMAT)
