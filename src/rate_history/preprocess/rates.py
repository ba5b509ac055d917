from __future__ import annotations

import math
import re
from typing import Any

import pandas as pd

CURRENCY_NOISE_RE = re.compile(r"[$,\s]")

# Multipliers from a per-unit rate to an hourly rate, keyed on unit minutes.
MINUTE_UNIT_MULTIPLIERS = {
    "15": 4.0,
    "30": 2.0,
    "45": 4.0 / 3.0,
    "60": 1.0,
}


def parse_rates(values: pd.Series) -> pd.Series:
    cleaned = values.astype(object).where(values.notna(), "").map(
        lambda item: CURRENCY_NOISE_RE.sub("", str(item))
    )
    return pd.to_numeric(cleaned, errors="coerce").astype(float)


def parse_rate(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return float(parse_rates(pd.Series([value], dtype=object)).iloc[0])


def hourly_multiplier(duration_unit: str | None) -> float:
    unit = str(duration_unit or "").upper()
    if "MINUTE" in unit:
        for minutes, multiplier in MINUTE_UNIT_MULTIPLIERS.items():
            if minutes in unit:
                return multiplier
    return 1.0


def convert_to_hourly_rate(rate: Any, duration_unit: str | None) -> float:
    """Scale a per-unit rate to an hourly rate; unknown units pass through unchanged."""
    return parse_rate(rate) * hourly_multiplier(duration_unit)


def format_currency(value: Any) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return "-"
    number = parse_rate(value)
    if math.isnan(number):
        return "-" if isinstance(value, float) else str(value)
    return f"${number:.2f}"
