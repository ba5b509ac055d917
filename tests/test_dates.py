from __future__ import annotations

from datetime import date

import pandas as pd

from rate_history.preprocess.dates import (
    format_effective_date,
    parse_effective_date,
    parse_effective_dates,
)


def test_parse_effective_dates_accepts_us_and_iso_formats() -> None:
    parsed = parse_effective_dates(
        pd.Series(["07/01/2023", "2023-07-01", "", None, "not a date"], dtype=object)
    )

    assert parsed.iloc[0] == pd.Timestamp("2023-07-01")
    assert parsed.iloc[1] == pd.Timestamp("2023-07-01")
    assert parsed.iloc[2:].isna().all()


def test_parse_effective_dates_drops_time_of_day_and_zone() -> None:
    parsed = parse_effective_dates(pd.Series(["2023-07-01T23:30:00-07:00"], dtype=object))

    assert parsed.iloc[0] == pd.Timestamp("2023-07-01")
    assert parsed.dt.tz is None


def test_parse_effective_date_returns_calendar_date() -> None:
    assert parse_effective_date("1/5/2022") == date(2022, 1, 5)
    assert parse_effective_date("bogus") is None


def test_format_effective_date_falls_back_to_original_text() -> None:
    assert format_effective_date("2022-01-05") == "01/05/2022"
    assert format_effective_date("Q3 FY24") == "Q3 FY24"
    assert format_effective_date("") == "-"
    assert format_effective_date(None) == "-"
