from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from rate_history.config import QueryConfig
from rate_history.io.http_source import HttpPageFetcher
from rate_history.io.rates_postgres import PostgresPageFetcher
from rate_history.io.read import load_rate_records, load_table
from rate_history.io.schema import RATE_RECORD_COLUMNS
from rate_history.io.sources import FramePageFetcher, build_page_fetcher
from rate_history.io.write import write_summary, write_table


def _write_rates_csv(path: Path) -> Path:
    path.write_text(
        "\n".join(
            [
                "\ufeffstate_name,service_category,service_code,rate,rate_effective_date,program",
                "TEXAS,ABA,H2019,12.50,07/01/2023,",
                "TEXAS,ABA,H2019,13.00,2024-01-01,STAR",
                "OHIO,ABA,97153,NA,01/01/2024,",
            ]
        ),
        encoding="utf-8",
    )
    return path


def test_load_rate_records_keeps_text_and_adds_missing_columns(tmp_path: Path) -> None:
    records = load_rate_records(_write_rates_csv(tmp_path / "rates.csv"))

    assert list(records.columns) == list(RATE_RECORD_COLUMNS)
    assert records.loc[0, "rate"] == "12.50"
    assert records.loc[2, "rate"] == "NA"
    assert records.loc[0, "program"] == ""
    assert records.loc[0, "modifier_4_details"] == ""


def test_load_rate_records_requires_core_columns(tmp_path: Path) -> None:
    csv_path = tmp_path / "rates.csv"
    csv_path.write_text("state_name,rate\nTEXAS,1.00\n", encoding="utf-8")

    with pytest.raises(ValueError, match="service_category"):
        load_rate_records(csv_path)


def test_load_table_rejects_unknown_suffix(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Unsupported table file type"):
        load_table(tmp_path / "rates.xlsx")


def test_write_table_and_summary(tmp_path: Path) -> None:
    frame = pd.DataFrame({"state_name": ["TEXAS"], "rate": ["12.50"]})

    csv_path = write_table(frame, tmp_path / "tables" / "latest_entries", fmt="csv")
    parquet_path = write_table(frame, tmp_path / "tables" / "latest_entries", fmt="parquet")
    summary_path = write_summary({"n_entries": 1}, tmp_path / "summary.json")

    assert csv_path.name == "latest_entries.csv"
    assert pd.read_parquet(parquet_path)["rate"].tolist() == ["12.50"]
    assert summary_path.read_text(encoding="utf-8").strip().startswith("{")

def test_write_table_rejects_unknown_format_before_creating_dirs(tmp_path: Path) -> None:
    frame = pd.DataFrame({"rate": ["12.50"]})

    with pytest.raises(ValueError, match="Unsupported table format: xml"):
        write_table(frame, tmp_path / "exports" / "rate_export", fmt="xml")
    assert not (tmp_path / "exports").exists()


def test_write_table_csv_leaves_missing_values_blank(tmp_path: Path) -> None:
    frame = pd.DataFrame({"effective_date": ["2024-01-01", "2024-06-01"], "observed": [12.5, None]})

    path = write_table(frame, tmp_path / "chart_points", fmt="csv")

    assert path.read_text(encoding="utf-8").splitlines() == [
        "effective_date,observed",
        "2024-01-01,12.5",
        "2024-06-01,",
    ]


def test_frame_page_fetcher_filters_and_pages(tmp_path: Path) -> None:
    fetcher = FramePageFetcher(load_rate_records(_write_rates_csv(tmp_path / "rates.csv")))

    first = fetcher({"state_name": "TEXAS"}, 1, 1)
    second = fetcher({"state_name": "TEXAS"}, 2, 1)
    blank_program = fetcher({"state_name": "TEXAS", "program": "-"}, 1, 10)

    assert first.total_count == 2
    assert first.records["rate"].tolist() == ["12.50"]
    assert second.records["rate"].tolist() == ["13.00"]
    assert blank_program.total_count == 1


def test_build_page_fetcher_selects_source(tmp_path: Path) -> None:
    records_path = _write_rates_csv(tmp_path / "rates.csv")

    assert isinstance(
        build_page_fetcher(QueryConfig(base_url="https://rates.example.test/api")),
        HttpPageFetcher,
    )
    assert isinstance(
        build_page_fetcher(QueryConfig(mode="postgres", db_url="postgresql://localhost/rates")),
        PostgresPageFetcher,
    )
    assert isinstance(
        build_page_fetcher(QueryConfig(), records_path=records_path), FramePageFetcher
    )
    with pytest.raises(ValueError, match="base_url"):
        build_page_fetcher(QueryConfig())
    with pytest.raises(ValueError, match="db_url"):
        build_page_fetcher(QueryConfig(mode="postgres"))
