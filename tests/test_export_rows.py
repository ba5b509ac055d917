from __future__ import annotations

from rate_history.export.rows import (
    EXPORT_COLUMNS,
    abbreviate_service_category,
    abbreviate_state,
    build_export_rows,
    modifier_label,
)


def test_build_export_rows_formats_and_abbreviates() -> None:
    rows = build_export_rows(
        [
            {
                "state_name": "Texas",
                "service_category": "Applied Behavior Analysis",
                "service_code": "97153",
                "duration_unit": "15 MINUTES",
                "rate": "12.5",
                "rate_effective_date": "2023-07-01",
                "modifier_1": "HN",
                "modifier_1_details": "Bachelor's level",
                "modifier_2": "U1",
            }
        ]
    )

    assert list(rows.columns) == EXPORT_COLUMNS
    row = rows.iloc[0]
    assert row["state_name"] == "Texas"
    assert row["state_code"] == "TX"
    assert row["service_category"] == "ABA"
    assert row["rate"] == "$12.50"
    assert row["rate_per_hour"] == "$50.00"
    assert row["rate_effective_date"] == "07/01/2023"
    assert row["modifier_1"] == "HN - Bachelor's level"
    assert row["modifier_2"] == "U1"
    assert row["modifier_3"] == ""


def test_unknown_names_pass_through() -> None:
    assert abbreviate_state("Guam") == "Guam"
    assert abbreviate_service_category("Dental") == "Dental"
    assert abbreviate_service_category("HOME AND COMMUNITY BASED SERVICES") == "HCBS"


def test_modifier_label_without_code_is_blank() -> None:
    assert modifier_label("", "orphan detail") == ""


def test_build_export_rows_empty_input_keeps_columns() -> None:
    rows = build_export_rows([])

    assert rows.empty
    assert list(rows.columns) == EXPORT_COLUMNS
