from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from rate_history.features.timeseries import CHART_PALETTE, assemble_chart, series_label


def _record(**overrides: str) -> dict[str, str]:
    record = {
        "state_name": "TEXAS",
        "service_category": "ABA",
        "service_code": "H2019",
        "duration_unit": "15 MINUTES",
        "rate": "10.00",
        "rate_effective_date": "01/01/2022",
    }
    record.update(overrides)
    return record


def _axis_union_fixture() -> tuple[pd.DataFrame, list[dict[str, str]]]:
    records = [
        _record(rate="10.00", rate_effective_date="01/01/2022"),
        _record(rate="11.00", rate_effective_date="06/01/2022"),
        _record(program="STAR", rate="20.00", rate_effective_date="03/01/2022"),
    ]
    entries = pd.DataFrame([records[1], records[2]])
    return entries, records


def test_axis_is_union_of_series_dates_plus_today() -> None:
    entries, records = _axis_union_fixture()

    dataset = assemble_chart(entries, records, today=date(2024, 1, 1))

    assert dataset.dates == [
        date(2022, 1, 1),
        date(2022, 3, 1),
        date(2022, 6, 1),
        date(2024, 1, 1),
    ]


def test_series_carry_forward_without_points_before_first_observation() -> None:
    entries, records = _axis_union_fixture()

    dataset = assemble_chart(entries, records, today=date(2024, 1, 1))
    series_a, series_b = dataset.series

    assert [point.observed if point else None for point in series_a.points] == [
        10.0,
        None,
        11.0,
        None,
    ]
    assert [point.rate for point in series_a.points] == [10.0, 10.0, 11.0, 11.0]
    assert series_a.points[1].carried

    assert series_b.points[0] is None
    assert series_b.points[1].observed == 20.0
    assert [point.rate for point in series_b.points[1:]] == [20.0, 20.0, 20.0]
    assert all(point.carried for point in series_b.points[2:])


def test_today_already_on_axis_is_not_duplicated() -> None:
    entries, records = _axis_union_fixture()

    dataset = assemble_chart(entries, records, today=date(2022, 6, 1))

    assert len(dataset.dates) == 3


def test_same_date_observations_use_highest_rate() -> None:
    records = [
        _record(rate="10.00", rate_effective_date="05/01/2023"),
        _record(rate="12.00", rate_effective_date="2023-05-01"),
    ]

    dataset = assemble_chart([records[0]], records, today=date(2023, 5, 1))

    assert dataset.dates == [date(2023, 5, 1)]
    assert dataset.series[0].points[0].observed == 12.0


def test_unparseable_dates_are_left_off_the_axis() -> None:
    records = [
        _record(rate="10.00", rate_effective_date="01/01/2022"),
        _record(rate="99.00", rate_effective_date="unknown"),
    ]

    dataset = assemble_chart([records[0]], records, today=date(2022, 1, 1))

    assert dataset.dates == [date(2022, 1, 1)]
    assert dataset.series[0].points[0].rate == 10.0


def test_entry_without_dated_records_gets_no_today_point() -> None:
    record = _record(rate="10.00", rate_effective_date="garbage")

    dataset = assemble_chart([record], [record], today=date(2026, 10, 18))

    assert dataset.dates == []
    assert len(dataset.series) == 1
    assert dataset.series[0].points == []


def test_labels_colors_and_point_context() -> None:
    records = [
        _record(modifier_1="HN", modifier_1_details="Bachelor's level"),
    ] + [_record(service_code=f"9715{index}") for index in range(11)]

    dataset = assemble_chart(records, records, today=date(2022, 1, 1))

    assert dataset.series[0].label == "TEXAS | H2019 | - | - | - | HN"
    assert dataset.series[0].color == CHART_PALETTE[0]
    assert dataset.series[10].color == CHART_PALETTE[0]
    context = dataset.series[0].points[0].context
    assert context["modifier_1"] == "HN"
    assert context["modifier_1_details"] == "Bachelor's level"
    assert context["duration_unit"] == "15 MINUTES"


def test_per_hour_scales_rates_by_duration_unit() -> None:
    record = _record(rate="10.00")

    dataset = assemble_chart([record], [record], today=date(2022, 1, 1), per_hour=True)

    assert dataset.series[0].points[0].rate == pytest.approx(40.0)


def test_comma_joined_entry_codes_match_member_records() -> None:
    entry = _record(service_code="H2019, H2020", rate_effective_date="01/01/2022")
    records = [
        entry,
        _record(service_code="H2020", rate="15.00", rate_effective_date="02/01/2022"),
    ]

    dataset = assemble_chart([entry], records, today=date(2022, 2, 1))

    assert [point.rate for point in dataset.series[0].points] == [10.0, 15.0]


def test_empty_selection_yields_empty_dataset() -> None:
    dataset = assemble_chart([], [_record()])

    assert dataset.dates == []
    assert dataset.series == []
    assert dataset.to_dict() == {"dates": [], "series": []}


def test_to_dict_formats_dates_and_keeps_gaps() -> None:
    entries, records = _axis_union_fixture()

    payload = assemble_chart(entries, records, today=date(2024, 1, 1)).to_dict()

    assert payload["dates"][0] == "01/01/2022"
    assert payload["series"][1]["points"][0] is None
    assert payload["series"][0]["points"][1]["carried"] is True


def test_series_label_uses_dash_for_blank_parts() -> None:
    assert series_label({"state_name": "OHIO", "service_code": "97153"}) == (
        "OHIO | 97153 | - | - | - | -"
    )
