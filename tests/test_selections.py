from __future__ import annotations

import pytest

from rate_history.errors import SearchValidationError
from rate_history.facets.selections import Selections, modifier_code


def _complete() -> Selections:
    return Selections(
        service_category="APPLIED BEHAVIOR ANALYSIS",
        state_name="TEXAS",
        service_code=("H2019",),
        program=("STAR",),
        duration_unit=("15 MINUTES",),
        modifier=("HN",),
    )


def test_with_value_clears_every_later_facet() -> None:
    updated = _complete().with_value("service_code", "97153, H2019")

    assert updated.service_category == "APPLIED BEHAVIOR ANALYSIS"
    assert updated.state_name == "TEXAS"
    assert updated.service_code == ("97153", "H2019")
    assert updated.program == ()
    assert updated.duration_unit == ()
    assert updated.modifier == ()


def test_with_value_on_last_facet_keeps_earlier_facets() -> None:
    updated = _complete().with_value("modifier_1", ["GT", "GT", " HN "])

    assert updated.modifier == ("GT", "HN")
    assert updated.program == ("STAR",)


def test_with_value_none_unsets_single_valued_facet() -> None:
    updated = _complete().with_value("state_name", None)

    assert updated.state_name is None
    assert updated.service_code == ()


def test_unknown_facet_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown facet"):
        Selections().with_value("billing_code", "X")


def test_to_criteria_comma_joins_and_uses_modifier_query_key() -> None:
    criteria = _complete().with_value("modifier", "HN,GT").to_criteria()

    assert criteria == {
        "service_category": "APPLIED BEHAVIOR ANALYSIS",
        "state_name": "TEXAS",
        "service_code": "H2019",
        "program": "STAR",
        "duration_unit": "15 MINUTES",
        "modifier_1": "HN,GT",
    }


def test_from_mapping_round_trips_criteria() -> None:
    selections = _complete()

    assert Selections.from_mapping(selections.to_criteria()) == selections
    assert Selections.from_mapping(selections.to_mapping()) == selections


def test_missing_mandatory_requires_code_or_description() -> None:
    assert Selections().missing_mandatory() == [
        "service_category",
        "state_name",
        "duration_unit",
        "service_code",
    ]
    described = Selections(
        service_category="ABA",
        state_name="TEXAS",
        service_description="Behavior therapy",
        duration_unit=("15 MINUTES",),
    )
    assert described.missing_mandatory() == []


def test_validate_reports_duration_unit_separately() -> None:
    selections = _complete().with_value("provider_type", None)

    with pytest.raises(SearchValidationError, match="Duration Unit") as excinfo:
        selections.validate()

    assert excinfo.value.missing == ["duration_unit"]


def test_validate_lists_missing_labels() -> None:
    with pytest.raises(SearchValidationError, match="State"):
        Selections(
            service_category="ABA", service_code=("H2019",), duration_unit=("15",)
        ).validate()


def test_modifier_code_takes_text_before_separator() -> None:
    assert modifier_code("GT - Telehealth") == "GT"
    assert modifier_code("HN") == "HN"
