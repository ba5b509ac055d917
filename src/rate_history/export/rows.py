from __future__ import annotations

from typing import Any, Iterable, Mapping

import pandas as pd

from rate_history.io.schema import MODIFIER_COLUMNS, normalize_records
from rate_history.preprocess.dates import format_effective_date
from rate_history.preprocess.rates import convert_to_hourly_rate, format_currency

SERVICE_CATEGORY_ABBREVIATIONS = {
    "APPLIED BEHAVIOR ANALYSIS": "ABA",
    "APPLIED BEHAVIORAL ANALYSIS (ABA)": "ABA",
    "BEHAVIORAL HEALTH": "BH",
    "BEHAVIORAL HEALTH AND/OR SUBSTANCE USE DISORDER SERVICES": "BH/SUD",
    "HOME AND COMMUNITY BASED SERVICES": "HCBS",
}

STATE_ABBREVIATIONS = {
    "ALABAMA": "AL",
    "ALASKA": "AK",
    "ARIZONA": "AZ",
    "ARKANSAS": "AR",
    "CALIFORNIA": "CA",
    "COLORADO": "CO",
    "CONNECTICUT": "CT",
    "DELAWARE": "DE",
    "FLORIDA": "FL",
    "GEORGIA": "GA",
    "HAWAII": "HI",
    "IDAHO": "ID",
    "ILLINOIS": "IL",
    "INDIANA": "IN",
    "IOWA": "IA",
    "KANSAS": "KS",
    "KENTUCKY": "KY",
    "LOUISIANA": "LA",
    "MAINE": "ME",
    "MARYLAND": "MD",
    "MASSACHUSETTS": "MA",
    "MICHIGAN": "MI",
    "MINNESOTA": "MN",
    "MISSISSIPPI": "MS",
    "MISSOURI": "MO",
    "MONTANA": "MT",
    "NEBRASKA": "NE",
    "NEVADA": "NV",
    "NEW HAMPSHIRE": "NH",
    "NEW JERSEY": "NJ",
    "NEW MEXICO": "NM",
    "NEW YORK": "NY",
    "NORTH CAROLINA": "NC",
    "NORTH DAKOTA": "ND",
    "OHIO": "OH",
    "OKLAHOMA": "OK",
    "OREGON": "OR",
    "PENNSYLVANIA": "PA",
    "RHODE ISLAND": "RI",
    "SOUTH CAROLINA": "SC",
    "SOUTH DAKOTA": "SD",
    "TENNESSEE": "TN",
    "TEXAS": "TX",
    "UTAH": "UT",
    "VERMONT": "VT",
    "VIRGINIA": "VA",
    "WASHINGTON": "WA",
    "WEST VIRGINIA": "WV",
    "WISCONSIN": "WI",
    "WYOMING": "WY",
}

EXPORT_COLUMNS = [
    "state_name",
    "state_code",
    "service_category",
    "service_code",
    "service_description",
    "rate",
    "rate_per_hour",
    "duration_unit",
    "rate_effective_date",
    "program",
    "location_region",
    "provider_type",
    *MODIFIER_COLUMNS,
]


def abbreviate_state(state_name: str) -> str:
    text = str(state_name or "").strip()
    return STATE_ABBREVIATIONS.get(text.upper(), text)


def abbreviate_service_category(category: str) -> str:
    text = str(category or "").strip()
    return SERVICE_CATEGORY_ABBREVIATIONS.get(text.upper(), text)


def modifier_label(code: str, details: str) -> str:
    code = str(code or "").strip()
    details = str(details or "").strip()
    if code and details:
        return f"{code} - {details}"
    return code


def _export_row(record: Mapping[str, Any]) -> dict[str, str]:
    row = {
        "state_name": record["state_name"],
        "state_code": abbreviate_state(record["state_name"]),
        "service_category": abbreviate_service_category(record["service_category"]),
        "service_code": record["service_code"],
        "service_description": record["service_description"],
        "rate": format_currency(record["rate"]),
        "rate_per_hour": format_currency(
            convert_to_hourly_rate(record["rate"], record["duration_unit"])
        ),
        "duration_unit": record["duration_unit"],
        "rate_effective_date": format_effective_date(record["rate_effective_date"]),
        "program": record["program"],
        "location_region": record["location_region"],
        "provider_type": record["provider_type"],
    }
    for column in MODIFIER_COLUMNS:
        row[column] = modifier_label(record[column], record[f"{column}_details"])
    return row


def build_export_rows(records: pd.DataFrame | Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    frame = normalize_records(records)
    rows = [_export_row(record) for record in frame.to_dict(orient="records")]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)
