#!/usr/bin/env python3
from __future__ import annotations

import argparse
import gzip
import json
from pathlib import Path

from rate_history.facets.codec import encode_combinations
from rate_history.io.read import load_rate_records
from rate_history.io.schema import MODIFIER_COLUMNS

OUTPUT_PATH = Path(__file__).resolve().parents[2] / "data" / "filter_options.json.gz"

COMBINATION_COLUMNS = [
    "service_category",
    "state_name",
    "service_code",
    "service_description",
    "program",
    "location_region",
    "provider_type",
    "duration_unit",
    *MODIFIER_COLUMNS,
]


def build_payload(records_path: Path) -> dict[str, object]:
    records = load_rate_records(records_path)
    combinations = records[COMBINATION_COLUMNS].drop_duplicates().reset_index(drop=True)
    payload = encode_combinations(combinations)
    # The published blob uses single-letter section keys.
    return {"m": payload["mappings"], "c": payload["columns"], "v": payload["values"]}


def main() -> None:
    parser = argparse.ArgumentParser(description="Build the compressed filter-options blob.")
    parser.add_argument("records", type=Path, help="CSV or parquet rate table")
    parser.add_argument("--output", type=Path, default=OUTPUT_PATH)
    args = parser.parse_args()

    payload = build_payload(args.records)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    with gzip.open(args.output, "wt", encoding="utf-8") as handle:
        json.dump(payload, handle, separators=(",", ":"))
    print(f"Wrote {len(payload['v'][0]) if payload['v'] else 0} combinations to {args.output}")


if __name__ == "__main__":
    main()
