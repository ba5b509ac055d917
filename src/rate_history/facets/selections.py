from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Literal, Mapping, Sequence

from rate_history.errors import SearchValidationError
from rate_history.io.schema import MODIFIER_COLUMNS

FacetName = Literal[
    "service_category",
    "state_name",
    "service_code",
    "service_description",
    "program",
    "location_region",
    "provider_type",
    "duration_unit",
    "modifier",
]

# Dependency order: changing a facet invalidates every facet after it.
FACET_CHAIN: tuple[FacetName, ...] = (
    "service_category",
    "state_name",
    "service_code",
    "service_description",
    "program",
    "location_region",
    "provider_type",
    "duration_unit",
    "modifier",
)
MULTI_SELECT_FACETS: frozenset[str] = frozenset(
    {"service_code", "program", "location_region", "provider_type", "duration_unit", "modifier"}
)
SECONDARY_FACETS: tuple[FacetName, ...] = (
    "program",
    "location_region",
    "provider_type",
    "modifier",
)
MANDATORY_FACETS: tuple[FacetName, ...] = ("service_category", "state_name", "duration_unit")

BLANK_SENTINEL = "-"
MODIFIER_QUERY_KEY = "modifier_1"
MULTI_VALUE_SEPARATOR = ","

FACET_LABELS: dict[str, str] = {
    "service_category": "Service Line",
    "state_name": "State",
    "service_code": "Service Code",
    "service_description": "Service Description",
    "program": "Program",
    "location_region": "Location / Region",
    "provider_type": "Provider Type",
    "duration_unit": "Duration Unit",
    "modifier": "Modifier",
}


def facet_columns(facet: str) -> tuple[str, ...]:
    """Record/combination columns that back a facet."""
    if facet == "modifier":
        return MODIFIER_COLUMNS
    return (facet,)


def normalize_facet_name(name: str) -> FacetName:
    key = str(name).strip().lower()
    if key in MODIFIER_COLUMNS:
        key = "modifier"
    if key not in FACET_CHAIN:
        raise ValueError(f"Unknown facet '{name}'. Expected one of: {', '.join(FACET_CHAIN)}")
    return key  # type: ignore[return-value]


def modifier_code(value: str) -> str:
    """Code part of a `code - detail` modifier label."""
    return str(value).split(" - ", 1)[0].strip()


def _coerce_values(value: str | Sequence[str] | None, *, split: bool) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        raw = value.split(MULTI_VALUE_SEPARATOR) if split else [value]
    else:
        raw = [str(item) for item in value]
    ordered: list[str] = []
    for item in raw:
        text = item.strip()
        if text and text not in ordered:
            ordered.append(text)
    return tuple(ordered)


@dataclass(frozen=True)
class Selections:
    service_category: str | None = None
    state_name: str | None = None
    service_code: tuple[str, ...] = ()
    service_description: str | None = None
    program: tuple[str, ...] = ()
    location_region: tuple[str, ...] = ()
    provider_type: tuple[str, ...] = ()
    duration_unit: tuple[str, ...] = ()
    modifier: tuple[str, ...] = ()

    def values(self, facet: str) -> tuple[str, ...]:
        current = getattr(self, normalize_facet_name(facet))
        if current is None:
            return ()
        if isinstance(current, tuple):
            return current
        return (current,)

    def is_set(self, facet: str) -> bool:
        return bool(self.values(facet))

    def with_value(self, facet: str, value: str | Sequence[str] | None) -> "Selections":
        """Return new selections with `facet` set and every later facet cleared."""
        name = normalize_facet_name(facet)
        changes: dict[str, Any] = {}
        if name in MULTI_SELECT_FACETS:
            changes[name] = _coerce_values(value, split=True)
        else:
            single = _coerce_values(value, split=False)
            changes[name] = single[0] if single else None
        for later in FACET_CHAIN[FACET_CHAIN.index(name) + 1 :]:
            changes[later] = () if later in MULTI_SELECT_FACETS else None
        return replace(self, **changes)

    def missing_mandatory(self) -> list[str]:
        missing = [facet for facet in MANDATORY_FACETS if not self.is_set(facet)]
        if not self.is_set("service_code") and not self.is_set("service_description"):
            missing.append("service_code")
        return missing

    def validate(self) -> None:
        missing = self.missing_mandatory()
        if not missing:
            return
        if "duration_unit" in missing:
            raise SearchValidationError(
                missing, "Please select a Duration Unit before searching."
            )
        labels = ", ".join(FACET_LABELS[facet] for facet in missing)
        raise SearchValidationError(missing, f"Please select required filters: {labels}.")

    def to_criteria(self) -> dict[str, str]:
        """Query parameters for the record service; multi-values are comma-joined."""
        criteria: dict[str, str] = {}
        for facet in FACET_CHAIN:
            selected = self.values(facet)
            if not selected:
                continue
            key = MODIFIER_QUERY_KEY if facet == "modifier" else facet
            criteria[key] = MULTI_VALUE_SEPARATOR.join(selected)
        return criteria

    def to_mapping(self) -> dict[str, str | None]:
        return {
            facet: (MULTI_VALUE_SEPARATOR.join(self.values(facet)) or None) for facet in FACET_CHAIN
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Selections":
        """Build selections from loosely typed input such as query params or saved templates.

        Values are applied in chain order without clearing, so a complete saved
        mapping round-trips.
        """
        changes: dict[str, Any] = {}
        for key, value in mapping.items():
            if value is None or value == "":
                continue
            name = normalize_facet_name(key)
            if name in MULTI_SELECT_FACETS:
                changes[name] = _coerce_values(value, split=True)
            else:
                single = _coerce_values(value, split=False)
                changes[name] = single[0] if single else None
        known = {field.name for field in fields(cls)}
        return cls(**{key: value for key, value in changes.items() if key in known})
