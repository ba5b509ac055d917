from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol

import pandas as pd

from rate_history.config import DEFAULT_ITEMS_PER_PAGE
from rate_history.errors import PageFetchError
from rate_history.io.schema import empty_records, normalize_records

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordPage:
    records: pd.DataFrame
    total_count: int

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RecordPage":
        """Parse a `{data: [...], totalCount: n}` response body."""
        if not isinstance(payload, Mapping):
            raise ValueError("record page payload must be a mapping/object")
        data = payload.get("data") or []
        if not isinstance(data, list):
            raise ValueError("record page 'data' must be a list")
        try:
            total_count = int(payload.get("totalCount", len(data)) or 0)
        except (TypeError, ValueError) as exc:
            raise ValueError("record page 'totalCount' must be an integer") from exc
        records = normalize_records(data) if data else empty_records()
        return cls(records=records, total_count=total_count)


class PageFetcher(Protocol):
    def __call__(
        self, criteria: Mapping[str, str], page: int, items_per_page: int
    ) -> RecordPage: ...


def accumulate_pages(
    fetch_page: PageFetcher,
    criteria: Mapping[str, str],
    items_per_page: int = DEFAULT_ITEMS_PER_PAGE,
    on_page: Callable[[pd.DataFrame], None] | None = None,
) -> pd.DataFrame:
    """Request pages until one is empty, short, or the reported total is reached.

    A failing page raises PageFetchError and nothing accumulated so far is
    returned.
    """
    if items_per_page < 1:
        raise ValueError("items_per_page must be >= 1")

    frames: list[pd.DataFrame] = []
    accumulated = 0
    page = 1
    while True:
        try:
            result = fetch_page(dict(criteria), page, items_per_page)
        except PageFetchError:
            raise
        except Exception as exc:
            raise PageFetchError(page, f"page {page} failed: {exc}") from exc

        page_size = len(result.records)
        if page_size == 0:
            break
        frames.append(result.records)
        accumulated += page_size
        if on_page is not None:
            on_page(result.records)
        LOGGER.debug(
            "Fetched page %s (%s records, %s/%s)", page, page_size, accumulated, result.total_count
        )
        if accumulated >= result.total_count or page_size < items_per_page:
            break
        page += 1

    LOGGER.info("Accumulated %s records over %s page(s)", accumulated, len(frames))
    if not frames:
        return empty_records()
    return normalize_records(pd.concat(frames, ignore_index=True))
