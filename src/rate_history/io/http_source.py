from __future__ import annotations

import logging
from typing import Mapping

import requests

from rate_history.pipeline.accumulator import RecordPage

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpPageFetcher:
    """Fetch filtered record pages from a JSON endpoint.

    The endpoint takes the criteria as query parameters plus `page` and
    `itemsPerPage` and answers `{"data": [...], "totalCount": n}`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float | None = None,
        session: requests.Session | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required for the HTTP record source")
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds or DEFAULT_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.headers = dict(headers or {})

    def __call__(self, criteria: Mapping[str, str], page: int, items_per_page: int) -> RecordPage:
        params = {**criteria, "page": page, "itemsPerPage": items_per_page}
        LOGGER.debug("GET %s params=%s", self.base_url, params)
        response = self.session.get(
            self.base_url,
            params=params,
            headers=self.headers,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return RecordPage.from_payload(response.json())
