from __future__ import annotations


class FilterOptionsDecodeError(ValueError):
    """Raised when a compressed filter-options payload cannot be decoded."""


class SearchValidationError(ValueError):
    """Raised before any request when mandatory facets are missing."""

    def __init__(self, missing: list[str], message: str) -> None:
        super().__init__(message)
        self.missing = missing


class PageFetchError(RuntimeError):
    """Raised when a page request fails; partial results are discarded."""

    def __init__(self, page: int, message: str) -> None:
        super().__init__(message)
        self.page = page
