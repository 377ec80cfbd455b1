"""Exceptions raised by the search layer."""


class SearchError(Exception):
    """Base class for search failures."""


class SearchValidationError(SearchError):
    """Request parameters are missing or invalid (HTTP 400)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SearchBackendError(SearchError):
    """The content store failed to answer a query (HTTP 500)."""
