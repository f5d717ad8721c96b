"""Domain exceptions raised by CineMatch services."""

from __future__ import annotations


class CineMatchError(Exception):
    """Base class for recoverable CineMatch failures."""


class InvalidBudgetError(CineMatchError, ValueError):
    """Raised when a viewing budget is not a finite positive number."""


class EmptyWatchlistError(CineMatchError):
    """Raised when optimisation is requested for an empty watchlist."""


class MissingApiKeyError(CineMatchError):
    """Raised when an upstream API key has not been configured."""

    def __init__(self, service: str):
        super().__init__(f"{service} API key is not configured")
        self.service = service


class EntryNotFoundError(CineMatchError, LookupError):
    """Raised when a movie cannot be resolved by its identifier."""

    def __init__(self, imdb_id: str):
        super().__init__(f"Movie {imdb_id} could not be found")
        self.imdb_id = imdb_id
