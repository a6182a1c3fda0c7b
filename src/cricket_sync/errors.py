"""Exception hierarchy for the ingestion pipeline.

Only ``ConfigurationError`` is fatal. Feed errors are turned into "no data"
at the client boundary, validation errors are business-rule skips, and
persistence errors are counted per chunk or per match.
"""

from typing import Optional


class CricketSyncError(Exception):
    """Base class for all pipeline errors."""


class FeedError(CricketSyncError):
    """Upstream feed could not deliver usable data."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class TransientNetworkError(FeedError):
    """Non-2xx status, timeout or connection failure."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, url=url)
        self.status_code = status_code


class ParseError(FeedError):
    """Response body was not the JSON document we expected."""


class ValidationError(CricketSyncError):
    """Business-rule rejection of a match (skip, not failure)."""

    def __init__(self, match_id: str, reason: str) -> None:
        super().__init__(f"{match_id}: {reason}")
        self.match_id = match_id
        self.reason = reason


class PersistenceError(CricketSyncError):
    """A select, upsert, update or delete against the store failed."""

    def __init__(self, message: str, table: Optional[str] = None) -> None:
        super().__init__(message)
        self.table = table


class ConfigurationError(CricketSyncError):
    """Required settings are missing or invalid."""
