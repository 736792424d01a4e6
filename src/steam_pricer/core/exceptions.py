"""Custom exception hierarchy for steam-pricer."""

from typing import Any


class PricerError(Exception):
    """Base exception for all steam-pricer errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(PricerError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str: the config field that failed validation
        value: Any: the invalid value
    """


class SourceError(PricerError):
    """A price source could not produce a usable response.

    Policy: degrade to an absent price. Never surfaced to the caller.

    Context keys:
        asset_name: str: the name being priced
        url: str: the URL that was being fetched
        status_code: int | None: HTTP status if one was received
    """


class RateLimitError(SourceError):
    """A price source answered HTTP 429.

    Policy: the structured source serves its stale cache entry, the
    listing scraper backs off and retries up to its attempt ceiling.

    Context keys:
        attempt: int | None: which attempt was rate limited
    """


class InventoryError(PricerError):
    """Failed to fetch or decode an inventory listing.

    Policy: propagate to the caller as a request-level failure.

    Context keys:
        identity: str: the inventory owner
        cursor: str | None: the page cursor being fetched
    """


class StorageError(PricerError):
    """Loading or saving a persisted document failed.

    Policy: log it. The in-memory copy stays authoritative until the next
    successful write.

    Context keys:
        operation: str: "load" or "save"
        document: str: the document name
    """
