"""Chain detection error taxonomy.

Input, lookup, configuration and database-read errors fail a request with
their ``status_code``. Upstream and per-chain write failures are logged and
degrade to fewer results.
"""

from __future__ import annotations


class ChainDetectionError(Exception):
    """Base class for errors raised by the chain detection pipeline."""

    status_code = 500

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ClientInputError(ChainDetectionError):
    """Malformed body or insufficient mode fields."""

    status_code = 400


class NotFoundError(ChainDetectionError):
    """Requested listing or chain does not exist."""

    status_code = 404


class ConfigurationError(ChainDetectionError):
    """Required configuration (API key, DSN) is missing."""


class UpstreamUnavailable(ChainDetectionError):
    """Property-records or person-search API returned non-2xx or was unreachable."""


class DataIncomplete(ChainDetectionError):
    """Upstream call succeeded but no buyer name could be extracted."""


class PersistenceError(ChainDetectionError):
    """A storage read or write failed."""


class DatabaseUnavailableError(PersistenceError):
    """The database is not accessible."""
