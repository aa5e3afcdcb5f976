"""Custom exceptions for the migration detector.

Kept in one module to avoid circular imports between the chain, price
and orchestration layers.
"""


class MigWatchError(Exception):
    """Base exception for all migwatch errors."""


class ConfigurationError(MigWatchError):
    """Raised at startup when a required setting is missing or invalid."""


class RpcError(MigWatchError):
    """Raised when the ledger node returns an HTTP or JSON-RPC error.

    The message always carries the HTTP status (or JSON-RPC code) so that
    the retry primitive can recognise rate-limit responses.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class PriceApiError(MigWatchError):
    """Raised when the price API returns a non-success, non-404 status."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
