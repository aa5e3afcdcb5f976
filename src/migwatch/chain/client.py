"""Abstract ledger client interface.

Detection and enrichment code depends only on this interface, keeping
JSON-RPC transport details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from migwatch.chain.types import ParsedTransaction, SignatureInfo


class LedgerClient(ABC):
    """Abstract base class for ledger node clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying HTTP session."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP session."""
        ...

    @abstractmethod
    async def get_signatures_for_address(
        self,
        address: str,
        before: str | None = None,
        until: str | None = None,
        limit: int | None = None,
    ) -> list[SignatureInfo]:
        """Return one page of signatures, newest first, without block-time-less entries.

        Pagination is NOT handled here -- see get_signatures_in_window.
        """
        ...

    @abstractmethod
    async def get_signatures_in_window(
        self,
        address: str,
        window_start: int,
        newest_processed: str | None = None,
    ) -> list[SignatureInfo]:
        """Return every signature with block_time >= window_start, newest first."""
        ...

    @abstractmethod
    async def get_transaction(self, signature: str) -> ParsedTransaction | None:
        """Fetch a parsed transaction, or None when not found / not yet confirmed."""
        ...

    @abstractmethod
    async def get_token_supply(self, mint: str) -> Decimal | None:
        """Total supply in UI units, or None when unknown. Never raises."""
        ...

    @abstractmethod
    async def get_parsed_account(self, address: str) -> dict | None:
        """Account info with jsonParsed encoding, or None when the account does not exist."""
        ...

    @abstractmethod
    async def get_account_data(self, address: str) -> bytes | None:
        """Raw account data bytes, or None when the account does not exist."""
        ...
