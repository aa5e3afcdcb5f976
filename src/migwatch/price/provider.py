"""Abstract price provider interface."""

from abc import ABC, abstractmethod

from migwatch.models import PriceData


class PriceProvider(ABC):
    """Resolves USD price and market cap for a token mint.

    Implementations return an empty PriceData for unknown tokens instead
    of raising.
    """

    @abstractmethod
    async def get_price(self, mint: str) -> PriceData:
        ...

    async def close(self) -> None:
        """Release any network resources. No-op by default."""


class NullPriceProvider(PriceProvider):
    """Provider that knows no prices. Used when price lookups are disabled."""

    async def get_price(self, mint: str) -> PriceData:
        return PriceData()
