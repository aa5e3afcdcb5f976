"""Price and market-cap lookup for migrated tokens."""

from migwatch.price.geckoterminal import GeckoTerminalProvider, parse_token_price
from migwatch.price.provider import NullPriceProvider, PriceProvider

__all__ = [
    "GeckoTerminalProvider",
    "NullPriceProvider",
    "PriceProvider",
    "parse_token_price",
]
