"""Enrichment of detected migrations with metadata, price and market cap.

For each ParsedMigration:
  1. Resolve name/symbol/uri (MetadataResolver)
  2. Resolve price and market cap (PriceProvider)
  3. If price is known but market cap is not, estimate market cap as
     price x on-chain total supply
  4. Keep the result only if market cap >= floor (when the floor applies)

Runs sequentially by default since the price API rate limit dominates.
Higher concurrency is bounded by a semaphore; final ordering always comes
from sort_by_market_cap, never from completion order.
"""

import asyncio
from collections.abc import Iterable
from decimal import Decimal

from migwatch.chain.client import LedgerClient
from migwatch.logging import get_logger
from migwatch.metadata.resolver import MetadataResolver
from migwatch.models import (
    MigrationResult,
    ParsedMigration,
    PriceData,
    iso_from_unix,
)
from migwatch.price.provider import PriceProvider

logger = get_logger(__name__)

DEFAULT_MARKET_CAP_FLOOR = Decimal("20000")


def passes_market_cap_floor(result: MigrationResult, floor: Decimal) -> bool:
    """True when market cap is known and at least ``floor``. Unknown market cap never passes."""
    return result.market_cap_usd is not None and result.market_cap_usd >= floor


def sort_by_market_cap(results: Iterable[MigrationResult]) -> list[MigrationResult]:
    """Highest market cap first; unknown market cap sorts as zero."""
    return sorted(
        results,
        key=lambda r: r.market_cap_usd if r.market_cap_usd is not None else Decimal("0"),
        reverse=True,
    )


class MigrationEnricher:
    """Turns ParsedMigrations into published MigrationResults.

    Args:
        metadata_resolver: Token name/symbol lookup.
        price_provider: USD price and market cap lookup.
        client: Ledger client, used for total supply when market cap is missing.
        market_cap_floor: Minimum market cap for a result to be published.
            None publishes every result, known market cap or not.
        concurrency: Maximum migrations enriched at once (1 = sequential).
    """

    def __init__(
        self,
        metadata_resolver: MetadataResolver,
        price_provider: PriceProvider,
        client: LedgerClient,
        market_cap_floor: Decimal | None = DEFAULT_MARKET_CAP_FLOOR,
        concurrency: int = 1,
    ) -> None:
        self._metadata = metadata_resolver
        self._price = price_provider
        self._client = client
        self._floor = market_cap_floor
        self._concurrency = max(1, concurrency)

    @property
    def market_cap_floor(self) -> Decimal | None:
        return self._floor

    async def enrich(
        self,
        migrations: list[ParsedMigration],
        apply_floor: bool = True,
    ) -> list[MigrationResult]:
        """Enrich every migration; failed items are logged and skipped."""
        if self._concurrency == 1:
            outcomes = [await self._enrich_one(m) for m in migrations]
        else:
            semaphore = asyncio.Semaphore(self._concurrency)

            async def _bounded(migration: ParsedMigration) -> MigrationResult | None:
                async with semaphore:
                    return await self._enrich_one(migration)

            outcomes = await asyncio.gather(*(_bounded(m) for m in migrations))

        results = [r for r in outcomes if r is not None]
        if not apply_floor or self._floor is None:
            return results

        kept = [r for r in results if passes_market_cap_floor(r, self._floor)]
        logger.info(
            "enrichment_complete",
            enriched=len(results),
            kept=len(kept),
            below_floor=len(results) - len(kept),
            floor=str(self._floor),
        )
        return kept

    async def fill_market_cap(self, mint: str, price: PriceData) -> PriceData:
        """Estimate market cap from total supply when only the price is known."""
        if not price.price_usd or price.market_cap_usd:
            return price

        supply = await self._client.get_token_supply(mint)
        if not supply:
            return price

        market_cap = supply * price.price_usd
        logger.debug(
            "market_cap_from_supply",
            mint=mint,
            supply=str(supply),
            market_cap=str(market_cap),
        )
        return PriceData(price_usd=price.price_usd, market_cap_usd=market_cap)

    async def _enrich_one(self, migration: ParsedMigration) -> MigrationResult | None:
        try:
            metadata = await self._metadata.resolve(migration.mint)

            try:
                price = await self._price.get_price(migration.mint)
            except Exception as e:
                logger.warning(
                    "price_lookup_failed_skipping_price",
                    mint=migration.mint,
                    error=str(e),
                )
                price = PriceData()

            price = await self.fill_market_cap(migration.mint, price)
        except Exception as e:
            logger.warning(
                "enrichment_failed",
                signature=migration.signature,
                mint=migration.mint,
                error=str(e),
            )
            return None

        return MigrationResult(
            time=iso_from_unix(migration.block_time),
            signature=migration.signature,
            mint=migration.mint,
            symbol=metadata.symbol,
            name=metadata.name,
            market_cap_usd=price.market_cap_usd,
            price_usd=price.price_usd,
            destination=migration.destination,
        )
