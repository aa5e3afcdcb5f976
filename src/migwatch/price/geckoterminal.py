"""GeckoTerminal token price provider.

One provider for both the public and the keyed API: with an API key it
talks to the pro endpoint and waits ``min_interval_with_key_seconds``
between requests, otherwise it uses the public endpoint and the wider
``min_interval_seconds`` (public tier allows 30 requests per minute).

Response shape: ``data.attributes.{price_usd, market_cap_usd, fdv_usd}``
as decimal strings. A 404 means the token is not indexed yet -- expected
for fresh migrations -- and yields an empty PriceData.
"""

import asyncio
import time
from typing import Any

import aiohttp

from migwatch.config import PriceSettings
from migwatch.exceptions import PriceApiError
from migwatch.logging import get_logger
from migwatch.models import PriceData, to_decimal
from migwatch.price.provider import PriceProvider
from migwatch.retry import with_retry

logger = get_logger(__name__)

API_KEY_HEADER = "x-cg-pro-api-key"


def parse_token_price(body: Any) -> PriceData:
    """Extract price and market cap from a token response body.

    market_cap_usd is primary; fdv_usd is used when market cap is absent
    or not a number. Unparseable fields become None.
    """
    data = body.get("data") if isinstance(body, dict) else None
    attrs = data.get("attributes") if isinstance(data, dict) else None
    if not isinstance(attrs, dict):
        return PriceData()

    price_usd = to_decimal(attrs.get("price_usd"))
    market_cap_usd = to_decimal(attrs.get("market_cap_usd"))
    if market_cap_usd is None:
        market_cap_usd = to_decimal(attrs.get("fdv_usd"))

    return PriceData(price_usd=price_usd, market_cap_usd=market_cap_usd)


class GeckoTerminalProvider(PriceProvider):
    """Rate-limited GeckoTerminal client.

    Args:
        settings: Endpoint URLs, API key, rate-limit intervals and retry count.
    """

    def __init__(self, settings: PriceSettings) -> None:
        self._settings = settings
        api_key = settings.api_key.get_secret_value()
        self._api_key = api_key or None
        if self._api_key:
            self._base_url = settings.pro_base_url.rstrip("/")
            self._min_interval = settings.min_interval_with_key_seconds
        else:
            self._base_url = settings.base_url.rstrip("/")
            self._min_interval = settings.min_interval_seconds
        self._last_request_time: float | None = None
        self._rate_lock = asyncio.Lock()
        self._session: aiohttp.ClientSession | None = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def base_url(self) -> str:
        return self._base_url

    def token_url(self, mint: str) -> str:
        return f"{self._base_url}/networks/{self._settings.network}/tokens/{mint}"

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def get_price(self, mint: str) -> PriceData:
        url = self.token_url(mint)
        await self._rate_limit()

        try:
            body = await with_retry(
                lambda: self._get_json(url),
                max_retries=self._settings.max_retries,
            )
        except Exception as e:
            logger.warning("price_fetch_failed", mint=mint, error=str(e))
            return PriceData()

        if body is None:
            logger.debug("price_not_found", mint=mint)
            return PriceData()

        return parse_token_price(body)

    async def _rate_limit(self) -> None:
        """Wait until min_interval has passed since the previous request."""
        async with self._rate_lock:
            if self._last_request_time is not None:
                elapsed = time.monotonic() - self._last_request_time
                if elapsed < self._min_interval:
                    await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()

    async def _get_json(self, url: str) -> dict | None:
        """GET ``url``. Returns None on 404, raises PriceApiError on other failures."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._settings.request_timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)

        headers = {"Accept": "application/json"}
        if self._api_key:
            headers[API_KEY_HEADER] = self._api_key

        async with self._session.get(url, headers=headers) as response:
            if response.status == 404:
                return None
            if response.status != 200:
                raise PriceApiError(
                    f"GeckoTerminal API error: {response.status}",
                    status=response.status,
                )
            body = await response.json(content_type=None)

        return body if isinstance(body, dict) else None
