"""Tests for the GeckoTerminal price provider."""

import time
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from migwatch.config import PriceSettings
from migwatch.exceptions import PriceApiError
from migwatch.models import PriceData
from migwatch.price.geckoterminal import (
    API_KEY_HEADER,
    GeckoTerminalProvider,
    parse_token_price,
)

MINT = "MintAaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"


def _body(**attributes: object) -> dict:
    return {"data": {"id": f"solana_{MINT}", "type": "token", "attributes": attributes}}


def _mock_session(status: int, payload: object = None) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.get.return_value = context
    session.close = AsyncMock()
    return session


@pytest.fixture
def provider() -> GeckoTerminalProvider:
    return GeckoTerminalProvider(PriceSettings(max_retries=0))


class TestParseTokenPrice:
    def test_market_cap_primary(self) -> None:
        data = parse_token_price(
            _body(price_usd="0.00012", market_cap_usd="45000.5", fdv_usd="99000")
        )
        assert data == PriceData(price_usd=Decimal("0.00012"), market_cap_usd=Decimal("45000.5"))

    def test_fdv_fallback_when_market_cap_missing(self) -> None:
        data = parse_token_price(_body(price_usd="0.001", market_cap_usd=None, fdv_usd="31000"))
        assert data.market_cap_usd == Decimal("31000")

    def test_fdv_fallback_when_market_cap_unparseable(self) -> None:
        data = parse_token_price(_body(price_usd="0.001", market_cap_usd="n/a", fdv_usd="31000"))
        assert data.market_cap_usd == Decimal("31000")

    def test_unparseable_fields_are_none(self) -> None:
        assert parse_token_price(_body(price_usd="abc")) == PriceData()

    def test_unexpected_shape(self) -> None:
        assert parse_token_price({"errors": []}) == PriceData()
        assert parse_token_price([]) == PriceData()


class TestEndpointSelection:
    def test_public_tier(self, provider) -> None:
        assert provider.base_url == "https://api.geckoterminal.com/api/v2"
        assert provider.min_interval == 2.0
        assert provider.token_url(MINT) == (
            f"https://api.geckoterminal.com/api/v2/networks/solana/tokens/{MINT}"
        )

    def test_keyed_tier(self) -> None:
        provider = GeckoTerminalProvider(PriceSettings(api_key="k"))  # type: ignore[arg-type]
        assert provider.base_url == "https://pro-api.coingecko.com/api/v3/onchain"
        assert provider.min_interval == 0.2


class TestGetPrice:
    @pytest.mark.asyncio
    async def test_success(self, provider) -> None:
        provider._session = _mock_session(200, _body(price_usd="0.5", market_cap_usd="500000"))

        data = await provider.get_price(MINT)

        assert data == PriceData(price_usd=Decimal("0.5"), market_cap_usd=Decimal("500000"))
        url = provider._session.get.call_args.args[0]
        assert url.endswith(f"/networks/solana/tokens/{MINT}")
        assert API_KEY_HEADER not in provider._session.get.call_args.kwargs["headers"]

    @pytest.mark.asyncio
    async def test_api_key_header(self) -> None:
        provider = GeckoTerminalProvider(PriceSettings(api_key="secret"))  # type: ignore[arg-type]
        provider._session = _mock_session(200, _body(price_usd="1"))

        await provider.get_price(MINT)

        headers = provider._session.get.call_args.kwargs["headers"]
        assert headers[API_KEY_HEADER] == "secret"

    @pytest.mark.asyncio
    async def test_not_indexed_is_empty(self, provider) -> None:
        provider._session = _mock_session(404)
        assert await provider.get_price(MINT) == PriceData()

    @pytest.mark.asyncio
    async def test_server_error_raises_from_transport(self, provider) -> None:
        provider._session = _mock_session(500)
        with pytest.raises(PriceApiError, match="500"):
            await provider._get_json(provider.token_url(MINT))

    @pytest.mark.asyncio
    async def test_server_error_after_retries_is_empty(self) -> None:
        provider = GeckoTerminalProvider(PriceSettings(max_retries=2))
        provider._session = _mock_session(500)

        with patch("migwatch.retry.asyncio.sleep", new_callable=AsyncMock):
            data = await provider.get_price(MINT)

        assert data == PriceData()
        assert provider._session.get.call_count == 3

    @pytest.mark.asyncio
    async def test_rate_limit_waits_between_requests(self, provider) -> None:
        provider._session = _mock_session(200, _body(price_usd="1"))
        provider._last_request_time = time.monotonic()

        with patch("migwatch.price.geckoterminal.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await provider.get_price(MINT)

        sleep.assert_awaited_once()
        waited = sleep.await_args.args[0]
        assert 0 < waited <= provider.min_interval

    @pytest.mark.asyncio
    async def test_first_request_does_not_wait(self, provider) -> None:
        provider._session = _mock_session(200, _body(price_usd="1"))

        with patch("migwatch.price.geckoterminal.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await provider.get_price(MINT)

        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close(self, provider) -> None:
        session = _mock_session(200)
        provider._session = session
        await provider.close()
        session.close.assert_awaited_once()
