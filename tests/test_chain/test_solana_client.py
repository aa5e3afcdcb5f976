"""Tests for SolanaRpcClient: transport errors, pagination and typed results."""

import base64
import time
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from helpers import migration_payload, signature_entry

from migwatch.chain.solana_client import SolanaRpcClient
from migwatch.config import RpcSettings
from migwatch.exceptions import RpcError

ADDRESS = "39azUYFWPz3VHgKCf3VChUwbpURdCHRxjWVowf5jUJjg"


@pytest.fixture
def rpc_settings() -> RpcSettings:
    return RpcSettings(url="https://rpc.test.invalid", max_retries=0)


@pytest.fixture
def client(rpc_settings) -> SolanaRpcClient:
    return SolanaRpcClient(rpc_settings, page_size=3)


def _mock_session(status: int = 200, payload: object = None, reason: str = "OK") -> MagicMock:
    """aiohttp-like session whose post() yields a single canned response."""
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.json = AsyncMock(return_value=payload)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.post.return_value = context
    session.close = AsyncMock()
    return session


class TestTransport:
    @pytest.mark.asyncio
    async def test_returns_result_member(self, client) -> None:
        client._session = _mock_session(payload={"jsonrpc": "2.0", "id": 1, "result": [1, 2]})
        assert await client._rpc("getSlot", []) == [1, 2]

        body = client._session.post.call_args.kwargs["json"]
        assert body["method"] == "getSlot"
        assert body["jsonrpc"] == "2.0"

    @pytest.mark.asyncio
    async def test_http_error_carries_status(self, client) -> None:
        client._session = _mock_session(status=429, reason="Too Many Requests")
        with pytest.raises(RpcError) as exc_info:
            await client._rpc("getTransaction", [])
        assert "429" in str(exc_info.value)
        assert exc_info.value.status == 429

    @pytest.mark.asyncio
    async def test_json_rpc_error(self, client) -> None:
        client._session = _mock_session(
            payload={"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "busy"}}
        )
        with pytest.raises(RpcError, match="-32005"):
            await client._rpc("getTransaction", [])

    @pytest.mark.asyncio
    async def test_close_releases_session(self, client) -> None:
        session = _mock_session()
        client._session = session
        await client.close()
        session.close.assert_awaited_once()
        assert client._session is None


class TestSignatureWindow:
    @pytest.mark.asyncio
    async def test_short_page_makes_one_request(self, client) -> None:
        now = int(time.time())
        page = [signature_entry("s1", now), signature_entry("s2", now - 10)]
        with patch.object(client, "_fetch_signature_page", AsyncMock(return_value=page)) as fetch:
            result = await client.get_signatures_in_window(ADDRESS, now - 300)

        assert [s.signature for s in result] == ["s1", "s2"]
        assert fetch.await_count == 1

    @pytest.mark.asyncio
    async def test_paginates_until_window_start(self, client) -> None:
        now = int(time.time())
        window_start = now - 300
        pages = [
            [signature_entry(f"s{i}", now - i) for i in range(1, 4)],
            [signature_entry(f"s{i}", now - i) for i in range(4, 7)],
            [
                signature_entry("s7", now - 7),
                signature_entry("old1", window_start - 1),
                signature_entry("old2", window_start - 2),
            ],
        ]
        with patch.object(client, "_fetch_signature_page", AsyncMock(side_effect=pages)) as fetch:
            result = await client.get_signatures_in_window(ADDRESS, window_start)

        assert fetch.await_count == 3
        assert [s.signature for s in result] == [f"s{i}" for i in range(1, 8)]
        # before = last signature of the previous page
        befores = [c.args[1] for c in fetch.await_args_list]
        assert befores == [None, "s3", "s6"]

    @pytest.mark.asyncio
    async def test_until_is_newest_processed(self, client) -> None:
        now = int(time.time())
        fetch = AsyncMock(return_value=[signature_entry("s1", now)])
        with patch.object(client, "_fetch_signature_page", fetch):
            await client.get_signatures_in_window(ADDRESS, now - 300, "cursor-sig")
        assert fetch.await_args.args[2] == "cursor-sig"

    @pytest.mark.asyncio
    async def test_entries_without_block_time_do_not_end_pagination(self, client) -> None:
        now = int(time.time())
        pages = [
            [signature_entry("s1", now), signature_entry("s2", None), signature_entry("s3", now)],
            [signature_entry("s4", now)],
        ]
        with patch.object(client, "_fetch_signature_page", AsyncMock(side_effect=pages)) as fetch:
            result = await client.get_signatures_in_window(ADDRESS, now - 300)

        assert fetch.await_count == 2
        assert [s.signature for s in result] == ["s1", "s3", "s4"]

    @pytest.mark.asyncio
    async def test_no_progress_stops(self, client) -> None:
        now = int(time.time())
        page = [signature_entry(f"s{i}", now) for i in range(3)]
        with patch.object(client, "_fetch_signature_page", AsyncMock(return_value=page)) as fetch:
            await client.get_signatures_in_window(ADDRESS, now - 300)
        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_page(self, client) -> None:
        with patch.object(client, "_fetch_signature_page", AsyncMock(return_value=[])):
            assert await client.get_signatures_in_window(ADDRESS, 0) == []


class TestTypedCalls:
    @pytest.mark.asyncio
    async def test_get_transaction(self, client) -> None:
        with patch.object(client, "_call", AsyncMock(return_value=migration_payload())) as call:
            tx = await client.get_transaction("sig1")
        assert tx is not None and tx.succeeded
        method, params = call.await_args.args
        assert method == "getTransaction"
        assert params[1]["encoding"] == "jsonParsed"
        assert params[1]["maxSupportedTransactionVersion"] == 0

    @pytest.mark.asyncio
    async def test_get_transaction_not_available(self, client) -> None:
        with patch.object(client, "_call", AsyncMock(return_value=None)):
            assert await client.get_transaction("sig1") is None

    @pytest.mark.asyncio
    async def test_token_supply(self, client) -> None:
        result = {"value": {"amount": "1000000000", "decimals": 6, "uiAmountString": "1000"}}
        with patch.object(client, "_call", AsyncMock(return_value=result)):
            assert await client.get_token_supply("mint") == Decimal("1000")

    @pytest.mark.asyncio
    async def test_token_supply_failure_is_none(self, client) -> None:
        with patch.object(client, "_call", AsyncMock(side_effect=RpcError("HTTP 500"))):
            assert await client.get_token_supply("mint") is None

    @pytest.mark.asyncio
    async def test_account_data_base64(self, client) -> None:
        raw = b"\x04metadata-bytes"
        result = {"value": {"data": [base64.b64encode(raw).decode(), "base64"]}}
        with patch.object(client, "_call", AsyncMock(return_value=result)):
            assert await client.get_account_data("addr") == raw

    @pytest.mark.asyncio
    async def test_missing_account(self, client) -> None:
        with patch.object(client, "_call", AsyncMock(return_value={"value": None})):
            assert await client.get_account_data("addr") is None
            assert await client.get_parsed_account("addr") is None


class TestSignaturePage:
    @pytest.mark.asyncio
    async def test_single_page_drops_entries_without_block_time(self, client) -> None:
        page = [signature_entry("s1", 100), signature_entry("s2", None)]
        with patch.object(client, "_call", AsyncMock(return_value=page)) as call:
            result = await client.get_signatures_for_address(ADDRESS, before="b", limit=2)

        assert [s.signature for s in result] == ["s1"]
        method, params = call.await_args.args
        assert method == "getSignaturesForAddress"
        assert params[1]["before"] == "b"
        assert params[1]["limit"] == 2
        assert "until" not in params[1]
