"""Solana JSON-RPC client over aiohttp.

Implements LedgerClient with raw JSON-RPC 2.0 POST requests. Every remote
call goes through with_retry; HTTP failures raise RpcError with the status
in the message so rate-limit responses get the longer backoff.
"""

from __future__ import annotations

import base64
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import aiohttp

from migwatch.chain.client import LedgerClient
from migwatch.chain.types import ParsedTransaction, SignatureInfo
from migwatch.exceptions import RpcError
from migwatch.logging import get_logger
from migwatch.models import to_decimal
from migwatch.retry import with_retry

if TYPE_CHECKING:
    from migwatch.config import RpcSettings

logger = get_logger(__name__)


class SolanaRpcClient(LedgerClient):
    """Concrete ledger client for a Solana JSON-RPC endpoint.

    Args:
        settings: RPC endpoint, commitment and retry parameters.
        page_size: Maximum signatures requested per getSignaturesForAddress page.
    """

    def __init__(self, settings: RpcSettings, page_size: int = 1000) -> None:
        self._settings = settings
        self._page_size = page_size
        self._session: aiohttp.ClientSession | None = None
        self._request_id = 0

    @property
    def url(self) -> str:
        return self._settings.url

    async def connect(self) -> None:
        """Create the HTTP session."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._settings.request_timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            logger.info("rpc_session_opened", url=self._settings.url[:50])

    async def close(self) -> None:
        """Close the HTTP session. Must be called to avoid unclosed-session warnings."""
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.info("rpc_session_closed")

    # ──────────────────────────────────────────────
    # Transport
    # ──────────────────────────────────────────────

    async def _rpc(self, method: str, params: list) -> Any:
        """Issue a single JSON-RPC request and return its ``result`` member."""
        if self._session is None:
            await self.connect()
        assert self._session is not None

        self._request_id += 1
        body = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        async with self._session.post(self._settings.url, json=body) as response:
            if response.status != 200:
                raise RpcError(
                    f"HTTP {response.status} {response.reason or ''} from {method}".strip(),
                    status=response.status,
                )
            payload = await response.json(content_type=None)

        if not isinstance(payload, dict):
            raise RpcError(f"Malformed JSON-RPC response from {method}")

        error = payload.get("error")
        if error is not None:
            error_obj = error if isinstance(error, dict) else {}
            code = error_obj.get("code")
            message = error_obj.get("message", str(error))
            raise RpcError(f"RPC error {code} from {method}: {message}")

        return payload.get("result")

    async def _call(self, method: str, params: list) -> Any:
        """JSON-RPC request wrapped in the retry primitive."""
        return await with_retry(
            lambda: self._rpc(method, params),
            max_retries=self._settings.max_retries,
            base_delay=self._settings.retry_base_delay,
            max_delay=self._settings.retry_max_delay,
        )

    # ──────────────────────────────────────────────
    # Signatures
    # ──────────────────────────────────────────────

    async def _fetch_signature_page(
        self,
        address: str,
        before: str | None,
        until: str | None,
        limit: int,
    ) -> list[dict]:
        """Raw getSignaturesForAddress page, unfiltered, newest first."""
        options: dict[str, Any] = {
            "limit": limit,
            "commitment": self._settings.commitment,
        }
        if before is not None:
            options["before"] = before
        if until is not None:
            options["until"] = until

        result = await self._call("getSignaturesForAddress", [address, options])
        if not isinstance(result, list):
            return []
        return [entry for entry in result if isinstance(entry, dict)]

    async def get_signatures_for_address(
        self,
        address: str,
        before: str | None = None,
        until: str | None = None,
        limit: int | None = None,
    ) -> list[SignatureInfo]:
        page = await self._fetch_signature_page(
            address, before, until, limit or self._page_size
        )
        signatures = []
        for entry in page:
            info = SignatureInfo.from_rpc(entry)
            if info is not None:
                signatures.append(info)
        return signatures

    async def get_signatures_in_window(
        self,
        address: str,
        window_start: int,
        newest_processed: str | None = None,
    ) -> list[SignatureInfo]:
        """Walk BACKWARD from the newest signature until the window start.

        Each page uses ``before`` = last signature of the previous raw page
        and ``until`` = newest_processed, so signatures already covered by
        the cursor are never fetched. Stops when a page comes back short,
        when a signature older than window_start is reached, or when a page
        makes no progress. Page-size comparison uses the raw page, so
        entries without a block time do not end pagination early.
        """
        collected: list[SignatureInfo] = []
        before: str | None = None
        pages = 0

        while True:
            page = await self._fetch_signature_page(
                address, before, newest_processed, self._page_size
            )
            pages += 1
            if not page:
                break

            window_exhausted = False
            for entry in page:
                info = SignatureInfo.from_rpc(entry)
                if info is None:
                    continue
                if info.block_time < window_start:
                    window_exhausted = True
                    break
                collected.append(info)

            if window_exhausted or len(page) < self._page_size:
                break

            last_signature = page[-1].get("signature")
            if not isinstance(last_signature, str) or last_signature == before:
                break  # No progress guard -- avoid infinite loop
            before = last_signature

        logger.debug(
            "signature_window_fetched",
            address=address,
            pages=pages,
            signatures=len(collected),
        )
        return collected

    # ──────────────────────────────────────────────
    # Transactions and accounts
    # ──────────────────────────────────────────────

    async def get_transaction(self, signature: str) -> ParsedTransaction | None:
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "maxSupportedTransactionVersion": 0,
                    "commitment": self._settings.commitment,
                },
            ],
        )
        if result is None:
            return None
        return ParsedTransaction.from_rpc(result)

    async def get_token_supply(self, mint: str) -> Decimal | None:
        try:
            result = await self._call("getTokenSupply", [mint])
        except Exception as e:
            logger.warning("token_supply_unavailable", mint=mint, error=str(e))
            return None

        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, dict):
            return None
        supply = to_decimal(value.get("uiAmountString"))
        if supply is None:
            supply = to_decimal(value.get("uiAmount"))
        return supply

    async def get_parsed_account(self, address: str) -> dict | None:
        result = await self._call(
            "getAccountInfo",
            [address, {"encoding": "jsonParsed", "commitment": self._settings.commitment}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        return value if isinstance(value, dict) else None

    async def get_account_data(self, address: str) -> bytes | None:
        result = await self._call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": self._settings.commitment}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, dict):
            return None
        data = value.get("data")
        # base64 encoding returns [payload, "base64"]
        if not isinstance(data, list) or not data or not isinstance(data[0], str):
            return None
        return base64.b64decode(data[0])
