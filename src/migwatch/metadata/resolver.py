"""Token metadata resolution for migrated mints.

Two tiers, first one yielding a name or symbol wins:
1. Token-2022 ``tokenMetadata`` extension embedded in the parsed mint account
   (pump.fun mints carry their metadata this way).
2. Metaplex Token Metadata account at the PDA
   ``[b"metadata", program_id, mint]`` under the Metaplex program, decoded
   from its fixed binary layout.

Unresolvable metadata is normal for fresh tokens and yields an all-None
TokenMetadata, never an exception.
"""

import struct
import time

from solders.pubkey import Pubkey

from migwatch.chain.client import LedgerClient
from migwatch.chain.programs import TOKEN_METADATA_PROGRAM
from migwatch.logging import get_logger
from migwatch.models import TokenMetadata

logger = get_logger(__name__)

METADATA_SEED = b"metadata"

# key (u8) + update authority (32) + mint (32)
_METAPLEX_HEADER_LEN = 1 + 32 + 32
_U32 = struct.Struct("<I")


def derive_metadata_address(mint: str, program_id: str = TOKEN_METADATA_PROGRAM) -> str:
    """Metaplex metadata PDA for ``mint``."""
    program = Pubkey.from_string(program_id)
    pda, _bump = Pubkey.find_program_address(
        [METADATA_SEED, bytes(program), bytes(Pubkey.from_string(mint))],
        program,
    )
    return str(pda)


def _clean(raw: bytes) -> str | None:
    text = raw.decode("utf-8", errors="replace").replace("\x00", "").strip()
    return text or None


def decode_metaplex_metadata(data: bytes) -> TokenMetadata | None:
    """Decode name, symbol and uri from a Metaplex metadata account.

    Layout: 1 byte key, 32 bytes update authority, 32 bytes mint, then three
    strings each prefixed by a u32 little-endian length. Fixed-width fields
    are NUL padded on chain. Returns None when the data is truncated.
    """
    offset = _METAPLEX_HEADER_LEN
    fields: list[str | None] = []
    try:
        for _ in range(3):
            (length,) = _U32.unpack_from(data, offset)
            offset += _U32.size
            end = offset + length
            if end > len(data):
                return None
            fields.append(_clean(data[offset:end]))
            offset = end
    except struct.error:
        return None

    name, symbol, uri = fields
    return TokenMetadata(name=name, symbol=symbol, uri=uri)


def parse_token2022_metadata(account: dict | None) -> TokenMetadata | None:
    """Extract the tokenMetadata extension from a jsonParsed mint account."""
    if not isinstance(account, dict):
        return None
    data = account.get("data")
    parsed = data.get("parsed") if isinstance(data, dict) else None
    if not isinstance(parsed, dict) or parsed.get("type") != "mint":
        return None

    info = parsed.get("info")
    extensions = info.get("extensions") if isinstance(info, dict) else None
    if not isinstance(extensions, list):
        return None

    for ext in extensions:
        if not isinstance(ext, dict) or ext.get("extension") != "tokenMetadata":
            continue
        state = ext.get("state")
        if not isinstance(state, dict):
            return None
        return TokenMetadata(
            name=_string_or_none(state.get("name")),
            symbol=_string_or_none(state.get("symbol")),
            uri=_string_or_none(state.get("uri")),
        )
    return None


def _string_or_none(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


class MetadataResolver:
    """Resolves TokenMetadata for a mint via the ledger client.

    Args:
        client: Ledger client used for account lookups.
        cache_ttl_seconds: Cache resolved metadata per mint for this long.
            0 disables caching.
    """

    def __init__(self, client: LedgerClient, cache_ttl_seconds: float = 0.0) -> None:
        self._client = client
        self._ttl = cache_ttl_seconds
        self._cache: dict[str, tuple[float, TokenMetadata]] = {}

    async def resolve(self, mint: str) -> TokenMetadata:
        cached = self._cache.get(mint)
        if cached is not None and time.monotonic() - cached[0] < self._ttl:
            return cached[1]

        metadata = await self._resolve_uncached(mint)
        if self._ttl > 0:
            self._cache[mint] = (time.monotonic(), metadata)
        return metadata

    async def _resolve_uncached(self, mint: str) -> TokenMetadata:
        token2022 = await self._fetch_token2022(mint)
        if token2022 is not None and not token2022.is_empty:
            return token2022

        metaplex = await self._fetch_metaplex(mint)
        if metaplex is not None and not metaplex.is_empty:
            return metaplex

        logger.debug("metadata_not_found", mint=mint)
        return TokenMetadata()

    async def _fetch_token2022(self, mint: str) -> TokenMetadata | None:
        try:
            account = await self._client.get_parsed_account(mint)
        except Exception as e:
            logger.warning("token2022_metadata_lookup_failed", mint=mint, error=str(e))
            return None
        return parse_token2022_metadata(account)

    async def _fetch_metaplex(self, mint: str) -> TokenMetadata | None:
        try:
            address = derive_metadata_address(mint)
            data = await self._client.get_account_data(address)
        except Exception as e:
            logger.warning("metaplex_metadata_lookup_failed", mint=mint, error=str(e))
            return None
        if not data:
            return None
        return decode_metaplex_metadata(data)
