"""Ledger client layer -- Solana JSON-RPC integration via aiohttp."""

from migwatch.chain.client import LedgerClient
from migwatch.chain.solana_client import SolanaRpcClient
from migwatch.chain.types import ParsedTransaction, SignatureInfo, TokenBalance

__all__ = [
    "LedgerClient",
    "ParsedTransaction",
    "SignatureInfo",
    "SolanaRpcClient",
    "TokenBalance",
]
