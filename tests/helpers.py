"""RPC payload builders shared by the test modules."""

from typing import Any

from migwatch.chain.programs import (
    PUMPFUN_PROGRAM,
    PUMPSWAP_AMM_PROGRAM,
    WSOL_MINT,
)
from migwatch.chain.types import ParsedTransaction

MINT_A = "MintAaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
MINT_B = "MintBbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"


def token_balance(mint: str, amount: float | str | None, index: int = 0) -> dict:
    """A jsonParsed pre/post token balance entry."""
    return {
        "accountIndex": index,
        "mint": mint,
        "owner": "Owner111111111111111111111111111111111111111",
        "uiTokenAmount": {"uiAmount": amount},
    }


def migration_payload(
    *,
    logs: list[str] | None = None,
    account_keys: list[str] | None = None,
    pre: list[dict] | None = None,
    post: list[dict] | None = None,
    err: Any = None,
    meta: bool = True,
    block_time: int = 1_700_000_000,
) -> dict:
    """A getTransaction (jsonParsed) result shaped like a pump.fun migration of MINT_A."""
    if logs is None:
        logs = [
            f"Program {PUMPFUN_PROGRAM} invoke [1]",
            "Program log: Instruction: Migrate",
            f"Program {PUMPFUN_PROGRAM} success",
        ]
    if account_keys is None:
        account_keys = [PUMPFUN_PROGRAM, PUMPSWAP_AMM_PROGRAM]
    if pre is None:
        pre = [token_balance(MINT_A, 1000, 1), token_balance(WSOL_MINT, 85, 2)]
    if post is None:
        post = [token_balance(MINT_A, 700, 1), token_balance(WSOL_MINT, 0, 2)]

    payload: dict = {
        "slot": 250_000_000,
        "blockTime": block_time,
        "transaction": {
            "signatures": ["sig"],
            "message": {
                "accountKeys": [
                    {"pubkey": key, "signer": False, "source": "transaction"}
                    for key in account_keys
                ],
            },
        },
    }
    if meta:
        payload["meta"] = {
            "err": err,
            "logMessages": logs,
            "preTokenBalances": pre,
            "postTokenBalances": post,
        }
    return payload


def migration_tx(**kwargs: Any) -> ParsedTransaction:
    return ParsedTransaction.from_rpc(migration_payload(**kwargs))


def signature_entry(signature: str, block_time: int | None) -> dict:
    """A getSignaturesForAddress entry."""
    return {
        "signature": signature,
        "slot": 1,
        "err": None,
        "blockTime": block_time,
        "confirmationStatus": "finalized",
    }
