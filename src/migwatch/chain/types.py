"""Typed views over Solana JSON-RPC payloads.

Every constructor here tolerates missing or malformed fields: an absent
value becomes None (or an empty tuple), never a KeyError. Callers work
with these structures instead of raw response dicts.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from migwatch.models import to_decimal


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


@dataclass(frozen=True)
class SignatureInfo:
    """One entry of a getSignaturesForAddress response with a known block time."""

    signature: str
    block_time: int  # unix seconds
    slot: int | None = None
    err: Any = None
    confirmation_status: str | None = None

    @classmethod
    def from_rpc(cls, entry: Any) -> "SignatureInfo | None":
        """Build from a raw RPC entry. Returns None when signature or blockTime is missing."""
        data = _as_dict(entry)
        signature = data.get("signature")
        block_time = _as_int(data.get("blockTime"))
        if not isinstance(signature, str) or not signature or block_time is None:
            return None
        return cls(
            signature=signature,
            block_time=block_time,
            slot=_as_int(data.get("slot")),
            err=data.get("err"),
            confirmation_status=data.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class TokenBalance:
    """A pre- or post-transaction SPL token balance snapshot entry."""

    account_index: int | None
    mint: str | None
    owner: str | None
    ui_amount: Decimal | None

    @classmethod
    def from_rpc(cls, entry: Any) -> "TokenBalance":
        data = _as_dict(entry)
        mint = data.get("mint")
        owner = data.get("owner")
        ui_token_amount = _as_dict(data.get("uiTokenAmount"))
        return cls(
            account_index=_as_int(data.get("accountIndex")),
            mint=mint if isinstance(mint, str) and mint else None,
            owner=owner if isinstance(owner, str) else None,
            ui_amount=to_decimal(ui_token_amount.get("uiAmount")),
        )


def _account_key(entry: Any) -> str | None:
    # jsonParsed returns {"pubkey": ..., "signer": ..., "source": ...}; legacy returns bare strings
    if isinstance(entry, str):
        return entry
    pubkey = _as_dict(entry).get("pubkey")
    return pubkey if isinstance(pubkey, str) else None


@dataclass(frozen=True)
class ParsedTransaction:
    """The fields of a jsonParsed getTransaction result the classifier reads."""

    slot: int | None
    block_time: int | None
    has_meta: bool
    err: Any
    log_messages: tuple[str, ...] = ()
    account_keys: tuple[str, ...] = ()
    pre_token_balances: tuple[TokenBalance, ...] = ()
    post_token_balances: tuple[TokenBalance, ...] = ()
    signatures: tuple[str, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        """True only when the node reported metadata and no execution error."""
        return self.has_meta and self.err is None

    @classmethod
    def from_rpc(cls, payload: Any) -> "ParsedTransaction":
        data = _as_dict(payload)
        raw_meta = data.get("meta")
        meta = _as_dict(raw_meta)
        transaction = _as_dict(data.get("transaction"))
        message = _as_dict(transaction.get("message"))

        account_keys = tuple(
            key
            for key in (_account_key(k) for k in _as_list(message.get("accountKeys")))
            if key is not None
        )

        return cls(
            slot=_as_int(data.get("slot")),
            block_time=_as_int(data.get("blockTime")),
            has_meta=isinstance(raw_meta, dict),
            err=meta.get("err"),
            log_messages=tuple(
                line for line in _as_list(meta.get("logMessages")) if isinstance(line, str)
            ),
            account_keys=account_keys,
            pre_token_balances=tuple(
                TokenBalance.from_rpc(b) for b in _as_list(meta.get("preTokenBalances"))
            ),
            post_token_balances=tuple(
                TokenBalance.from_rpc(b) for b in _as_list(meta.get("postTokenBalances"))
            ),
            signatures=tuple(
                s for s in _as_list(transaction.get("signatures")) if isinstance(s, str)
            ),
        )
