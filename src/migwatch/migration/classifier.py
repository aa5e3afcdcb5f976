"""Pure classification of pump.fun migration transactions.

Decides from a single ParsedTransaction whether it is a genuine bonding-curve
migration, which token it migrated and where the liquidity went. No I/O, no
clock: the same payload always gives the same answer.

Acceptance rules:
- the transaction succeeded (meta present, err is null)
- some log line contains "Instruction: Migrate"
- no log line contains "Bonding curve already migrated" (those are repeat
  swap attempts against a curve that already moved)
- the pump.fun program is among the account keys
"""

from collections.abc import Collection, Sequence
from decimal import Decimal

from migwatch.chain.programs import DESTINATION_PROGRAMS, PUMPFUN_PROGRAM
from migwatch.chain.types import ParsedTransaction, TokenBalance
from migwatch.models import ParsedMigration

MIGRATE_LOG_MARKER = "Instruction: Migrate"
ALREADY_MIGRATED_LOG_MARKER = "Bonding curve already migrated"


def is_migration_transaction(tx: ParsedTransaction) -> bool:
    """Return True when the transaction passes every acceptance rule."""
    if not tx.succeeded:
        return False

    if not any(MIGRATE_LOG_MARKER in line for line in tx.log_messages):
        return False

    if any(ALREADY_MIGRATED_LOG_MARKER in line for line in tx.log_messages):
        return False

    return PUMPFUN_PROGRAM in tx.account_keys


def _total_ui_amount(mint: str, balances: Sequence[TokenBalance]) -> Decimal:
    return sum(
        (b.ui_amount or Decimal("0") for b in balances if b.mint == mint),
        Decimal("0"),
    )


def balance_change(mint: str, tx: ParsedTransaction) -> Decimal:
    """Absolute change of the summed UI balance of ``mint`` between pre and post snapshots."""
    pre_total = _total_ui_amount(mint, tx.pre_token_balances)
    post_total = _total_ui_amount(mint, tx.post_token_balances)
    return abs(post_total - pre_total)


def extract_mint(tx: ParsedTransaction, ignore_mints: Collection[str]) -> str | None:
    """Identify the migrated token's mint.

    Candidates are the distinct mints of the pre then post balance snapshots
    in first-seen order, minus ``ignore_mints``. With several candidates the
    one with the largest balance change wins; a later candidate must be
    strictly greater to replace the incumbent, and the incumbent starts as
    "none at change 0", so all-zero changes select nothing.
    """
    ignored = set(ignore_mints)
    candidates = list(
        dict.fromkeys(
            b.mint
            for b in (*tx.pre_token_balances, *tx.post_token_balances)
            if b.mint is not None and b.mint not in ignored
        )
    )

    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    best_mint: str | None = None
    max_change = Decimal("0")
    for mint in candidates:
        change = balance_change(mint, tx)
        if change > max_change:
            max_change = change
            best_mint = mint
    return best_mint


def detect_destination(tx: ParsedTransaction) -> str | None:
    """Venue tag of the first known destination program found in the account keys."""
    account_keys = set(tx.account_keys)
    for venue, programs in DESTINATION_PROGRAMS:
        if any(program in account_keys for program in programs):
            return venue
    return None


def parse_migration_transaction(
    signature: str,
    block_time: int,
    tx: ParsedTransaction,
    ignore_mints: Collection[str],
) -> ParsedMigration | None:
    """Classify one transaction. Returns None when it is not a usable migration."""
    if not is_migration_transaction(tx):
        return None

    mint = extract_mint(tx, ignore_mints)
    if mint is None:
        return None

    return ParsedMigration(
        signature=signature,
        block_time=block_time,
        mint=mint,
        destination=detect_destination(tx),
    )
