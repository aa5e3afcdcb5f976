"""Migration detector -- coordinates ledger client, dedup store and classifier.

One detection cycle:
  1. LOAD CURSOR: newest signature seen by the last non-empty cycle
  2. LIST: every signature in the time window, newer than the cursor
  3. FILTER: drop signatures already in history
  4. CLASSIFY: fetch + classify in sequential groups of concurrency_limit,
     concurrently within a group
  5. PERSIST: history and cursor, only after every group completed
  6. RETURN: accepted migrations and the new cursor

A listing error aborts the cycle before step 5, so persisted state is
untouched. Per-item failures never abort the batch.
"""

import asyncio
import time
from dataclasses import dataclass

from migwatch.chain.client import LedgerClient
from migwatch.chain.programs import MIGRATION_ACCOUNT
from migwatch.chain.types import SignatureInfo
from migwatch.config import DetectorSettings
from migwatch.logging import get_logger
from migwatch.migration.classifier import parse_migration_transaction
from migwatch.models import (
    CursorData,
    DetectionResult,
    ParsedMigration,
    iso_from_unix,
    utc_now_iso,
)
from migwatch.storage.cursor import CursorStore
from migwatch.storage.history import SignatureHistory

logger = get_logger(__name__)


@dataclass(frozen=True)
class _ItemOutcome:
    signature: str
    migration: ParsedMigration | None
    failed: bool


class Detector:
    """Detects migrations over a time window with idempotent dedup across runs.

    Owns the in-memory SignatureHistory for the process lifetime (single
    writer). History is loaded here, at construction.

    Per-item failure policy (``retry_failed_items``):
    - True (default): a signature whose fetch or classification raised, or
      whose transaction the node could not return yet, is left out of
      history and the cursor is not advanced that cycle, so the next cycle
      lists and retries it.
    - False: every new signature is marked processed and the cursor always
      advances; failed items are dropped for good.

    Args:
        client: Ledger node client.
        history: Processed-signature store.
        cursor_store: Pagination cursor store.
        settings: Detector settings (ignore list, concurrency, failure policy).
        address: Account whose signatures are scanned.
    """

    def __init__(
        self,
        client: LedgerClient,
        history: SignatureHistory,
        cursor_store: CursorStore,
        settings: DetectorSettings,
        address: str = MIGRATION_ACCOUNT,
    ) -> None:
        self._client = client
        self._history = history
        self._cursor_store = cursor_store
        self._settings = settings
        self._address = address
        self._history.load()

    @property
    def history(self) -> SignatureHistory:
        return self._history

    async def detect_migrations(self, window_seconds: int) -> DetectionResult:
        """Run one detection cycle over the last ``window_seconds`` seconds."""
        cursor = self._cursor_store.load()
        now = int(time.time())
        window_start = now - window_seconds

        logger.info(
            "detection_started",
            window_seconds=window_seconds,
            window_start=iso_from_unix(window_start),
            window_end=iso_from_unix(now),
            cursor=cursor.newest_signature,
        )

        signatures = await self._client.get_signatures_in_window(
            self._address,
            window_start,
            cursor.newest_signature,
        )
        new_signatures = [s for s in signatures if s.signature not in self._history]

        logger.info(
            "candidates_listed",
            candidates=len(signatures),
            new=len(new_signatures),
        )

        if not new_signatures:
            return DetectionResult(
                migrations=[],
                cursor=cursor,
                candidates=len(signatures),
            )

        outcomes = await self._process_signatures(new_signatures)
        migrations = [o.migration for o in outcomes if o.migration is not None]
        failed = [o.signature for o in outcomes if o.failed]

        retry_failed = self._settings.retry_failed_items and bool(failed)
        if retry_failed:
            failed_set = set(failed)
            processed = [
                s.signature for s in new_signatures if s.signature not in failed_set
            ]
        else:
            processed = [s.signature for s in new_signatures]

        self._history.commit(processed)

        if retry_failed:
            new_cursor = CursorData(
                newest_signature=cursor.newest_signature,
                newest_block_time=cursor.newest_block_time,
                last_run_at=utc_now_iso(),
            )
        else:
            newest = new_signatures[0]
            new_cursor = CursorData(
                newest_signature=newest.signature,
                newest_block_time=newest.block_time,
                last_run_at=utc_now_iso(),
            )
        self._cursor_store.save(new_cursor)

        logger.info(
            "detection_complete",
            migrations=len(migrations),
            processed=len(processed),
            failed=len(failed),
            cursor_advanced=not retry_failed,
            history_size=len(self._history),
        )

        return DetectionResult(
            migrations=migrations,
            cursor=new_cursor,
            candidates=len(signatures),
            new_signatures=len(new_signatures),
            failed_signatures=failed,
        )

    async def scan_window(self, window_seconds: int) -> list[ParsedMigration]:
        """Classify every signature in the window, ignoring cursor and history.

        Used for full snapshot exports. Persists nothing.
        """
        window_start = int(time.time()) - window_seconds
        signatures = await self._client.get_signatures_in_window(
            self._address, window_start
        )
        logger.info(
            "snapshot_scan_started",
            window_seconds=window_seconds,
            signatures=len(signatures),
        )
        outcomes = await self._process_signatures(signatures)
        return [o.migration for o in outcomes if o.migration is not None]

    # ──────────────────────────────────────────────
    # Batch processing
    # ──────────────────────────────────────────────

    async def _process_signatures(
        self, signatures: list[SignatureInfo]
    ) -> list[_ItemOutcome]:
        """Fetch and classify in groups; groups run one after another."""
        batch_size = max(1, self._settings.concurrency_limit)
        outcomes: list[_ItemOutcome] = []

        for start in range(0, len(signatures), batch_size):
            batch = signatures[start : start + batch_size]
            results = await asyncio.gather(*(self._process_one(s) for s in batch))
            outcomes.extend(results)
            logger.debug(
                "batch_processed",
                progress=f"{min(start + batch_size, len(signatures))}/{len(signatures)}",
            )

        return outcomes

    async def _process_one(self, info: SignatureInfo) -> _ItemOutcome:
        try:
            tx = await self._client.get_transaction(info.signature)
            if tx is None:
                logger.debug("transaction_not_available", signature=info.signature)
                return _ItemOutcome(info.signature, None, failed=True)
            migration = parse_migration_transaction(
                info.signature,
                info.block_time,
                tx,
                self._settings.ignore_mints,
            )
        except Exception as e:
            logger.warning(
                "transaction_processing_failed",
                signature=info.signature,
                error=str(e),
            )
            return _ItemOutcome(info.signature, None, failed=True)

        if migration is not None:
            logger.info(
                "migration_detected",
                signature=migration.signature,
                mint=migration.mint,
                destination=migration.destination,
            )
        return _ItemOutcome(info.signature, migration, failed=False)
