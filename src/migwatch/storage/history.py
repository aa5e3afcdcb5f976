"""Bounded, insertion-ordered history of processed transaction signatures.

Authoritative record of "already processed": the cursor only narrows the
listing range, it cannot detect out-of-order or backfilled signatures.

Single-writer precondition: exactly one process owns a history file. The
read-modify-rewrite cycle is not safe for concurrent writers and no file
locking is attempted.
"""

from collections.abc import Iterable
from pathlib import Path

from migwatch.logging import get_logger
from migwatch.storage.files import read_json, write_json_atomic

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 10_000


class SignatureHistory:
    """Ordered set of processed signatures persisted as ``{"processedSignatures": [...]}``.

    Backed by a dict so membership is O(1) and insertion order is kept for
    truncation (oldest dropped first). Re-adding a known signature does not
    move it.

    Usage:
        history = SignatureHistory(Path("data/history.json"))
        history.load()
        if sig not in history:
            ...
        history.commit([sig])
    """

    def __init__(self, path: Path, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._path = Path(path)
        self._limit = limit
        self._signatures: dict[str, None] = {}

    @property
    def path(self) -> Path:
        return self._path

    @property
    def limit(self) -> int:
        return self._limit

    def __contains__(self, signature: object) -> bool:
        return signature in self._signatures

    def __len__(self) -> int:
        return len(self._signatures)

    def contains(self, signature: str) -> bool:
        return signature in self._signatures

    def add_many(self, signatures: Iterable[str]) -> int:
        """Insert signatures, ignoring ones already present. Returns how many were new."""
        added = 0
        for signature in signatures:
            if signature not in self._signatures:
                self._signatures[signature] = None
                added += 1
        return added

    def signatures(self) -> list[str]:
        """All signatures, oldest first."""
        return list(self._signatures)

    def load(self) -> None:
        """Replace in-memory state with the persisted file.

        A missing file means an empty history. An unreadable or malformed
        file is logged and also treated as empty -- never fatal.
        """
        self._signatures = {}
        if not self._path.exists():
            return

        try:
            data = read_json(self._path)
        except (OSError, ValueError) as e:
            logger.warning(
                "history_load_failed_starting_fresh",
                path=str(self._path),
                error=str(e),
            )
            return

        raw = data.get("processedSignatures") if isinstance(data, dict) else None
        if not isinstance(raw, list):
            logger.warning("history_malformed_starting_fresh", path=str(self._path))
            return

        self.add_many(s for s in raw if isinstance(s, str))
        self._truncate()
        logger.debug("history_loaded", path=str(self._path), size=len(self))

    def save(self) -> None:
        """Truncate to the most recent ``limit`` entries and rewrite the file wholesale."""
        self._truncate()
        write_json_atomic(self._path, {"processedSignatures": list(self._signatures)})

    def commit(self, signatures: Iterable[str]) -> int:
        """Add signatures and persist them; memory changes only once the write succeeded.

        Returns how many signatures were new.

        Raises:
            OSError: The history file could not be written. In-memory state
                is left as it was before the call.
        """
        candidate = dict(self._signatures)
        added = 0
        for signature in signatures:
            if signature not in candidate:
                candidate[signature] = None
                added += 1
        candidate = self._truncated(candidate)
        write_json_atomic(self._path, {"processedSignatures": list(candidate)})
        self._signatures = candidate
        return added

    def _truncate(self) -> None:
        self._signatures = self._truncated(self._signatures)

    def _truncated(self, signatures: dict[str, None]) -> dict[str, None]:
        overflow = len(signatures) - self._limit
        if overflow <= 0:
            return signatures
        keep = list(signatures)[overflow:]
        logger.debug("history_truncated", dropped=overflow, size=len(keep))
        return dict.fromkeys(keep)
