"""Pagination cursor: newest signature seen by the last non-empty cycle."""

from pathlib import Path

from migwatch.logging import get_logger
from migwatch.models import CursorData, to_decimal
from migwatch.storage.files import read_json, write_json_atomic

logger = get_logger(__name__)


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


class CursorStore:
    """Loads and saves CursorData as ``{newestSignature, newestBlockTime, lastRunAt}``.

    Missing, unreadable or malformed files all yield an empty cursor.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> CursorData:
        if not self._path.exists():
            return CursorData()

        try:
            data = read_json(self._path)
        except (OSError, ValueError) as e:
            logger.warning(
                "cursor_load_failed_starting_fresh",
                path=str(self._path),
                error=str(e),
            )
            return CursorData()

        if not isinstance(data, dict):
            logger.warning("cursor_malformed_starting_fresh", path=str(self._path))
            return CursorData()

        block_time = to_decimal(data.get("newestBlockTime"))
        return CursorData(
            newest_signature=_optional_str(data.get("newestSignature")),
            newest_block_time=int(block_time) if block_time is not None else None,
            last_run_at=_optional_str(data.get("lastRunAt")),
        )

    def save(self, cursor: CursorData) -> None:
        write_json_atomic(self._path, cursor.to_dict())
