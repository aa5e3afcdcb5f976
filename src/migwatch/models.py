"""Shared data models for the migration detector.

Monetary values (price, market cap) are Decimal throughout and only become
floats at the JSON publishing boundary.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: Any) -> Decimal | None:
    """Convert a JSON number or numeric string to Decimal; None when not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def iso_from_unix(timestamp: int | float) -> str:
    """Format unix seconds as ISO-8601 UTC with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    """Current time in the same ISO-8601 form as iso_from_unix."""
    return iso_from_unix(datetime.now(tz=timezone.utc).timestamp())


def _decimal_to_number(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


@dataclass(frozen=True)
class ParsedMigration:
    """A transaction the classifier accepted as a genuine migration."""

    signature: str
    block_time: int  # unix seconds
    mint: str
    destination: str | None  # "pumpswap", "raydium" or unknown


@dataclass(frozen=True)
class TokenMetadata:
    """Human-readable token identity. All fields None when unresolved."""

    name: str | None = None
    symbol: str | None = None
    uri: str | None = None

    @property
    def is_empty(self) -> bool:
        """True when neither a name nor a symbol is known."""
        return not self.name and not self.symbol


@dataclass(frozen=True)
class PriceData:
    """Price and market cap for a token. None means unknown, not zero."""

    price_usd: Decimal | None = None
    market_cap_usd: Decimal | None = None


@dataclass(frozen=True)
class MigrationResult:
    """Published record for one enriched migration."""

    time: str  # ISO-8601, derived from block time
    signature: str
    mint: str
    symbol: str | None
    name: str | None
    market_cap_usd: Decimal | None
    price_usd: Decimal | None
    destination: str | None

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "signature": self.signature,
            "mint": self.mint,
            "symbol": self.symbol,
            "name": self.name,
            "market_cap_usd": _decimal_to_number(self.market_cap_usd),
            "price_usd": _decimal_to_number(self.price_usd),
            "destination": self.destination,
        }


@dataclass
class MigrationOutput:
    """Top-level document consumed by the dashboard and report layer."""

    run_at: str
    window_seconds: int
    migrations: list[MigrationResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "run_at": self.run_at,
            "window_seconds": self.window_seconds,
            "migrations": [m.to_dict() for m in self.migrations],
        }


@dataclass(frozen=True)
class CursorData:
    """Newest signature seen by the last non-empty detection cycle."""

    newest_signature: str | None = None
    newest_block_time: int | None = None
    last_run_at: str | None = None  # ISO-8601

    def to_dict(self) -> dict:
        return {
            "newestSignature": self.newest_signature,
            "newestBlockTime": self.newest_block_time,
            "lastRunAt": self.last_run_at,
        }


@dataclass
class DetectionResult:
    """Outcome of one detection cycle."""

    migrations: list[ParsedMigration]
    cursor: CursorData
    candidates: int = 0  # signatures listed in the window
    new_signatures: int = 0  # candidates not yet in history
    failed_signatures: list[str] = field(default_factory=list)
