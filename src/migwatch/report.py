"""Publishing of enriched migrations: JSON documents and console table."""

from decimal import Decimal
from pathlib import Path

from rich.console import Console
from rich.table import Table

from migwatch.logging import get_logger
from migwatch.models import MigrationOutput, MigrationResult, utc_now_iso
from migwatch.storage.files import read_json, write_json_atomic

logger = get_logger(__name__)


def build_output(
    results: list[MigrationResult],
    window_seconds: int,
    run_at: str | None = None,
) -> MigrationOutput:
    return MigrationOutput(
        run_at=run_at or utc_now_iso(),
        window_seconds=window_seconds,
        migrations=list(results),
    )


def write_output(path: Path, output: MigrationOutput) -> None:
    """Replace the published document at ``path``."""
    write_json_atomic(Path(path), output.to_dict())
    logger.info("output_saved", path=str(path), migrations=len(output.migrations))


def empty_output_document() -> dict:
    return {"run_at": utc_now_iso(), "window_seconds": 0, "migrations": []}


def read_output(path: Path) -> dict:
    """Load the published document as plain JSON for the dashboard.

    A missing file yields an empty document. Unreadable files raise
    (OSError / ValueError) so the caller can report the failure.
    """
    path = Path(path)
    if not path.exists():
        return empty_output_document()
    return read_json(path)


def write_snapshot(
    path: Path,
    results: list[MigrationResult],
    window_hours: int,
    run_at: str | None = None,
) -> None:
    """Write the full-window export, which includes results below the market-cap floor."""
    document = {
        "run_at": run_at or utc_now_iso(),
        "window_hours": window_hours,
        "total_count": len(results),
        "data": [r.to_dict() for r in results],
    }
    write_json_atomic(Path(path), document)
    logger.info("snapshot_saved", path=str(path), total_count=len(results))


# ──────────────────────────────────────────────
# Console table
# ──────────────────────────────────────────────


def format_usd_compact(value: Decimal | None) -> str:
    """$1.50M / $25.00K / $950.00 style; N/A for unknown or zero."""
    if not value:
        return "N/A"
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"${value / 1_000:.2f}K"
    return f"${value:.2f}"


def format_price(value: Decimal | None) -> str:
    if not value:
        return "N/A"
    return f"${value:.6f}"


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def render_table(results: list[MigrationResult], console: Console | None = None) -> None:
    """Print migrations as a table, or a one-line notice when there are none."""
    console = console or Console()

    if not results:
        console.print("\nNo migrations found in the specified time window.\n")
        return

    table = Table(title="Pump.fun Migrations Detected", header_style="cyan")
    table.add_column("Time", width=22)
    table.add_column("Symbol", width=10)
    table.add_column("Name", width=20)
    table.add_column("Mint", width=15)
    table.add_column("Market Cap", justify="right", width=15)
    table.add_column("Price", justify="right", width=12)
    table.add_column("Destination", width=12)

    for r in results:
        table.add_row(
            r.time,
            r.symbol or "N/A",
            truncate(r.name or "N/A", 18),
            truncate(r.mint, 12),
            format_usd_compact(r.market_cap_usd),
            format_price(r.price_usd),
            r.destination or "unknown",
        )

    console.print(table)
    console.print(f"\nTotal: {len(results)} migration(s)\n")
