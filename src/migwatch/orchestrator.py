"""Polling loop -- detect, enrich, rank and publish on a fixed interval.

Each cycle:
  1. DETECT: new migrations in the window (Detector)
  2. ENRICH: metadata, price, market cap; apply the floor (MigrationEnricher)
  3. RANK: sort by market cap, highest first
  4. PUBLISH: console table + JSON document for the dashboard

Cycles never overlap: each runs to completion under a lock before the
polling sleep starts. A failing cycle is logged and the next one runs
as scheduled.
"""

import asyncio
from pathlib import Path

import structlog
from rich.console import Console

from migwatch.config import DetectorSettings
from migwatch.logging import get_logger
from migwatch.migration.detector import Detector
from migwatch.migration.enricher import MigrationEnricher, sort_by_market_cap
from migwatch.models import MigrationOutput, MigrationResult, utc_now_iso
from migwatch.report import build_output, render_table, write_output, write_snapshot

logger = get_logger(__name__)


class MigrationWatcher:
    """Runs detection cycles and publishes their results.

    Args:
        settings: Detector settings (polling interval).
        detector: Migration detector owning the dedup state.
        enricher: Metadata/price enrichment driver.
        output_path: Where the latest published document is written.
        snapshot_path: Where full-window snapshot exports are written.
        console: Rich console for table output (default: stdout).
    """

    def __init__(
        self,
        settings: DetectorSettings,
        detector: Detector,
        enricher: MigrationEnricher,
        output_path: Path,
        snapshot_path: Path | None = None,
        console: Console | None = None,
    ) -> None:
        self._settings = settings
        self._detector = detector
        self._enricher = enricher
        self._output_path = Path(output_path)
        self._snapshot_path = Path(snapshot_path) if snapshot_path else None
        self._console = console or Console()
        self._cycle_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._running = False
        self._cycle_count = 0
        self._failed_cycles = 0
        self._last_run_at: str | None = None
        self._last_output: MigrationOutput | None = None

    @property
    def output_path(self) -> Path:
        return self._output_path

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_cycle(self, window_seconds: int) -> MigrationOutput | None:
        """Run one detect-enrich-publish cycle. Returns None when the cycle failed."""
        self._cycle_count += 1
        with structlog.contextvars.bound_contextvars(cycle=self._cycle_count):
            logger.info("cycle_started", window_seconds=window_seconds)
            try:
                detection = await self._detector.detect_migrations(window_seconds)
                results = await self._enricher.enrich(detection.migrations)
                results = sort_by_market_cap(results)
                output = build_output(results, window_seconds)
                render_table(results, self._console)
                write_output(self._output_path, output)
            except Exception as e:
                self._failed_cycles += 1
                logger.error("cycle_failed", error=str(e), exc_info=True)
                return None

            self._last_run_at = output.run_at
            self._last_output = output
            logger.info(
                "cycle_complete",
                detected=len(detection.migrations),
                published=len(results),
            )
            return output

    async def start(self, window_seconds: int, continuous: bool = True) -> None:
        """Run cycles until stop() is called (or once, when not continuous)."""
        self._running = True
        self._stop_event.clear()
        logger.info(
            "watcher_starting",
            window_seconds=window_seconds,
            continuous=continuous,
            polling_interval=self._settings.polling_interval_seconds,
        )
        try:
            while self._running:
                async with self._cycle_lock:
                    await self.run_cycle(window_seconds)
                if not continuous:
                    break
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=self._settings.polling_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            logger.info("watcher_stopped", cycles=self._cycle_count)

    async def stop(self) -> None:
        """Finish the current cycle, then stop."""
        logger.info("watcher_stopping")
        self._running = False
        self._stop_event.set()

    async def run_snapshot(self, window_hours: int) -> list[MigrationResult]:
        """Export every migration in the window, ignoring dedup state and the floor."""
        migrations = await self._detector.scan_window(window_hours * 3600)
        results = await self._enricher.enrich(migrations, apply_floor=False)
        results = sort_by_market_cap(results)
        if self._snapshot_path is not None:
            write_snapshot(self._snapshot_path, results, window_hours)
        return results

    def get_status(self) -> dict:
        return {
            "running": self._running,
            "cycles": self._cycle_count,
            "failed_cycles": self._failed_cycles,
            "last_run_at": self._last_run_at,
            "last_published": (
                len(self._last_output.migrations) if self._last_output else 0
            ),
            "history_size": len(self._detector.history),
            "checked_at": utc_now_iso(),
        }
