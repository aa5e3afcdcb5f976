"""Entry point for the pump.fun migration watcher.

Wires all components together, optionally embeds the FastAPI dashboard,
and starts the watcher. In continuous mode with the dashboard enabled
(default), the watcher and dashboard share a single asyncio event loop via
uvicorn's programmatic API and FastAPI's lifespan context manager.

Modes:
- continuous (default): one cycle every polling interval until SIGINT/SIGTERM
- --once: a single cycle, then exit
- --snapshot: export every migration of the last snapshot_window_hours to
  complete_data.json, ignoring dedup state and the market-cap floor

Component wiring order (in _build_components):
1. SolanaRpcClient (ledger node)
2. SignatureHistory + CursorStore (persisted dedup state)
3. Detector
4. MetadataResolver + price provider (GeckoTerminal, or none when PRICE_ENABLED=false)
5. MigrationEnricher
6. MigrationWatcher
"""

import argparse
import asyncio
import signal
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError

from migwatch.chain.solana_client import SolanaRpcClient
from migwatch.config import AppSettings
from migwatch.exceptions import ConfigurationError
from migwatch.logging import get_logger, setup_logging
from migwatch.metadata.resolver import MetadataResolver
from migwatch.migration.detector import Detector
from migwatch.migration.enricher import MigrationEnricher
from migwatch.orchestrator import MigrationWatcher
from migwatch.price.geckoterminal import GeckoTerminalProvider
from migwatch.price.provider import NullPriceProvider, PriceProvider
from migwatch.storage.cursor import CursorStore
from migwatch.storage.history import SignatureHistory

HISTORY_FILE = "history.json"
CURSOR_FILE = "cursor.json"
OUTPUT_FILE = "migrations_latest.json"
SNAPSHOT_FILE = "complete_data.json"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="migwatch",
        description="Detect pump.fun migrations on Solana and rank them by market cap.",
    )
    parser.add_argument(
        "--window",
        default=None,
        help="Time window preset: 5m, 30m, 1h/60m, 3h or 6h (default: 5m)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        help="Run a single detection cycle and exit",
    )
    mode.add_argument(
        "--snapshot",
        action="store_true",
        help="Export all migrations in the snapshot window and exit",
    )
    return parser.parse_args(argv)


def resolve_window(name: str | None, settings: AppSettings) -> int:
    """Map a window preset name to seconds.

    Raises:
        ConfigurationError: Unknown preset name.
    """
    presets = settings.detector.window_presets
    name = name or settings.detector.default_window
    if name not in presets:
        raise ConfigurationError(
            f"Invalid window '{name}'. Choose from: {', '.join(presets)}"
        )
    return presets[name]


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all watcher components from settings.

    Note: Does NOT open any network sessions -- that happens in the
    lifespan (dashboard mode) or run() (non-dashboard mode).

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.

    Raises:
        ConfigurationError: No RPC URL configured.
    """
    if not settings.rpc.url:
        raise ConfigurationError(
            "SOLANA_RPC_URL is not set. Configure it in the environment, .env or config.json."
        )

    detector_settings = settings.detector
    data_dir = Path(detector_settings.data_dir)

    client = SolanaRpcClient(
        settings.rpc, page_size=detector_settings.max_signatures_per_fetch
    )

    history = SignatureHistory(
        data_dir / HISTORY_FILE, limit=detector_settings.history_limit
    )
    cursor_store = CursorStore(data_dir / CURSOR_FILE)

    detector = Detector(
        client=client,
        history=history,
        cursor_store=cursor_store,
        settings=detector_settings,
    )

    metadata_resolver = MetadataResolver(
        client, cache_ttl_seconds=detector_settings.metadata_cache_ttl_seconds
    )
    # without prices every market cap is unknown, so the floor is dropped too
    price_provider: PriceProvider
    market_cap_floor = detector_settings.market_cap_floor
    if settings.price.enabled:
        price_provider = GeckoTerminalProvider(settings.price)
    else:
        get_logger("migwatch.main").info("price_lookups_disabled")
        price_provider = NullPriceProvider()
        market_cap_floor = None

    enricher = MigrationEnricher(
        metadata_resolver=metadata_resolver,
        price_provider=price_provider,
        client=client,
        market_cap_floor=market_cap_floor,
        concurrency=detector_settings.enrich_concurrency,
    )

    watcher = MigrationWatcher(
        settings=detector_settings,
        detector=detector,
        enricher=enricher,
        output_path=data_dir / OUTPUT_FILE,
        snapshot_path=data_dir / SNAPSHOT_FILE,
    )

    return {
        "client": client,
        "history": history,
        "cursor_store": cursor_store,
        "detector": detector,
        "metadata_resolver": metadata_resolver,
        "price_provider": price_provider,
        "enricher": enricher,
        "watcher": watcher,
    }


async def _close_components(components: dict[str, Any]) -> None:
    await components["price_provider"].close()
    await components["client"].close()


def _setup_signal_handlers(watcher: MigrationWatcher) -> None:
    """SIGINT/SIGTERM finish the running cycle, then stop the watcher.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("migwatch.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(watcher.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the watcher as a background task for the lifetime of the server.

    Shutdown signals are handled by uvicorn; on exit the watcher is stopped,
    its task cancelled and network sessions closed.
    """
    logger = get_logger("migwatch.main")
    components = app.state.components
    watcher: MigrationWatcher = components["watcher"]
    app.state.watcher = watcher

    await components["client"].connect()
    watcher_task = asyncio.create_task(watcher.start(app.state.window_seconds))

    logger.info("lifespan_started", window_seconds=app.state.window_seconds)

    yield

    await watcher.stop()
    watcher_task.cancel()
    try:
        await watcher_task
    except asyncio.CancelledError:
        pass

    await _close_components(components)
    logger.info("migwatch_stopped")


async def run(argv: list[str] | None = None) -> None:
    """Run the migration watcher in the mode selected on the command line."""
    args = parse_args(argv)

    try:
        settings = AppSettings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("migwatch.main")

    window_seconds = resolve_window(args.window, settings)
    components = _build_components(settings)
    watcher: MigrationWatcher = components["watcher"]

    if args.snapshot:
        window_hours = settings.detector.snapshot_window_hours
        logger.info("starting_snapshot", window_hours=window_hours)
        try:
            await components["client"].connect()
            results = await watcher.run_snapshot(window_hours)
            logger.info("snapshot_complete", total_count=len(results))
        finally:
            await _close_components(components)
        return

    if settings.dashboard.enabled and not args.once:
        from migwatch.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan, output_path=watcher.output_path)
        app.state.components = components
        app.state.window_seconds = window_seconds

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            window_seconds=window_seconds,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
        return

    _setup_signal_handlers(watcher)
    logger.info(
        "starting_without_dashboard",
        window_seconds=window_seconds,
        once=args.once,
    )
    try:
        await components["client"].connect()
        await watcher.start(window_seconds, continuous=not args.once)
    finally:
        await _close_components(components)
        logger.info("migwatch_stopped")


def main() -> None:
    """Synchronous entry point."""
    try:
        asyncio.run(run())
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
