"""FastAPI dashboard application factory with Jinja2 templates."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.templating import Jinja2Templates

from migwatch.dashboard.routes import api, pages
from migwatch.report import format_price, format_usd_compact, truncate

TEMPLATES_DIR = Path(__file__).parent / "templates"
DEFAULT_OUTPUT_PATH = Path("data") / "migrations_latest.json"

NO_CACHE = "no-store, no-cache, must-revalidate, private"


def _usd_compact(value: Any) -> str:
    """Format a JSON number as $1.50M / $25.00K; N/A when missing."""
    if value is None:
        return "N/A"
    return format_usd_compact(Decimal(str(value)))


def _usd_price(value: Any) -> str:
    if value is None:
        return "N/A"
    return format_price(Decimal(str(value)))


def create_dashboard_app(
    lifespan: Any = None,
    output_path: Path | None = None,
) -> FastAPI:
    """Create and configure the FastAPI dashboard application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to run the watcher inside the server's loop.
        output_path: Published document served by /api/migrations.

    Returns:
        Configured FastAPI application with templates and routes.
    """
    app = FastAPI(
        title="Pump.fun Migration Dashboard",
        lifespan=lifespan,
    )

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.filters["usd_compact"] = _usd_compact
    templates.env.filters["usd_price"] = _usd_price
    templates.env.filters["truncate_text"] = truncate
    app.state.templates = templates

    app.state.output_path = Path(output_path) if output_path else DEFAULT_OUTPUT_PATH
    # Wired by main.py lifespan when a watcher runs in-process
    app.state.watcher = None

    @app.middleware("http")
    async def _disable_caching(request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = NO_CACHE
        return response

    app.include_router(pages.router)
    app.include_router(api.router, prefix="/api")

    return app
