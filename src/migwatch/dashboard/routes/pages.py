"""Page routes serving the main dashboard HTML template."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from migwatch.report import empty_output_document, read_output

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def dashboard_index(request: Request) -> HTMLResponse:
    """Main dashboard page. Renders the latest published migrations."""
    templates: Jinja2Templates = request.app.state.templates

    error = None
    try:
        document = read_output(request.app.state.output_path)
    except (OSError, ValueError) as e:
        log.error("migrations_read_failed", error=str(e))
        document = empty_output_document()
        error = "Failed to load migrations data"

    watcher = request.app.state.watcher
    status = watcher.get_status() if watcher is not None else None

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "run_at": document.get("run_at"),
            "window_seconds": document.get("window_seconds", 0),
            "migrations": document.get("migrations", []),
            "status": status,
            "error": error,
        },
    )
