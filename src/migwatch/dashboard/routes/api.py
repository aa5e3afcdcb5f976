"""JSON API endpoints: latest published migrations and watcher status."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from migwatch.report import read_output

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/migrations")
async def get_migrations(request: Request) -> JSONResponse:
    """Latest published document; an empty one before the first cycle completes."""
    try:
        document = read_output(request.app.state.output_path)
    except (OSError, ValueError) as e:
        log.error("migrations_read_failed", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to load migrations data"},
        )
    return JSONResponse(content=document)


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Watcher cycle counters, or 503 when no watcher runs in this process."""
    watcher = request.app.state.watcher
    if watcher is None:
        return JSONResponse(status_code=503, content={"error": "Watcher not running"})
    return JSONResponse(content=watcher.get_status())
