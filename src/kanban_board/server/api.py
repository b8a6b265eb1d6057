"""FastAPI application for the Kanban board service."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..board_engine.engine import BoardService
from ..board_engine.errors import BoardError
from ..config import Settings, resolve_settings
from .board_api import create_board_router
from .models import HealthInfo, fail
from .presence import PresenceTracker


def create_app(
    project_dir: Optional[Path] = None,
    enable_cors: bool = True,
    service: Optional[BoardService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        project_dir: Directory holding the `.kanban` state dir (default: cwd).
        enable_cors: Whether to enable CORS.
        service: Pre-built service; when omitted one is created over the
            file store configured for *project_dir*.
        settings: Pre-resolved settings; resolved from *project_dir* when
            omitted.

    Returns:
        Configured FastAPI app.
    """
    settings = settings or resolve_settings(Path(project_dir or Path.cwd()))
    if settings.config_error:
        logger.warning("Ignoring board config: {}", settings.config_error)

    if service is None:
        service = BoardService.from_state_dir(
            settings.state_dir,
            fmt=settings.storage_format,
            seed_demo=settings.seed_demo,
        )

    app = FastAPI(
        title="Kanban Board",
        description="Collaborative Kanban board API",
        version=__version__,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.settings = settings
    app.state.service = service
    app.state.presence = PresenceTracker(settings.online_window_seconds)

    def _get_service() -> BoardService:
        return app.state.service

    # ------------------------------------------------------------------
    # Error envelopes
    # ------------------------------------------------------------------

    @app.exception_handler(BoardError)
    async def _board_error(request: Request, exc: BoardError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
        else:
            logger.info("{} {} rejected ({}): {}", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=fail(exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=fail(str(exc.detail)))

    @app.exception_handler(RequestValidationError)
    async def _request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=fail("Invalid request"))

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on {} {}", request.method, request.url.path)
        return JSONResponse(status_code=500, content=fail("Internal server error"))

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Kanban Board",
            "version": __version__,
            "status": "running",
        }

    @app.get("/health")
    async def health():
        return HealthInfo(status="ok", version=__version__).model_dump()

    app.include_router(create_board_router(_get_service, app.state.presence))

    return app
