"""FastAPI application factory for Polyscope."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from polyscope import __version__
from polyscope.api.deps import init_coordinator, reset_coordinator
from polyscope.api.middleware import RequestBodyLimitMiddleware, RequestTimingMiddleware
from polyscope.api.routers import documents
from polyscope.api.schemas import HealthResponse
from polyscope.service.coordinator import ValidationCoordinator
from polyscope.service.oracle import OracleClient
from polyscope.settings import Settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Start/stop the ValidationCoordinator alongside the application."""
    settings: Settings = app.state.settings
    coordinator = ValidationCoordinator(
        oracle=OracleClient(
            cli_path=settings.cli_path,
            timeout_seconds=settings.oracle_timeout_seconds,
        ),
        debounce_seconds=settings.validation_debounce_seconds,
    )
    init_coordinator(coordinator)
    try:
        yield
    finally:
        await coordinator.shutdown()
        reset_coordinator()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Polyscope",
        description="Structural context and diagnostics for Polycrate workspace and block files.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Middleware
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(RequestBodyLimitMiddleware)

    app.include_router(documents.router, prefix="/documents", tags=["documents"])

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    return app


def main() -> None:
    """Run the REST API server using settings from environment / .env file."""
    settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())
    logger = logging.getLogger("polyscope.api")
    logger.info(
        "Polyscope API Server v%s starting (host=%s, port=%d, cli=%s)",
        __version__, settings.api_server_host, settings.api_server_port, settings.cli_path,
    )

    uvicorn.run(
        "polyscope.api.app:create_app",
        factory=True,
        host=settings.api_server_host,
        port=settings.api_server_port,
        log_level=settings.log_level.lower(),
    )
