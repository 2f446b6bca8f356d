"""
FastAPI application factory for the Fronius monitor API.

Settings are loaded once (or injected) when the app is created and stored on
app.state together with the BearerAuth instance. The lifespan initializes the
database engine and the shared inverter HTTP client and disposes them on
shutdown.

Run with: ``uvicorn --factory fronius_monitor.api.main:create_app``

CHANGELOG:
- 2026-10-18: Initial creation
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fronius_monitor.api.health import router as health_router
from fronius_monitor.api.metrics import router as metrics_router
from fronius_monitor.api.power import router as power_router
from fronius_monitor.auth.bearer import BearerAuth, parse_api_tokens
from fronius_monitor.collector.fronius import build_client
from fronius_monitor.config import AppSettings
from fronius_monitor.db.session import dispose_engine, init_engine
from fronius_monitor.logging_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: open shared resources, close them on shutdown.

    Startup:
        - Initializes the async database engine.
        - Opens the shared HTTP client for inverter requests.

    Shutdown:
        - Closes the HTTP client and disposes the engine.
    """
    settings: AppSettings = app.state.settings
    init_engine(settings.database_url)
    app.state.http_client = build_client(settings)
    app.state.devices_registered = False

    logger.info(
        "Fronius monitor API ready (%d device(s), power_unit=%s, grid_export_sign=%s)",
        len(settings.fronius_devices),
        settings.power_unit,
        settings.grid_export_sign,
    )
    try:
        yield
    finally:
        await app.state.http_client.aclose()
        await dispose_engine()
        logger.info("Fronius monitor API shutting down")


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Injected settings; loaded from the environment when omitted.

    Returns:
        FastAPI: Configured application.

    Raises:
        RuntimeError: If API_TOKENS contains no usable token.
    """
    if settings is None:
        configure_logging()
        settings = AppSettings()

    token_map = parse_api_tokens(settings.api_tokens)
    if not token_map:
        raise RuntimeError("API_TOKENS parsed but contains no valid token entries")

    app = FastAPI(
        title="Fronius Monitor API",
        description="Live power flow and historical energy summaries for Fronius inverters.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.auth = BearerAuth(token_map)
    logger.info("Parsed %d API token(s) from API_TOKENS", len(token_map))

    origins = settings.cors_origin_list
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET"],
            allow_headers=["Authorization"],
        )

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(power_router)

    @app.get("/")
    async def root() -> dict:
        """Root health check endpoint."""
        return {"status": "ok"}

    return app
