"""FastAPI app factory."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import Settings
from database import DatabaseManager

from .dependencies import ServiceContainer
from .handlers import register_exception_handlers
from .responses import ok
from .routes import admin, auth, bookings, checkin, flights, users

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger(__name__)


def _configure_logging(settings: Settings) -> None:
    """Stream logs to stdout and a rotating file."""

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(stdout_handler)

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=1_000_000,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(file_handler)

    root_logger.setLevel(settings.log_level.upper())

    for name in ("uvicorn.access", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[ServiceContainer] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    When ``services`` is omitted a connection pool is opened at startup and
    closed at shutdown.
    """

    settings = settings or Settings()
    if configure_logging:
        _configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db_manager = None
        if app.state.services is None:
            db_manager = DatabaseManager.from_settings(settings)
            app.state.services = ServiceContainer.build(db_manager, settings)
            logger.info("Connection pool ready (%s-%s)", settings.db_pool_min, settings.db_pool_max)
        try:
            yield
        finally:
            if db_manager is not None:
                db_manager.close_all_connections()
                app.state.services = None

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="SkyWings airline booking API",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    for module in (auth, flights, bookings, checkin, users, admin):
        app.include_router(module.router)

    @app.get("/api/health", tags=["health"])
    def health_check() -> dict:
        """Health check endpoint."""

        return ok(
            {
                "status": "healthy",
                "service": settings.app_name,
                "version": settings.app_version,
                "environment": settings.environment,
            },
            "SkyWings API is running",
        )

    return app
