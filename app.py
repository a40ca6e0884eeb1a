"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and availability service, registers routers,
and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.calendar_controller import router as calendar_router
from backend.controllers.health_controller import router as health_router
from backend.repository.data_repository import DataRepository
from backend.services.availability_service import ManagerAvailabilityService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are injected via app.state so controllers resolve them per request.
    """
    settings = settings or get_settings()

    repository = DataRepository(settings)
    availability_service = ManagerAvailabilityService(
        repository=repository,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(health_router)
    app.include_router(calendar_router)

    app.state.repository = repository
    app.state.availability_service = availability_service

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema must exist before seeding; seeding is skipped when data is present.
    """
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo sales managers and slots")
        repository.seed_demo_data()

    logger.info("Startup complete, default strategy is %s", settings.default_strategy)


# Module-level app object for uvicorn
app = create_app()
