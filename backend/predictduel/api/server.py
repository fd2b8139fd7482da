"""FastAPI application for PredictDuel.

This module:
- Builds the service registry around the MongoDB database
- Maps DuelError subclasses to structured JSON errors
- Provides the health check endpoint
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from predictduel import __version__
from predictduel.api.routes import (
    activity_router,
    duels_router,
    leaderboard_router,
    notifications_router,
    profile_router,
    users_router,
)
from predictduel.config import Settings, get_settings
from predictduel.database import Database
from predictduel.exceptions import DuelError
from predictduel.services.registry import ServiceRegistry, build_services
from predictduel.services.solana import SolanaClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    solana: SolanaClient | None = None,
    services: ServiceRegistry | None = None,
) -> FastAPI:
    """Build the app; tests pass a prepared registry."""
    settings = settings or get_settings()
    if services is None:
        database = database or Database(settings.database)
        services = build_services(settings, database, solana=solana)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Starting PredictDuel API (environment={settings.environment}, "
            f"database={services.database.info()['url']})"
        )
        await services.database.connect()

        async with services.solana:
            yield

        logger.info("Shutting down PredictDuel API")
        await services.database.close()

    app = FastAPI(
        title="PredictDuel API",
        description="Social yes/no prediction duels with pooled stakes",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DuelError)
    async def duel_error_handler(request: Request, exc: DuelError) -> JSONResponse:
        logger.info(f"{request.method} {request.url.path} -> {exc.code}/{exc.reason}: {exc}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, Any]:
        database_ok = await services.database.ping()
        return {
            "status": "healthy" if database_ok else "degraded",
            "service": "predictduel-api",
            "version": __version__,
            "database": "connected" if database_ok else "disconnected",
            "environment": settings.environment,
        }

    app.include_router(users_router)
    app.include_router(duels_router)
    app.include_router(leaderboard_router)
    app.include_router(notifications_router)
    app.include_router(profile_router)
    app.include_router(activity_router)

    return app
