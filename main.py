"""SolarTech Field Client — FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import init_db
from routes import (
    health_router, session_router, interventions_router, appointments_router, directory_router,
    dashboard_router,
)
from store.client import FieldClient, build_client

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)-25s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def create_app(client: FieldClient | None = None) -> FastAPI:
    """
    Build the application.

    With a client the app serves it as is (tests); without one the lifespan
    creates the local tables, builds the client and restores the last session.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info("SolarTech Field Client — Starting up")
        logger.info("=" * 60)
        if client is None:
            init_db()
            logger.info("Local database initialized")
            app.state.client = build_client()
            app.state.client.start()
        yield
        logger.info("SolarTech Field Client — Shutting down")

    app = FastAPI(
        title="SolarTech Field Client",
        description="Role-scoped local state and offline cache for photovoltaic field interventions",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS — allow the presentation layer
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if client is not None:
        app.state.client = client

    # Register routes
    app.include_router(health_router)
    app.include_router(session_router)
    app.include_router(interventions_router)
    app.include_router(appointments_router)
    app.include_router(directory_router)
    app.include_router(dashboard_router)

    @app.get("/")
    def root():
        """Root endpoint."""
        return {
            "service": "SolarTech Field Client",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/api/health",
        }

    return app


app = create_app()
