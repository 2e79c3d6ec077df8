"""
Exam Portal Backend - Main FastAPI Application

Role-based online examinations: administrators provision teachers, teachers
provision students and author exams, students take timed multiple-choice exams.
Version: 1.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config.settings import Settings, settings
from .context import build_context
from .gateways import DocumentStore, IdentityGateway
from .routes import (
    create_auth_routes,
    create_dashboard_routes,
    create_directory_routes,
    create_exam_routes,
    create_live_routes,
    create_session_routes,
)
from .utils import utc_now

# Setup logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup/shutdown."""
    portal = app.state.portal

    # STARTUP
    logger.info("🚀 Exam Portal Backend Starting Up...")

    try:
        portal.settings.validate()
        logger.info("✅ Settings validated")

        await portal.store.ping()
        logger.info(f"✅ Document store ready: {portal.settings.STORE_BACKEND}")
        logger.info(f"✅ Identity backend: {portal.settings.IDENTITY_BACKEND}")

        logger.info("✅ Application startup complete")

    except Exception as e:
        logger.error(f"❌ Startup failed: {e}")
        raise

    yield

    # SHUTDOWN
    logger.info("🛑 Shutting down...")
    await portal.aclose()
    logger.info("✅ Connections closed")


def create_app(
    app_settings: Settings = settings,
    store: Optional[DocumentStore] = None,
    identity: Optional[IdentityGateway] = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """Build the application around one portal context."""
    portal = build_context(app_settings, store=store, identity=identity, clock=clock)

    app = FastAPI(
        title="Exam Portal API",
        description="Role-based online examination portal",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.portal = portal

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_auth_routes(portal))
    app.include_router(create_directory_routes(portal))
    app.include_router(create_exam_routes(portal))
    app.include_router(create_session_routes(portal))
    app.include_router(create_dashboard_routes(portal))
    app.include_router(create_live_routes(portal))

    # Health check endpoint
    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        try:
            await portal.store.ping()
            database = "connected"
        except Exception as e:
            logger.warning(f"Health check ping failed: {e}")
            database = "disconnected"
        return {
            "status": "healthy",
            "version": VERSION,
            "database": database,
            "live_attempts": len(portal.attempts)
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "app": "Exam Portal",
            "version": VERSION,
            "docs": "/docs",
            "health": "/api/health"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "examportal.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
