"""
Healthcare Portal - FastAPI Application Entrypoint

This module initializes the FastAPI application with:
- CORS and security middleware
- Authentication routes and dependencies
- Hospital consultation routes behind the role-scoped guard
- Database and mailer lifecycle management
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from healthportal import __version__
from healthportal.config import configure_logging, settings
from healthportal.exceptions import register_exception_handlers
from healthportal.gateway.middleware import SecurityMiddleware
from healthportal.auth.database import get_engine, init_db, get_session_factory
from healthportal.auth.routes import router as auth_router
from healthportal.consultations.routes import router as consultations_router
from healthportal.services.mailer import build_mailer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Configure logging
        - Initialize SQLModel database (accounts, sessions, reset tokens,
          consultation requests, appointments)
        - Build the mailer

    Shutdown:
        - Dispose the engine
    """
    configure_logging()

    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)
    app.state.db_engine = engine
    app.state.db_session_factory = get_session_factory(engine)
    app.state.mailer = build_mailer()

    logger.info(
        "Healthcare Portal %s started (environment=%s)", __version__, settings.ENVIRONMENT
    )

    yield

    engine.dispose()


app = FastAPI(
    title="Healthcare Portal",
    description="Hospital and laboratory portal: accounts, sessions and consultations",
    version=__version__,
    lifespan=lifespan,
)

# CORS - credentials allowed so the session cookie reaches the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "PUT", "PATCH"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

app.add_middleware(SecurityMiddleware)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/api/v1")
app.include_router(consultations_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """
    Health check endpoint for local dev tooling.
    Returns service status and database reachability.
    """
    database_ok = True
    try:
        db = app.state.db_session_factory()
        try:
            db.connection().execute(text("SELECT 1"))
        finally:
            db.close()
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        database_ok = False

    return {
        "status": "healthy" if database_ok else "degraded",
        "version": __version__,
        "services": {"database": database_ok},
    }


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Healthcare Portal",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
