"""Main application entry point for the challenge admin dashboard API."""

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from .auth import UNAUTHORIZED, AuthorizationError
from .config import get_settings
from .database import check_database_health, dispose_engine, list_tables
from .routes import auth, cohorts, export, participants, programs

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def validate_environment():
    """Validate all required environment variables on startup."""
    try:
        settings = get_settings()
        logger.info("Environment variables validated successfully")
        return settings
    except ValidationError as e:
        logger.error("ERROR: Missing or invalid environment variables:")
        logger.error(str(e))
        sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown."""
    # Startup
    logger.info("Starting Challenge Admin...")

    db_url = os.environ.get("DATABASE_URL", "")
    logger.info(f"=== DATABASE_URL set: {'YES' if db_url else 'NO'} ===")

    tables = list_tables()
    logger.info(f"=== Tables in database: {tables} ===")

    settings = validate_environment()
    if not settings.admin_api_enabled:
        logger.warning("SUPABASE_SERVICE_ROLE_KEY not set: participant accounts cannot be created or deleted")

    logger.info("Challenge Admin started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Challenge Admin...")
    dispose_engine()
    logger.info("Challenge Admin shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Challenge Admin",
    description="Admin dashboard API for cohort-based wellness challenges",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(auth.router)
app.include_router(cohorts.router)
app.include_router(programs.router)
app.include_router(participants.router)
app.include_router(export.router)


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    return JSONResponse(status_code=exc.status_code, content={"error": UNAUTHORIZED})


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Store error on {request.url.path}: {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(getattr(exc, "orig", None) or exc)})


@app.get("/health")
async def health_check():
    """Health check endpoint.

    Verifies database connection and returns status.
    """
    db_healthy = check_database_health()

    if db_healthy:
        return {
            "status": "healthy",
            "database": "connected",
        }
    else:
        return {
            "status": "unhealthy",
            "database": "disconnected",
        }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Challenge Admin",
        "status": "running",
        "version": "1.0.0",
    }
