"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.logging import setup_logging
from app.db.init_db import init_db
from app.db.session import AsyncSessionLocal
from app.middleware.rate_limit import RateLimitMiddleware
from app.services.storage import StorageError

SERVICE_NAME = "Practice Forms API"
SERVICE_VERSION = "0.1.0"

setup_logging()
logger = logging.getLogger(__name__)


def _prepare_directories() -> None:
    """Create the document and builder draft directories if missing."""
    for directory in (settings.storage_base_path, settings.builder_draft_dir):
        Path(directory).mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Prepare storage and optionally create tables and seed the question bank."""
    logger.info(
        f"Starting {SERVICE_NAME} (env={settings.env}, "
        f"link_ttl_days={settings.public_link_ttl_days}, "
        f"rate_limit={settings.rate_limit_enabled})"
    )
    _prepare_directories()

    if settings.init_db_on_startup:
        logger.info("Creating tables and seeding the question bank")
        async with AsyncSessionLocal() as session:
            await init_db(session)

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")


app = FastAPI(
    title=SERVICE_NAME,
    description="Patient records, questionnaires and public questionnaire links for medical practices",
    version=SERVICE_VERSION,
    docs_url="/docs" if settings.is_dev else None,
    redoc_url="/redoc" if settings.is_dev else None,
    openapi_url="/openapi.json" if settings.is_dev else None,
    lifespan=lifespan,
)

# Public link routes are unauthenticated, so they are throttled per client IP
app.add_middleware(RateLimitMiddleware, enabled=settings.rate_limit_enabled)

if settings.is_dev:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:3001"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Storage failures that reach the top are infrastructure faults."""
    logger.exception(f"Document storage failure on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Document storage unavailable"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Collapse unexpected errors to a generic 500; the message is shown outside prod only."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")

    detail = "Internal server error" if settings.is_prod else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": detail},
    )


app.include_router(api_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict:
    """Service name, version and where the docs live."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "docs": "/docs" if settings.is_dev else "Disabled in production",
    }
