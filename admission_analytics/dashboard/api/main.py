"""Main FastAPI application for the Admission Analytics API.

This module sets up the FastAPI application with all routes, middleware,
and configuration for the read-only analytics API.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from admission_analytics import __version__
from admission_analytics.dashboard.api.dependencies import get_storage_adapter
from admission_analytics.dashboard.api.middleware import setup_middleware
from admission_analytics.dashboard.api.routes import health, reports
from admission_analytics.infrastructure.logging_config import setup_logging
from admission_analytics.infrastructure.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    setup_logging(use_json=settings.json_logs, log_level=settings.log_level)
    logger.info("Admission Analytics API starting up...")
    logger.info("API documentation available at /api/docs")
    logger.info(f"Logging level: {settings.log_level}")
    yield
    logger.info("Admission Analytics API shutting down...")
    if app.dependency_overrides.get(get_storage_adapter) is None and get_storage_adapter.cache_info().currsize:
        get_storage_adapter().close()


app = FastAPI(
    title="Admission Analytics API",
    description="Read-only reports, summary views and export over hospital admissions",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

# CORS configuration; origins come from AA_CORS_ORIGINS (comma-separated)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.getenv("AA_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"],
)

setup_middleware(app)

app.include_router(health.router)
app.include_router(reports.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Admission Analytics API",
        "version": __version__,
        "docs": "/api/docs",
        "health": "/api/health",
        "reports": "/api/reports",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "admission_analytics.dashboard.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
