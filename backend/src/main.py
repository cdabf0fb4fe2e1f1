# pyright: reportMissingTypeStubs=false
"""
Medical Scheduling Backend API

A FastAPI application exposing the availability and booking engine of a
multi-tenant medical appointment system.

Features:
- Doctor availability (free ranges and slots) over weekly templates,
  exceptions and existing appointments
- Atomic booking, rescheduling and status transitions
- Practice schedule management
- SQLAlchemy ORM on PostgreSQL or SQLite
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import appointments, availability, schedules
from core.config import LOG_LEVEL
from core.constants import CORS_ORIGINS, TRANSIENT_RETRY_AFTER_SECONDS
from services.scheduling_errors import SchedulingError, TransientStoreError

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Medical Scheduling Backend API")
    yield
    logger.info("Shutting down Medical Scheduling Backend API")


# Create FastAPI application
app = FastAPI(
    title="Medical Scheduling Backend",
    description="Availability and booking engine for medical practices",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(
    availability.router,
    prefix="/api",
    tags=["availability"],
    responses={
        400: {"description": "Invalid date range or slot parameters"},
        404: {"description": "Resource not found"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    schedules.router,
    prefix="/api/practices",
    tags=["schedules"],
    responses={
        400: {"description": "Invalid schedule input"},
        404: {"description": "Resource not found"},
        409: {"description": "Edit would strand an upcoming appointment"},
        503: {"description": "Schedule busy, retry"},
        500: {"description": "Internal server error"},
    },
)
app.include_router(
    appointments.router,
    prefix="/api/appointments",
    tags=["appointments"],
    responses={
        400: {"description": "Invalid interval"},
        404: {"description": "Resource not found"},
        409: {"description": "Conflict"},
        503: {"description": "Schedule busy, retry"},
        500: {"description": "Internal server error"},
    },
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Medical Scheduling Backend API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    """Map typed scheduling failures to their HTTP status."""
    headers = None
    if isinstance(exc, TransientStoreError):
        headers = {"Retry-After": str(TRANSIENT_RETRY_AFTER_SECONDS)}
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
        headers=headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"},
    )
