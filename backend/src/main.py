# pyright: reportMissingTypeStubs=false
"""
Clinic Scheduler Backend API

A FastAPI application providing appointment booking and bed task timers
for clinics.

Features:
- Month availability grid built from working hours, holidays, maintenance and leaves
- Conflict-checked appointment booking and rescheduling
- Pausable per-task countdowns with live WebSocket updates
- SQLAlchemy ORM persistence
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import appointments, beds, calendar, realtime
from core.constants import CORS_ORIGINS
from core.database import create_tables
from core.exceptions import SchedulingError
from services.task_timer_service import start_task_timer_service, stop_task_timer_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)
logger.info("🏥 Clinic Scheduler API starting...")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("🚀 Starting Clinic Scheduler Backend API")

    create_tables()

    # Start the task timers and reconcile tasks left running by a previous process
    try:
        await start_task_timer_service()
        logger.info("✅ Task timer service started")
    except Exception as e:
        logger.exception(f"❌ Failed to start task timer service: {e}")

    yield

    # Drain live countdowns before the process exits
    try:
        await stop_task_timer_service()
        logger.info("🛑 Task timer service stopped")
    except Exception as e:
        logger.exception(f"❌ Error stopping task timer service: {e}")

    logger.info("🛑 Shutting down Clinic Scheduler Backend API")


# Create FastAPI application
app = FastAPI(
    title="Clinic Scheduler Backend",
    description="Appointment scheduling and bed task timers for clinics",
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
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

_ERROR_RESPONSES = {
    401: {"description": "Unauthorized"},
    403: {"description": "Forbidden"},
    404: {"description": "Resource not found"},
    500: {"description": "Internal server error"},
}

# Include API routers
app.include_router(calendar.router, prefix="/api/calendar", tags=["calendar"], responses=_ERROR_RESPONSES)
app.include_router(
    appointments.router,
    prefix="/api/appointments",
    tags=["appointments"],
    responses={**_ERROR_RESPONSES, 409: {"description": "Appointment conflict"}},
)
app.include_router(beds.router, prefix="/api/beds", tags=["beds"], responses=_ERROR_RESPONSES)
app.include_router(
    realtime.router,
    prefix="/api/realtime",
    tags=["realtime"],
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Clinic Scheduler Backend API",
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
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"},
    )


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    """Map domain errors (validation, forbidden, not found, conflict) to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"SchedulingError: {exc.detail}")
    else:
        logger.info(f"{exc.error_type}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"},
    )
