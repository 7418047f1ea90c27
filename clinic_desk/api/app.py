"""FastAPI application for Clinic Desk."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinic_desk import __version__
from clinic_desk.api.middleware import DashboardAuthMiddleware, RequestLoggingMiddleware
from clinic_desk.api.routes import auth, booking, doctor_dashboard, health, receptionist_dashboard
from clinic_desk.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    logger.info(
        "Starting Clinic Desk API (slot interval %d min, booking window %d months)",
        settings.slot_interval_minutes,
        settings.booking_window_months,
    )

    yield

    logger.info("Shutting down Clinic Desk API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Clinic Desk API",
        description="Appointment booking, status lookup and staff dashboards",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(DashboardAuthMiddleware, api_key=settings.api_key)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(auth.router, tags=["auth"])
    app.include_router(booking.router, tags=["booking"])
    app.include_router(doctor_dashboard.router, tags=["doctor-dashboard"])
    app.include_router(receptionist_dashboard.router, tags=["receptionist-dashboard"])

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.debug_mode else None,
            },
        )

    return app
