"""
FastAPI Application Entry Point.

This is the main application file for the Car Rental Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from rental_backend.app.core.config import settings
from rental_backend.app.api.v1.router import router as api_v1_router
from rental_backend.app.core.clock import Clock
from rental_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from rental_backend.app.db.repository import repository
from rental_backend.app.db.session import engine, Base
from rental_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from rental_backend.app.services.expense_service import ExpenseService
from rental_backend.app.services.notification_service import notification_dispatcher
from rental_backend.app.services.reservation_lifecycle import ReservationLifecycleManager

# Import models to ensure they are registered with Base
from rental_backend.app.models.stored_record import StoredRecord  # noqa: F401

configure_logging(settings.log_level)
logger = logging.getLogger("car_rental")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Splits the legacy mixed expense ledger, once.
    3. Resyncs every car's cached status with the current time.
    4. Runs the notification worker until shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    general, car = await ExpenseService.split_legacy_expenses(repository)
    if general or car:
        logger.info("Legacy expenses migrated: %d general, %d car", general, car)

    manager = ReservationLifecycleManager(
        repository,
        Clock(),
        notification_dispatcher,
        timezone=settings.timezone,
        include_terminal=settings.terminal_reservations_block,
        guard_ms=settings.turnover_guard_minutes * 60 * 1000
    )
    await manager.refresh_statuses()

    await notification_dispatcher.start()
    try:
        yield
    finally:
        await notification_dispatcher.stop()
        await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Reservation scheduling and availability backend for a car rental office",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    health = {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "timezone": settings.timezone,
        "session_backend": settings.session_backend,
    }

    if settings.session_backend.lower() == "redis":
        from rental_backend.app.core.redis_client import ping_redis
        redis_ok = await ping_redis()
        health["redis"] = "up" if redis_ok else "down"
        if not redis_ok:
            health["status"] = "degraded"

    return health


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the Car Rental Backend API",
        "docs": "/docs",
        "health": "/health",
    }
