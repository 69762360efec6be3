"""
FastAPI application factory.

* Registers routes for auth, rides, passengers, vendors and admin.
* Starts / stops the background completion worker via lifespan events.
* Maps domain errors onto HTTP responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.dependencies import ride_locks
from src.api.errors import register_exception_handlers
from src.api.middleware import limiter
from src.api.routes import admin, auth, passengers, rides, vendor
from src.config import settings
from src.infrastructure.redis_client import close_redis
from src.workers import completion as _completion

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the completion worker on startup; stop on shutdown."""
    if settings.storage_backend == "sql":
        await _completion.start_completion_loop(ride_locks)
    yield
    await _completion.stop_completion_loop()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Resort Carpool API",
        description=(
            "Coordinates shared rides between the city and the resort: ride "
            "offers, seat-checked joins, organiser-managed drop-off "
            "sequencing for return trips, and vendor assignment."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Routers
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(passengers.router, prefix="/api/v1")
    app.include_router(vendor.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
