# backend/appointments/main.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, FastAPI
from pydantic import ConfigDict, Field

from .core.config import is_running_tests, settings
from .core.request_context import RequestIdMiddleware, attach_request_id_filter
from .errors import register_error_handlers
from .events import InProcessEventPublisher, register_default_handlers
from .routes.v1 import booking_types as booking_types_v1
from .routes.v1 import bookings as bookings_v1
from .routes.v1 import public as public_v1
from .schemas._strict_base import StrictModel

API_TITLE = "Appointments API"
API_VERSION = "1.0.0"
API_DESCRIPTION = "Booking types, availability and reservations for multi-tenant booking pages"

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
)
attach_request_id_filter()

logger = logging.getLogger(__name__)


class HealthResponse(StrictModel):
    """Response for health check endpoint."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    status: str = Field(description="Health status")
    service: str = Field(description="Service name")
    version: str = Field(description="API version")
    environment: str = Field(description="Environment name")
    timestamp: str = Field(description="UTC ISO8601Z timestamp of the health response")


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info("%s starting up (environment=%s)", API_TITLE, settings.environment)
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    executor: Optional[ThreadPoolExecutor] = None
    if settings.event_dispatch_workers > 0:
        executor = ThreadPoolExecutor(
            max_workers=settings.event_dispatch_workers, thread_name_prefix="events"
        )
    publisher = InProcessEventPublisher(executor=executor)
    register_default_handlers(publisher)
    app.state.event_publisher = publisher

    yield

    logger.info("%s shutting down...", API_TITLE)
    publisher.shutdown()


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)
app.add_middleware(RequestIdMiddleware)

# API v1 router
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(public_v1.router, prefix="/public/{tenant_id}")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(booking_types_v1.router, prefix="/booking-types")
app.include_router(api_v1)


@app.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        service="appointments",
        version=API_VERSION,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )
