"""
FastAPI Application Entry Point.

This is the main application file for the Freight Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from freight_backend.app.core.config import settings
from freight_backend.app.api.v1.router import router as api_v1_router
from freight_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from freight_backend.app.core.redis_client import ping_redis
from freight_backend.app.db.session import engine, Base
from freight_backend.app.services.cache import RateCache
from freight_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from freight_backend.app.models.user import User
from freight_backend.app.models.shipment import Shipment
from freight_backend.app.models.bulk_shipment import BulkShipment
from freight_backend.app.models.bulk_shipment_item import BulkShipmentItem
from freight_backend.app.models.package_detail import PackageDetail
from freight_backend.app.models.pricing_rule import PricingRule, CustomerPricingOverride
from freight_backend.app.models.restricted_good import RestrictedGood
from freight_backend.app.models.status_event import StatusEvent
from freight_backend.app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging and creates database tables on startup.
    2. Owns the rate cache: initialized here, torn down on shutdown.
    """
    configure_logging()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.rate_cache = RateCache(ttl_seconds=settings.rate_cache_ttl_seconds)
    app.state.rate_cache.initialize()
    logger.info("%s started", settings.app_name)

    yield

    app.state.rate_cache.teardown()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Shipment status lifecycle and freight pricing backend",
    lifespan=lifespan,
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

    Redis reachability is reported but never fails the check.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "ok" if await ping_redis() else "unavailable",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")
