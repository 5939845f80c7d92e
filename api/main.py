#!/usr/bin/env python3
"""
Weather Ensemble API - FastAPI Application Factory

Multi-provider weather forecasts reconciled into one ensemble with confidence.
All endpoints are defined in api/routes/ modules.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from api.deps import get_gazetteer, get_settings, init_orchestrator, reset_orchestrator
from api.middleware import (
    add_security_headers,
    error_response,
    forecast_error_handler,
    global_exception_handler,
    validation_error_handler,
)
from api.models import APP_VERSION
from api.routes import system_router, weather_router
from api.services.http_client import http_client
from ensemble.errors import ForecastError

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Rate limiter setup
limiter = Limiter(key_func=get_remote_address)


def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Custom handler for rate limit exceeded errors."""
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)}: {exc.detail}")
    return error_response(429, "RATE_LIMITED", f"Rate limit exceeded: {exc.detail}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Startup
    logger.info(f"Starting Weather Ensemble API v{APP_VERSION}")
    gazetteer = get_gazetteer()
    client = await http_client.get_client()
    orchestrator = init_orchestrator(client)
    logger.info(
        "Runtime config: cpu_cores=%s worker_permits=%d cache_ttl=%ss cache_capacity=%d "
        "day_timeout=%ss cities=%d",
        os.cpu_count(), orchestrator.fetcher.pool.size, settings.CACHE_TTL_SECONDS,
        settings.CACHE_CAPACITY, orchestrator.fetcher.day_timeout, len(gazetteer)
    )

    yield

    # Shutdown
    reset_orchestrator()
    await http_client.close()
    logger.info("Weather Ensemble API stopped")


# Application factory
app = FastAPI(
    title="Weather Ensemble API",
    version=APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS middleware with restricted settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["Content-Type"],
)

# Security middleware
app.middleware("http")(add_security_headers)

# Exception handlers
app.exception_handler(ForecastError)(forecast_error_handler)
app.exception_handler(RequestValidationError)(validation_error_handler)
app.exception_handler(Exception)(global_exception_handler)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# Router Registration
# ============================================================================

# System routes: /health, /api/source-health, /api/cache/stats
app.include_router(system_router, tags=["System"])

# Weather routes: /api/cities, /api/weather, /api/weather/ensemble
app.include_router(weather_router, prefix="/api", tags=["Weather"])


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
