"""System routes for health, provider health and cache stats."""
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.deps import get_orchestrator
from api.models import CacheStatsResponse, HealthResponse, WorkerPoolStatus
from providers.source_health import get_all_source_health
from ensemble.orchestrator import EnsembleOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()

# Rate limiter (will use app.state.limiter at runtime)
limiter = Limiter(key_func=get_remote_address)


@router.get("/health", response_model=HealthResponse)
@limiter.limit("60/minute")
async def health(request: Request) -> HealthResponse:
    """Health check endpoint.

    Returns basic health status for load balancers and monitoring.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(),
    )


@router.get("/api/source-health")
@limiter.limit("30/minute")
async def source_health(request: Request):
    """Get health metrics for all forecast providers."""
    return JSONResponse(content={"sources": get_all_source_health()})


@router.get("/api/cache/stats", response_model=CacheStatsResponse)
@limiter.limit("30/minute")
async def cache_stats(
    request: Request,
    orchestrator: EnsembleOrchestrator = Depends(get_orchestrator),
) -> CacheStatsResponse:
    """Forecast cache counters and worker pool occupancy."""
    return CacheStatsResponse(
        **orchestrator.cache_stats(),
        worker_pool=WorkerPoolStatus(**orchestrator.fetcher.pool.status()),
    )
