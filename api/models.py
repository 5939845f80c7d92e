"""Pydantic models for the Weather Ensemble API.

Forecast payloads reuse the engine's own models (ensemble.models); the ones
here cover the system, city and error endpoints.
"""
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

APP_VERSION = "1.0.0"


class CityResponse(BaseModel):
    """One gazetteer entry."""
    id: int
    name: str
    province: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class CitiesResponse(BaseModel):
    country: str
    count: int
    cities: list[CityResponse] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Structured error body; never carries stack traces or paths."""
    error: Literal["CITY_NOT_FOUND", "INVALID_INPUT", "SERVICE_UNAVAILABLE", "RATE_LIMITED", "INTERNAL_ERROR"]
    message: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class WorkerPoolStatus(BaseModel):
    size: int
    active: int
    available_permits: int
    peak_active: int


class CacheStatsResponse(BaseModel):
    """Cache counters plus worker pool occupancy."""
    total_entries: int
    valid_entries: int
    expired_entries: int
    ttl_seconds: float
    capacity: int
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    inflight_keys: int = 0
    worker_pool: Optional[WorkerPoolStatus] = None


# System endpoint models
class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    timestamp: datetime
    version: str = APP_VERSION
