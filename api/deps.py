"""Shared dependencies and settings for the Weather Ensemble API.

This module provides:
- Settings class with immutable configuration
- Singleton pattern for the gazetteer and the orchestrator
- Dependency injection helpers for FastAPI
"""
from functools import lru_cache
from typing import Optional, TYPE_CHECKING
import logging
import os

import httpx

from ensemble.worker_pool import default_worker_count

if TYPE_CHECKING:
    from ensemble.cities import Gazetteer
    from ensemble.fallback import SingleSourceForecaster
    from ensemble.orchestrator import EnsembleOrchestrator

logger = logging.getLogger(__name__)


class Settings:
    """Application settings - immutable after startup"""
    # Provider credentials (Open-Meteo needs none)
    OPENWEATHER_API_KEY: Optional[str] = None
    WEATHERAPI_KEY: Optional[str] = None

    # Cache
    CACHE_TTL_SECONDS = 3600
    CACHE_CAPACITY = 100

    # Concurrency
    WORKER_THREADS = 3
    # None derives the budget from the adapters' timeouts and retry policy
    DAY_TIMEOUT_SECONDS: Optional[float] = None

    # Calendar days are computed in this zone
    FORECAST_TIMEZONE = "Asia/Jakarta"

    # Security
    ALLOWED_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    LOG_LEVEL = "INFO"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using %d", name, raw, default)
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r, using %s", name, raw, default)
        return default


@lru_cache()
def get_settings() -> Settings:
    """Get cached Settings instance with values loaded from environment."""
    settings = Settings()
    settings.OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY")
    settings.WEATHERAPI_KEY = os.getenv("WEATHERAPI_KEY")
    settings.CACHE_TTL_SECONDS = _env_int("CACHE_TTL_SECONDS", Settings.CACHE_TTL_SECONDS)
    settings.CACHE_CAPACITY = _env_int("CACHE_CAPACITY", Settings.CACHE_CAPACITY)
    settings.WORKER_THREADS = default_worker_count(os.getenv("WORKER_THREADS"))
    settings.DAY_TIMEOUT_SECONDS = _env_float("DAY_TIMEOUT_SECONDS", Settings.DAY_TIMEOUT_SECONDS)
    settings.FORECAST_TIMEZONE = os.getenv("FORECAST_TIMEZONE", Settings.FORECAST_TIMEZONE)
    settings.LOG_LEVEL = os.getenv("LOG_LEVEL", Settings.LOG_LEVEL).upper()
    origins = os.getenv("ALLOWED_ORIGINS", "")
    if origins:
        settings.ALLOWED_ORIGINS = [o.strip() for o in origins.split(",") if o.strip()]
    return settings


# Singletons - built once at startup, NOT recreated per request
_gazetteer: Optional["Gazetteer"] = None
_orchestrator: Optional["EnsembleOrchestrator"] = None
_single_source: Optional["SingleSourceForecaster"] = None


def get_gazetteer() -> "Gazetteer":
    """Returns singleton Gazetteer instance."""
    global _gazetteer
    if _gazetteer is None:
        from ensemble.cities import Gazetteer
        _gazetteer = Gazetteer.load()
    return _gazetteer


def build_orchestrator(client: httpx.AsyncClient, settings: Optional[Settings] = None) -> "EnsembleOrchestrator":
    """Wire adapters, worker pool, cache and fetcher into an orchestrator."""
    from ensemble.cache import ForecastCache
    from ensemble.fetcher import DayFetcher
    from ensemble.orchestrator import EnsembleOrchestrator, local_today
    from ensemble.worker_pool import WorkerPool
    from providers import build_providers

    settings = settings or get_settings()
    today = local_today(settings.FORECAST_TIMEZONE)
    providers = build_providers(
        client,
        openweather_api_key=settings.OPENWEATHER_API_KEY,
        weatherapi_key=settings.WEATHERAPI_KEY,
        timezone=settings.FORECAST_TIMEZONE,
    )
    for provider, adapter in providers.items():
        if not adapter.configured:
            logger.warning("Provider %s has no API key - it will be skipped", provider.value)

    fetcher = DayFetcher(
        providers,
        WorkerPool(settings.WORKER_THREADS),
        day_timeout=settings.DAY_TIMEOUT_SECONDS,
        today=today,
    )
    return EnsembleOrchestrator(
        fetcher,
        get_gazetteer(),
        cache=ForecastCache(settings.CACHE_TTL_SECONDS, settings.CACHE_CAPACITY),
        today=today,
    )


def build_single_source(orchestrator: "EnsembleOrchestrator") -> "SingleSourceForecaster":
    """Fallback-chain forecaster sharing the orchestrator's adapters and worker pool."""
    from ensemble.fallback import SingleSourceForecaster

    fetcher = orchestrator.fetcher
    return SingleSourceForecaster(fetcher.providers, fetcher.pool, orchestrator.gazetteer)


def init_orchestrator(client: httpx.AsyncClient) -> "EnsembleOrchestrator":
    """Create the singleton orchestrator and fallback forecaster; called from the app lifespan."""
    global _orchestrator, _single_source
    _orchestrator = build_orchestrator(client)
    _single_source = build_single_source(_orchestrator)
    return _orchestrator


def get_orchestrator() -> "EnsembleOrchestrator":
    """Returns singleton EnsembleOrchestrator instance."""
    if _orchestrator is None:
        raise RuntimeError("Orchestrator not initialized - application lifespan has not run")
    return _orchestrator


def get_single_source() -> "SingleSourceForecaster":
    """Returns singleton SingleSourceForecaster instance."""
    if _single_source is None:
        raise RuntimeError("Forecaster not initialized - application lifespan has not run")
    return _single_source


def reset_orchestrator():
    global _orchestrator, _single_source
    _orchestrator = None
    _single_source = None
