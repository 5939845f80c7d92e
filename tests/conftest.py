# Pytest configuration and fixtures for weather ensemble tests
import asyncio
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Generator, List, Optional

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from providers import source_health
from ensemble.cities import Gazetteer
from ensemble.models import Provider, ProviderForecast

# A Monday, so weekday arithmetic in tests is easy to follow
FIXED_TODAY = date(2026, 10, 19)


def make_days(
    start: date,
    count: int,
    temp_max: float = 32.0,
    temp_min: float = 24.0,
    condition: str = "Cloudy",
) -> List[ProviderForecast]:
    """``count`` identical daily forecasts starting at ``start``."""
    return [
        ProviderForecast(
            date=(start + timedelta(days=i)).isoformat(),
            temp_max=temp_max,
            temp_min=temp_min,
            condition=condition,
        )
        for i in range(count)
    ]


class FakeProvider:
    """Stand-in adapter with a call counter.

    Returns ``forecasts`` truncated to the requested horizon, or raises
    ``error``. ``delay`` makes it slow enough to trip a per-day timeout.
    """

    def __init__(
        self,
        provider: Provider,
        forecasts: Optional[List[ProviderForecast]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        configured: bool = True,
    ):
        self.provider = provider
        self.forecasts = forecasts or []
        self.error = error
        self.delay = delay
        self.configured = configured
        self.calls = 0
        self.requested_days: List[int] = []

    @property
    def name(self) -> str:
        return self.provider.value

    async def daily(self, city, days: int = 7) -> List[ProviderForecast]:
        self.calls += 1
        self.requested_days.append(days)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.forecasts[:days])


@pytest.fixture(autouse=True)
def reset_source_health() -> Generator[None, None, None]:
    """Provider health counters are process-global; start each test clean."""
    source_health.reset()
    yield
    source_health.reset()


@pytest.fixture(scope="session")
def gazetteer() -> Gazetteer:
    """The bundled city list."""
    return Gazetteer.load()


@pytest.fixture
def jakarta(gazetteer: Gazetteer):
    return gazetteer.find("Jakarta")


@pytest.fixture
def today() -> date:
    return FIXED_TODAY


@pytest.fixture
def three_providers(today: date) -> dict:
    """All three providers healthy, two weeks of slightly different data."""
    return {
        Provider.OPEN_METEO: FakeProvider(Provider.OPEN_METEO, make_days(today, 16, 32.0, 24.0, "Rainy")),
        Provider.OPEN_WEATHER: FakeProvider(Provider.OPEN_WEATHER, make_days(today, 5, 33.0, 25.0, "Rainy")),
        Provider.WEATHER_API: FakeProvider(Provider.WEATHER_API, make_days(today, 14, 31.0, 24.0, "Cloudy")),
    }


@pytest.fixture
def api_base_url() -> str:
    """Base URL for the API - empty string since TestClient uses relative paths."""
    return ""


@pytest.fixture
def fake_provider():
    """The FakeProvider class, for tests that build their own set."""
    return FakeProvider


@pytest.fixture
def days_factory():
    return make_days


@pytest.fixture
def ensemble_orchestrator(three_providers: dict, gazetteer: Gazetteer, today: date):
    """Orchestrator over the fake providers with a short day timeout."""
    from ensemble.cache import ForecastCache
    from ensemble.fetcher import DayFetcher
    from ensemble.orchestrator import EnsembleOrchestrator
    from ensemble.worker_pool import WorkerPool

    fetcher = DayFetcher(three_providers, WorkerPool(3), day_timeout=2.0, today=lambda: today)
    return EnsembleOrchestrator(fetcher, gazetteer, cache=ForecastCache(), today=lambda: today)


@pytest.fixture
def api_client(ensemble_orchestrator):
    """TestClient wired to ``ensemble_orchestrator`` with rate limits off.

    Entered as a context manager so every request of a test runs on the one
    event loop the worker-pool semaphore is bound to.
    """
    from fastapi.testclient import TestClient

    from api import main
    from api.deps import build_single_source, get_orchestrator, get_single_source
    from api.routes import system, weather

    limiters = [main.limiter, system.limiter, weather.limiter]
    for limiter in limiters:
        limiter.enabled = False
    single_source = build_single_source(ensemble_orchestrator)
    main.app.dependency_overrides[get_orchestrator] = lambda: ensemble_orchestrator
    main.app.dependency_overrides[get_single_source] = lambda: single_source
    try:
        with TestClient(main.app, raise_server_exceptions=False) as client:
            yield client
    finally:
        main.app.dependency_overrides.clear()
        for limiter in limiters:
            limiter.enabled = True
