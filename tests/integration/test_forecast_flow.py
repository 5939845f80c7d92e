# Integration tests for the forecast request flow
import asyncio

import pytest
from fastapi.testclient import TestClient

from ensemble.models import Provider

pytestmark = pytest.mark.integration


def _calls(providers) -> int:
    return sum(p.calls for p in providers.values())


class TestForecastFlow:
    """End-to-end: HTTP request through orchestrator, fetcher and cache."""

    def test_repeat_request_served_from_cache(self, api_client, three_providers):
        first = api_client.get("/api/weather/ensemble", params={"city": "Jakarta"})
        assert first.status_code == 200
        assert _calls(three_providers) == 21

        second = api_client.get("/api/weather/ensemble", params={"city": "JAKARTA"})
        assert second.status_code == 200
        assert _calls(three_providers) == 21
        assert second.json()["days"] == first.json()["days"]

        stats = api_client.get("/api/cache/stats").json()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_one_provider_down_still_serves(self, api_client, three_providers):
        from providers.base import ProviderPermanentError

        three_providers[Provider.OPEN_METEO].error = ProviderPermanentError("open_meteo", "HTTP 400")
        data = api_client.get("/api/weather/ensemble", params={"city": "Surabaya"}).json()

        assert len(data["days"]) == 7
        for day in data["days"]:
            assert day["per_source"]["open_meteo"] is None
            assert day["final_forecast"] is not None

    def test_failed_request_not_cached(self, api_client, three_providers):
        for fake in three_providers.values():
            fake.error = RuntimeError("boom")
        assert api_client.get("/api/weather/ensemble", params={"city": "Jakarta"}).status_code == 503

        for fake in three_providers.values():
            fake.error = None
        response = api_client.get("/api/weather/ensemble", params={"city": "Jakarta"})
        assert response.status_code == 200
        assert len(response.json()["days"]) == 7

    def test_requests_share_one_worker_pool(self, api_client, ensemble_orchestrator):
        pool = ensemble_orchestrator.fetcher.pool
        for city in ("Jakarta", "Bandung", "Medan"):
            assert api_client.get("/api/weather/ensemble", params={"city": city}).status_code == 200
        assert api_client.get("/api/weather", params={"city": "Makassar"}).status_code == 200

        assert pool.available_permits == pool.size
        assert api_client.get("/api/cache/stats").json()["worker_pool"]["active"] == 0

    def test_partial_week_with_empty_days(self, api_client, three_providers, today):
        # Every provider returns nothing for days 4..6, three failed days is tolerated
        for fake in three_providers.values():
            fake.forecasts = fake.forecasts[:4]
        data = api_client.get("/api/weather/ensemble", params={"city": "Jakarta"}).json()

        assert len(data["days"]) == 7
        assert [d["final_forecast"] is None for d in data["days"]] == [False] * 4 + [True] * 3
        assert data["days"][5]["per_source"] == {p.value: None for p in Provider}


class TestConcurrentRequests:
    @pytest.mark.asyncio
    async def test_concurrent_cities_share_worker_pool(self, ensemble_orchestrator, three_providers):
        cities = ["Jakarta", "Bandung", "Medan", "Makassar"]
        results = await asyncio.gather(*(ensemble_orchestrator.get_forecast_by_name(c) for c in cities))

        assert [r.city for r in results] == cities
        assert _calls(three_providers) == 21 * len(cities)
        assert ensemble_orchestrator.fetcher.pool.peak_active <= 3
        assert ensemble_orchestrator.fetcher.pool.available_permits == 3


def test_lifespan_wires_orchestrator():
    """Startup builds the real orchestrator; no provider traffic needed."""
    from api.main import app

    with TestClient(app) as client:
        stats = client.get("/api/cache/stats")
        assert stats.status_code == 200
        assert stats.json()["total_entries"] == 0
        assert client.get("/api/cities").json()["count"] > 0
