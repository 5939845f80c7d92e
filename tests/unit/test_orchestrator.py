"""Tests for the ensemble orchestrator."""
import asyncio
from datetime import date, timedelta
from unittest.mock import patch

import pytest

from ensemble.cache import ForecastCache
from ensemble.errors import (
    CityNotFoundError,
    DayFetchError,
    InvalidInputError,
    InvalidPeriodError,
    TooManyFailedDaysError,
)
from ensemble.fetcher import DayFetcher
from ensemble.models import Confidence, PerSourceData, ProviderForecast
from ensemble.orchestrator import EnsembleOrchestrator
from ensemble.periods import ForecastPeriod
from ensemble.worker_pool import WorkerPool


class ScriptedFetcher:
    """Fetcher double: fails chosen offsets, finishes later days first."""

    def __init__(self, failing=(), stagger: float = 0.0):
        self.failing = set(failing)
        self.stagger = stagger
        self.calls = []

    async def fetch_day(self, city, day_offset, today=None):
        self.calls.append(day_offset)
        if self.stagger:
            await asyncio.sleep(self.stagger * (10 - day_offset))
        if day_offset in self.failing:
            raise DayFetchError(day_offset, "all providers down")
        day = (today + timedelta(days=day_offset)).isoformat()
        return PerSourceData(
            open_meteo=ProviderForecast(date=day, temp_max=31.0, temp_min=24.0, condition="Rainy"),
        )


def _orchestrator(fetcher, gazetteer, today, cache=None) -> EnsembleOrchestrator:
    return EnsembleOrchestrator(
        fetcher,
        gazetteer,
        cache=cache if cache is not None else ForecastCache(ttl_seconds=3600, capacity=100),
        today=lambda: today,
    )


@pytest.fixture
def real_orchestrator(three_providers, gazetteer, today):
    fetcher = DayFetcher(three_providers, WorkerPool(3), day_timeout=2.0, today=lambda: today)
    return _orchestrator(fetcher, gazetteer, today)


def _total_calls(providers) -> int:
    return sum(p.calls for p in providers.values())


class TestCurrentWeek:
    @pytest.mark.asyncio
    async def test_seven_consecutive_days(self, real_orchestrator, jakarta, today):
        forecast = await real_orchestrator.get_forecast(jakarta, ForecastPeriod.current_week())

        assert forecast.city == "Jakarta"
        assert forecast.province == "DKI Jakarta"
        assert forecast.country == "Indonesia"
        assert len(forecast.days) == 7
        expected = [(today + timedelta(days=i)).isoformat() for i in range(7)]
        assert [d.date for d in forecast.days] == expected
        for day in forecast.days:
            assert day.final_forecast is not None
            assert day.final_forecast.temp_max >= day.final_forecast.temp_min
            assert day.final_forecast.confidence in set(Confidence)

    @pytest.mark.asyncio
    async def test_confidence_drops_when_coverage_thins(self, real_orchestrator, jakarta):
        forecast = await real_orchestrator.get_forecast(jakarta)
        # OpenWeatherMap covers five days, so the last two have two providers
        assert forecast.days[0].per_source.provider_count() == 3
        assert forecast.days[6].per_source.provider_count() == 2
        assert forecast.days[0].final_forecast.condition == "Rainy"

    @pytest.mark.asyncio
    async def test_calendar_order_despite_completion_order(self, gazetteer, jakarta, today):
        fetcher = ScriptedFetcher(stagger=0.005)
        forecast = await _orchestrator(fetcher, gazetteer, today).get_forecast(jakarta)
        dates = [d.date for d in forecast.days]
        assert dates == sorted(dates)
        assert len(dates) == 7

    @pytest.mark.asyncio
    async def test_four_failed_days_tolerated(self, gazetteer, jakarta, today):
        fetcher = ScriptedFetcher(failing={1, 3, 4, 6})
        forecast = await _orchestrator(fetcher, gazetteer, today).get_forecast(jakarta)
        assert len(forecast.days) == 7
        empty = [d for d in forecast.days if d.final_forecast is None]
        assert len(empty) == 4
        assert all(d.per_source.is_empty() for d in empty)
        assert forecast.days[1].date == (today + timedelta(days=1)).isoformat()

    @pytest.mark.asyncio
    async def test_five_failed_days_fail_request_and_cache_nothing(self, gazetteer, jakarta, today):
        orchestrator = _orchestrator(ScriptedFetcher(failing={0, 1, 2, 3, 4}), gazetteer, today)
        with pytest.raises(TooManyFailedDaysError) as exc_info:
            await orchestrator.get_forecast(jakarta)
        assert exc_info.value.failed == 5
        assert exc_info.value.status_code == 503
        assert len(orchestrator.cache) == 0

        orchestrator.fetcher = ScriptedFetcher()
        forecast = await orchestrator.get_forecast(jakarta)
        assert all(d.final_forecast is not None for d in forecast.days)


class TestNextWeek:
    @pytest.mark.asyncio
    async def test_monday_is_seven_to_thirteen_days_out(self, real_orchestrator, jakarta, today):
        forecast = await real_orchestrator.get_forecast(jakarta, ForecastPeriod.next_week(0))
        assert len(forecast.days) == 1
        target = date.fromisoformat(forecast.days[0].date)
        assert 7 <= (target - today).days <= 13
        assert target.weekday() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("weekday", range(7))
    async def test_every_weekday(self, gazetteer, jakarta, weekday):
        for start in range(7):
            today = date(2026, 10, 19) + timedelta(days=start)
            orchestrator = _orchestrator(ScriptedFetcher(), gazetteer, today)
            forecast = await orchestrator.get_forecast(jakarta, ForecastPeriod.next_week(weekday))
            target = date.fromisoformat(forecast.days[0].date)
            assert target.weekday() == weekday
            assert 7 <= (target - today).days <= 13

    @pytest.mark.asyncio
    async def test_single_failed_day_fails_request(self, gazetteer, jakarta, today):
        # Monday -> Wednesday of next week is offset 9
        orchestrator = _orchestrator(ScriptedFetcher(failing={9}), gazetteer, today)
        with pytest.raises(TooManyFailedDaysError):
            await orchestrator.get_forecast(jakarta, ForecastPeriod.next_week(2))

    @pytest.mark.asyncio
    async def test_out_of_range_day_rejected_before_fetch(self, real_orchestrator, three_providers, jakarta):
        with pytest.raises(InvalidPeriodError):
            await real_orchestrator.get_forecast(jakarta, ForecastPeriod("next_week", 7))
        assert _total_calls(three_providers) == 0
        assert real_orchestrator.cache_stats()["misses"] == 0


class TestCaching:
    @pytest.mark.asyncio
    async def test_repeat_request_makes_no_provider_calls(self, real_orchestrator, three_providers, jakarta):
        first = await real_orchestrator.get_forecast(jakarta)
        calls_after_first = _total_calls(three_providers)
        assert calls_after_first == 21

        second = await real_orchestrator.get_forecast(jakarta)
        assert _total_calls(three_providers) == calls_after_first
        assert second == first

    @pytest.mark.asyncio
    async def test_concurrent_identical_requests_fetch_once(self, real_orchestrator, three_providers, jakarta):
        results = await asyncio.gather(*(real_orchestrator.get_forecast(jakarta) for _ in range(5)))
        assert _total_calls(three_providers) == 21
        assert all(r is results[0] for r in results)

    @pytest.mark.asyncio
    async def test_periods_cached_separately(self, real_orchestrator, jakarta):
        await real_orchestrator.get_forecast(jakarta)
        await real_orchestrator.get_forecast(jakarta, ForecastPeriod.next_week(4))
        assert real_orchestrator.cache_stats()["total_entries"] == 2

    @pytest.mark.asyncio
    async def test_expired_entry_refetched(self, three_providers, gazetteer, jakarta, today):
        now = {"t": 0.0}
        cache = ForecastCache(ttl_seconds=3600, capacity=100, clock=lambda: now["t"])
        fetcher = DayFetcher(three_providers, WorkerPool(3), day_timeout=2.0, today=lambda: today)
        orchestrator = _orchestrator(fetcher, gazetteer, today, cache=cache)

        await orchestrator.get_forecast(jakarta)
        now["t"] = 3601.0
        await orchestrator.get_forecast(jakarta)
        assert _total_calls(three_providers) == 42

    @pytest.mark.asyncio
    async def test_injected_empty_cache_is_used(self, gazetteer, jakarta, today):
        cache = ForecastCache(ttl_seconds=3600, capacity=100)
        orchestrator = _orchestrator(ScriptedFetcher(), gazetteer, today, cache=cache)
        assert orchestrator.cache is cache

        await orchestrator.get_forecast(jakarta)
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_entry_from_yesterday_refetched_after_midnight(self, three_providers, gazetteer, jakarta, today):
        current = {"day": today}
        fetcher = DayFetcher(three_providers, WorkerPool(3), day_timeout=2.0, today=lambda: current["day"])
        orchestrator = EnsembleOrchestrator(
            fetcher, gazetteer, cache=ForecastCache(ttl_seconds=3600, capacity=100),
            today=lambda: current["day"],
        )

        monday = await orchestrator.get_forecast(jakarta)
        assert monday.days[0].date == today.isoformat()

        current["day"] = today + timedelta(days=1)
        tuesday = await orchestrator.get_forecast(jakarta)
        assert tuesday.days[0].date == (today + timedelta(days=1)).isoformat()
        assert _total_calls(three_providers) == 42
        assert orchestrator.cache_stats()["total_entries"] == 1

        again = await orchestrator.get_forecast(jakarta)
        assert again is tuesday
        assert _total_calls(three_providers) == 42


class TestVoting:
    @pytest.mark.asyncio
    async def test_condition_voted_once_per_day(self, real_orchestrator, jakarta):
        import sys
        import ensemble.orchestrator
        import ensemble.reconcile

        reconcile_mod = sys.modules["ensemble.reconcile"]
        orchestrator_mod = sys.modules["ensemble.orchestrator"]

        with patch.object(reconcile_mod, "majority_vote", wraps=reconcile_mod.majority_vote) as inner, \
                patch.object(orchestrator_mod, "majority_vote",
                             wraps=orchestrator_mod.majority_vote) as outer:
            await real_orchestrator.get_forecast(jakarta)

        assert inner.call_count == 0
        assert outer.call_count == 7


class TestByName:
    @pytest.mark.asyncio
    async def test_case_insensitive_lookup(self, real_orchestrator):
        forecast = await real_orchestrator.get_forecast_by_name("  jAkArTa ")
        assert forecast.city == "Jakarta"

    @pytest.mark.asyncio
    async def test_unknown_city(self, real_orchestrator, three_providers):
        with pytest.raises(CityNotFoundError) as exc_info:
            await real_orchestrator.get_forecast_by_name("Atlantis")
        assert exc_info.value.status_code == 404
        assert _total_calls(three_providers) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "x" * 51])
    async def test_invalid_name(self, real_orchestrator, name):
        with pytest.raises(InvalidInputError):
            await real_orchestrator.get_forecast_by_name(name)
