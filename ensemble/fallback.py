"""
Single-source forecast: the first provider that answers wins.

Providers are tried in priority order (Open-Meteo, OpenWeatherMap,
WeatherAPI); adapters without credentials are skipped. Nothing is averaged
and nothing is cached. The call holds one worker-pool permit, the same
budget a single ensemble day uses.
"""

import logging
from typing import List, Mapping, Optional

from ensemble.cities import City, Gazetteer, validate_city_input
from ensemble.errors import NoProviderDataError
from ensemble.models import PROVIDER_PRIORITY, Provider, WeatherForecast
from ensemble.worker_pool import WorkerPool
from providers.base import ProviderError, WeatherProvider

logger = logging.getLogger(__name__)

FORECAST_DAYS = 7


class SingleSourceForecaster:
    def __init__(
        self,
        providers: Mapping[Provider, WeatherProvider],
        pool: WorkerPool,
        gazetteer: Gazetteer,
        days: int = FORECAST_DAYS,
    ):
        self.providers = dict(providers)
        self.pool = pool
        self.gazetteer = gazetteer
        self.days = days

    async def get_forecast(self, city: City) -> WeatherForecast:
        """Forecast from the first provider that returns data.

        Raises:
            NoProviderDataError: every configured provider failed or returned nothing
        """
        return await self.pool.run(lambda: self._first_answer(city))

    async def get_forecast_by_name(self, name: Optional[str]) -> WeatherForecast:
        city = self.gazetteer.find(validate_city_input(name))
        return await self.get_forecast(city)

    async def _first_answer(self, city: City) -> WeatherForecast:
        failures: List[str] = []
        for provider in PROVIDER_PRIORITY:
            adapter = self.providers.get(provider)
            if adapter is None or not adapter.configured:
                logger.info("fallback: %s not configured, skipping", provider.value)
                continue
            try:
                forecasts = await adapter.daily(city, days=self.days)
            except ProviderError as e:
                logger.warning("fallback: %s failed for %s: %s", provider.value, city.name, e)
                failures.append(str(e))
                continue
            except Exception as e:
                logger.exception("fallback: unexpected error from %s", provider.value)
                failures.append(f"{provider.value}: {type(e).__name__}: {e}")
                continue
            if not forecasts:
                failures.append(f"{provider.value}: no days returned")
                continue

            logger.info("fallback: %s served %d day(s) for %s", provider.value, len(forecasts), city.name)
            return WeatherForecast(
                city=city.name,
                province=city.province,
                country=self.gazetteer.country,
                latitude=city.latitude,
                longitude=city.longitude,
                provider=provider,
                forecast=tuple(forecasts),
            )

        logger.error("fallback: all providers failed for %s", city.name)
        reason = "; ".join(failures) or "no provider configured"
        raise NoProviderDataError(f"All providers failed for {city.name}: {reason}")
