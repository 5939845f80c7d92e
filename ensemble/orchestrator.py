"""
Ensemble Orchestrator — one request from cache check to assembled forecast.

    CacheCheck -> HIT: return
               -> MISS: fetch days concurrently -> reconcile + score each
                        -> assemble in calendar order -> cache write -> return

The miss path runs inside ``ForecastCache.get_or_fetch`` so identical
concurrent requests share one fetch. A day where every provider failed is
kept as an empty slot; the request itself fails only when too many days
are empty.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from ensemble.cache import ForecastCache
from ensemble.cities import City, Gazetteer, validate_city_input
from ensemble.confidence import confidence_details
from ensemble.errors import DayFetchError, InvalidPeriodError, TooManyFailedDaysError
from ensemble.fetcher import DayFetcher
from ensemble.models import DayEnsemble, EnsembleForecast, PerSourceData
from ensemble.periods import ForecastPeriod
from ensemble.reconcile import reconcile
from ensemble.voting import majority_vote

logger = logging.getLogger(__name__)

MAX_FAILED_DAYS = 4
DEFAULT_TIMEZONE = "Asia/Jakarta"


def local_today(tz_name: str = DEFAULT_TIMEZONE) -> Callable[[], date]:
    """Today's date in ``tz_name``, evaluated on each call."""
    tz = ZoneInfo(tz_name)
    return lambda: datetime.now(tz).date()


class EnsembleOrchestrator:
    def __init__(
        self,
        fetcher: DayFetcher,
        gazetteer: Gazetteer,
        cache: Optional[ForecastCache[EnsembleForecast]] = None,
        today: Optional[Callable[[], date]] = None,
        max_failed_days: int = MAX_FAILED_DAYS,
    ):
        self.fetcher = fetcher
        self.gazetteer = gazetteer
        self.cache: ForecastCache[EnsembleForecast] = cache if cache is not None else ForecastCache()
        self._today = today or local_today()
        self.max_failed_days = max_failed_days

    async def get_forecast(
        self, city: City, period: Optional[ForecastPeriod] = None
    ) -> EnsembleForecast:
        """Ensemble forecast for ``city`` over ``period`` (current week by default).

        Raises:
            InvalidPeriodError: bad period, checked before any cache or provider access
            TooManyFailedDaysError: more empty days than the request tolerates
        """
        period = period or ForecastPeriod.current_week()
        today = self._today()
        offsets = period.day_offsets(today)
        if not offsets:
            raise InvalidPeriodError("No target dates for the requested period")

        # Keys carry no date, so an entry written before midnight is refused
        # once its first day is no longer the first requested date
        first_date = (today + timedelta(days=offsets[0])).isoformat()
        key = period.cache_key(city.name)
        return await self.cache.get_or_fetch(
            key,
            lambda: self._build(city, today, offsets),
            accept=lambda forecast: bool(forecast.days) and forecast.days[0].date == first_date,
        )

    async def get_forecast_by_name(
        self, name: str, period: Optional[ForecastPeriod] = None
    ) -> EnsembleForecast:
        city = self.gazetteer.find(validate_city_input(name))
        return await self.get_forecast(city, period)

    def cache_stats(self) -> dict:
        return self.cache.stats()

    async def _build(self, city: City, today: date, offsets: List[int]) -> EnsembleForecast:
        logger.info("orchestrator: fetching %d day(s) for %s", len(offsets), city.name)
        results = await asyncio.gather(*(self._build_day(city, today, o) for o in offsets))

        days = sorted((day for day, _ in results), key=lambda d: d.date)
        failed = sum(1 for _, ok in results if not ok)
        allowed = min(self.max_failed_days, len(offsets) - 1)
        if failed > allowed:
            logger.error(
                "orchestrator: %s failed %d/%d days (allowed %d)",
                city.name, failed, len(offsets), allowed
            )
            raise TooManyFailedDaysError(failed, len(offsets))
        if failed:
            logger.warning("orchestrator: %s has %d empty day(s)", city.name, failed)

        return EnsembleForecast(
            city=city.name,
            province=city.province,
            country=self.gazetteer.country,
            latitude=city.latitude,
            longitude=city.longitude,
            days=tuple(days),
        )

    async def _build_day(self, city: City, today: date, offset: int) -> Tuple[DayEnsemble, bool]:
        day = (today + timedelta(days=offset)).isoformat()
        try:
            per_source = await self.fetcher.fetch_day(city, offset, today=today)
        except DayFetchError as e:
            logger.warning("orchestrator: %s %s empty: %s", city.name, day, e.message)
            return DayEnsemble(date=day, per_source=PerSourceData()), False

        vote = majority_vote((p, f.condition) for p, f in per_source.present())
        final = reconcile(per_source, vote)
        details = confidence_details(per_source, vote.agreement)
        logger.info(
            "orchestrator: %s %s providers=%d spread=(%.1f, %.1f) agreement=%.2f score=%.2f -> %s",
            city.name, day, details.provider_count, details.max_temp_deviation,
            details.min_temp_deviation, details.condition_agreement, details.score,
            final.confidence.value
        )
        return DayEnsemble(date=day, per_source=per_source, final_forecast=final), True
