"""
Per-Day Fetcher — fan out to every provider for one day, fan back in.

Each provider branch ends in one of three outcomes:
- ok: the provider returned a record for the target date
- absent: not configured, or its horizon does not reach the date
- failed: error after retries, or cut off by the per-day timeout

A branch's failure only empties its own slot. The day fails as a whole
(DayFetchError) only when no branch came back ok.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Dict, Iterable, Mapping, Optional

from ensemble.errors import DayFetchError
from ensemble.models import PROVIDER_PRIORITY, PerSourceData, Provider, ProviderForecast
from ensemble.worker_pool import WorkerPool
from providers.base import ProviderError, WeatherProvider

logger = logging.getLogger(__name__)

DEFAULT_DAY_TIMEOUT_SECONDS = 10.0
# Headroom over the slowest adapter's worst case
DAY_TIMEOUT_SLACK_SECONDS = 1.0
MIN_HORIZON_DAYS = 7


class OutcomeStatus(str, Enum):
    OK = "ok"
    ABSENT = "absent"
    FAILED = "failed"


@dataclass(frozen=True)
class ProviderOutcome:
    provider: Provider
    status: OutcomeStatus
    forecast: Optional[ProviderForecast] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, provider: Provider, forecast: ProviderForecast) -> "ProviderOutcome":
        return cls(provider, OutcomeStatus.OK, forecast=forecast)

    @classmethod
    def absent(cls, provider: Provider, reason: Optional[str] = None) -> "ProviderOutcome":
        return cls(provider, OutcomeStatus.ABSENT, error=reason)

    @classmethod
    def failed(cls, provider: Provider, error: str) -> "ProviderOutcome":
        return cls(provider, OutcomeStatus.FAILED, error=error)


def derive_day_timeout(adapters: Iterable[WeatherProvider]) -> float:
    """Per-day budget that lets every configured adapter use all its retries."""
    budgets = [a.time_budget for a in adapters if a.configured]
    if not budgets:
        return DEFAULT_DAY_TIMEOUT_SECONDS
    return max(budgets) + DAY_TIMEOUT_SLACK_SECONDS


class DayFetcher:
    """Fetches one day from every provider under a worker-pool permit."""

    def __init__(
        self,
        providers: Mapping[Provider, WeatherProvider],
        pool: WorkerPool,
        day_timeout: Optional[float] = None,
        today: Callable[[], date] = date.today,
    ):
        self.providers = dict(providers)
        self.pool = pool
        self.day_timeout = day_timeout if day_timeout is not None else derive_day_timeout(self.providers.values())
        self._today = today

    async def fetch_day(self, city, day_offset: int, today: Optional[date] = None) -> PerSourceData:
        """Per-source data for ``today + day_offset``.

        Raises:
            DayFetchError: no provider produced data for the day
        """
        outcomes = await self.fetch_outcomes(city, day_offset, today=today)
        forecasts = {
            p: o.forecast for p, o in outcomes.items() if o.status is OutcomeStatus.OK
        }
        if not forecasts:
            reasons = "; ".join(
                f"{p.value}={o.status.value}" + (f" ({o.error})" if o.error else "")
                for p, o in outcomes.items()
            )
            raise DayFetchError(day_offset, reasons)
        return PerSourceData.from_outcomes(forecasts)

    async def fetch_outcomes(
        self, city, day_offset: int, today: Optional[date] = None
    ) -> Dict[Provider, ProviderOutcome]:
        """One outcome per provider, in priority order."""
        if day_offset < 0:
            raise ValueError("day_offset must not be negative")
        target = ((today or self._today()) + timedelta(days=day_offset)).isoformat()
        horizon = max(MIN_HORIZON_DAYS, day_offset + 1)

        outcomes: Dict[Provider, ProviderOutcome] = {}
        tasks: Dict[Provider, asyncio.Task] = {}

        async with self.pool.permit():
            for provider in PROVIDER_PRIORITY:
                adapter = self.providers.get(provider)
                if adapter is None or not adapter.configured:
                    outcomes[provider] = ProviderOutcome.absent(provider, "not configured")
                    continue
                tasks[provider] = asyncio.ensure_future(
                    self._call(provider, adapter, city, horizon, target)
                )

            try:
                if tasks:
                    _, pending = await asyncio.wait(tasks.values(), timeout=self.day_timeout)
                    if pending:
                        logger.warning(
                            "fetcher: day %d for %s hit %.1fs timeout, cancelling %d call(s)",
                            day_offset, city.name, self.day_timeout, len(pending)
                        )
            finally:
                # Also runs when this day is cancelled from outside
                outstanding = [t for t in tasks.values() if not t.done()]
                for task in outstanding:
                    task.cancel()
                if outstanding:
                    await asyncio.gather(*outstanding, return_exceptions=True)

        for provider, task in tasks.items():
            if task.cancelled():
                outcomes[provider] = ProviderOutcome.failed(provider, f"timed out after {self.day_timeout}s")
            else:
                outcomes[provider] = task.result()

        ordered = {p: outcomes[p] for p in PROVIDER_PRIORITY}
        logger.debug(
            "fetcher: %s %s -> %s", city.name, target,
            ", ".join(f"{p.value}={o.status.value}" for p, o in ordered.items())
        )
        return ordered

    async def _call(
        self, provider: Provider, adapter: WeatherProvider, city, horizon: int, target: str
    ) -> ProviderOutcome:
        try:
            forecasts = await adapter.daily(city, days=horizon)
        except ProviderError as e:
            return ProviderOutcome.failed(provider, str(e))
        except Exception as e:
            logger.exception("fetcher: unexpected error from %s", provider.value)
            return ProviderOutcome.failed(provider, f"{type(e).__name__}: {e}")

        for forecast in forecasts:
            if forecast.date == target:
                return ProviderOutcome.ok(provider, forecast)
        return ProviderOutcome.absent(provider, f"no data for {target}")
