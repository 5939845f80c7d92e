"""
Base class for forecast provider adapters.

An adapter turns one upstream API into a list of ``ProviderForecast`` records
starting today. It owns its HTTP timeout and its vocabulary mapping; retries
go through the shared ``resilient_call`` wrapper with ``PROVIDER_RETRY_POLICY``.

Failures are split in two:
- ``ProviderTransientError``: network errors, timeouts, HTTP 429 and 5xx. Retried.
- ``ProviderPermanentError``: other 4xx, bad JSON, unexpected payload shape.
  Never retried.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from providers.resilient_fetch import RetryPolicy, resilient_call
from ensemble.models import Provider, ProviderForecast

if TYPE_CHECKING:
    from ensemble.cities import City

logger = logging.getLogger(__name__)

PLACEHOLDER_KEYS = {
    "",
    "your-key-here",
    "your_api_key",
    "your-api-key",
    "changeme",
    "change-me",
    "xxx",
    "none",
    "null",
}


class ProviderError(Exception):
    """Base class for adapter failures."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderTransientError(ProviderError):
    """Failure that may succeed on retry."""


class ProviderPermanentError(ProviderError):
    """Failure that will not go away by retrying."""


PROVIDER_RETRY_POLICY = RetryPolicy(
    max_attempts=3,
    base_delay=0.5,
    retry_on=(ProviderTransientError,),
)


def is_placeholder_key(key: Optional[str]) -> bool:
    """True if ``key`` is unset or an obvious template value."""
    if key is None:
        return True
    normalized = key.strip().lower()
    return normalized in PLACEHOLDER_KEYS or set(normalized) == {"x"}


class WeatherProvider:
    """Common plumbing for the three forecast adapters.

    Subclasses set ``provider``, ``base_url``, ``timeout`` and ``max_days``
    and implement ``_params`` and ``_parse``.
    """

    provider: Provider
    base_url: str = ""
    timeout: float = 10.0
    max_days: int = 7

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        retry_policy: RetryPolicy = PROVIDER_RETRY_POLICY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        if base_url:
            self.base_url = base_url
        self.api_key = api_key
        self.retry_policy = retry_policy
        self._sleep = sleep

    @property
    def name(self) -> str:
        return self.provider.value

    @property
    def configured(self) -> bool:
        """Whether the adapter has what it needs to be called at all."""
        return True

    @property
    def time_budget(self) -> float:
        """Worst case for one ``daily`` call: every attempt times out."""
        return self.timeout * self.retry_policy.max_attempts + self.retry_policy.total_backoff()

    async def daily(self, city: "City", days: int = 7) -> List[ProviderForecast]:
        """Fetch up to ``days`` daily forecasts for ``city``, starting today.

        Fewer records come back when the provider's horizon is shorter.

        Raises:
            ProviderTransientError: retries exhausted on a transient failure
            ProviderPermanentError: non-retryable failure
        """
        if not self.configured:
            raise ProviderPermanentError(self.name, "no API key configured")
        horizon = max(1, min(days, self.max_days))
        return await resilient_call(
            self.name,
            lambda: self._fetch_once(city, horizon),
            self.retry_policy,
            sleep=self._sleep,
        )

    async def _fetch_once(self, city: "City", days: int) -> List[ProviderForecast]:
        payload = await self._request(self._params(city, days))
        try:
            forecasts = self._parse(payload, city)
        except ProviderError:
            raise
        except (KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
            raise ProviderPermanentError(self.name, f"malformed payload: {type(e).__name__}: {e}") from e
        logger.debug("%s: %d days for %s", self.name, len(forecasts), city.name)
        return forecasts[:days]

    async def _request(self, params: Dict[str, Any]) -> Any:
        try:
            resp = await self.client.get(self.base_url, params=params, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise ProviderTransientError(self.name, f"timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            raise ProviderTransientError(self.name, f"request failed: {type(e).__name__}") from e

        status = resp.status_code
        if status == 429 or status >= 500:
            raise ProviderTransientError(self.name, f"HTTP {status}")
        if status >= 400:
            raise ProviderPermanentError(self.name, f"HTTP {status}")

        try:
            return resp.json()
        except ValueError as e:
            raise ProviderPermanentError(self.name, "invalid JSON body") from e

    def _params(self, city: "City", days: int) -> Dict[str, Any]:
        raise NotImplementedError

    def _parse(self, payload: Any, city: "City") -> List[ProviderForecast]:
        raise NotImplementedError


class KeyedWeatherProvider(WeatherProvider):
    """Adapter that needs an API key; skipped when the key is a placeholder."""

    @property
    def configured(self) -> bool:
        return not is_placeholder_key(self.api_key)
