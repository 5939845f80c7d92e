"""
Forecast provider adapters
- Open-Meteo (keyless, WMO codes, 16 days)
- OpenWeatherMap (keyed, 3-hourly feed folded into days, 5 days)
- WeatherAPI.com (keyed, condition codes + text, 14 days)

Every adapter shares one pooled httpx.AsyncClient and the same retry policy.
"""

from typing import Dict, Optional

import httpx

from ensemble.models import Provider
from .base import (
    PROVIDER_RETRY_POLICY,
    ProviderError,
    ProviderPermanentError,
    ProviderTransientError,
    WeatherProvider,
    is_placeholder_key,
)
from .open_meteo import OpenMeteoProvider
from .openweather import OpenWeatherProvider
from .weatherapi import WeatherApiProvider
from . import conditions


def build_providers(
    client: httpx.AsyncClient,
    openweather_api_key: Optional[str] = None,
    weatherapi_key: Optional[str] = None,
    timezone: str = "Asia/Jakarta",
) -> Dict[Provider, WeatherProvider]:
    """All three adapters keyed by provider; keyless ones report ``configured``."""
    return {
        Provider.OPEN_METEO: OpenMeteoProvider(client, timezone=timezone),
        Provider.OPEN_WEATHER: OpenWeatherProvider(client, api_key=openweather_api_key),
        Provider.WEATHER_API: WeatherApiProvider(client, api_key=weatherapi_key),
    }


__all__ = [
    "build_providers",
    "conditions",
    "WeatherProvider",
    "OpenMeteoProvider",
    "OpenWeatherProvider",
    "WeatherApiProvider",
    "ProviderError",
    "ProviderTransientError",
    "ProviderPermanentError",
    "PROVIDER_RETRY_POLICY",
    "is_placeholder_key",
]
