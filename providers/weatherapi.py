"""WeatherAPI.com forecast adapter (keyed, up to 14 days, queried by city name)."""

import logging
from typing import Any, Dict, List

from ensemble.models import Provider, ProviderForecast
from providers import conditions
from providers.base import KeyedWeatherProvider

logger = logging.getLogger(__name__)

WEATHERAPI_URL = "https://api.weatherapi.com/v1/forecast.json"


class WeatherApiProvider(KeyedWeatherProvider):
    provider = Provider.WEATHER_API
    base_url = WEATHERAPI_URL
    timeout = 5.0
    max_days = 14

    def _params(self, city, days: int) -> Dict[str, Any]:
        return {
            "key": self.api_key,
            "q": city.name,
            "days": days,
            "aqi": "no",
            "alerts": "no",
        }

    def _parse(self, payload: Any, city) -> List[ProviderForecast]:
        forecasts = []
        for entry in payload["forecast"]["forecastday"]:
            day = entry["day"]
            condition = day.get("condition") or {}
            forecasts.append(ProviderForecast(
                date=entry["date"],
                temp_max=float(day["maxtemp_c"]),
                temp_min=float(day["mintemp_c"]),
                condition=conditions.from_weatherapi(condition.get("code"), condition.get("text")),
            ))
        return forecasts
