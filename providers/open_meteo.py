"""
Open-Meteo daily forecast adapter.

Free, keyless, up to 16 days. Queried by coordinates with the local timezone
so that ``daily.time`` lines up with the city's calendar days.
"""

import logging
from typing import Any, Dict, List

from ensemble.models import Provider, ProviderForecast
from providers import conditions
from providers.base import ProviderPermanentError, WeatherProvider

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_TIMEZONE = "Asia/Jakarta"


class OpenMeteoProvider(WeatherProvider):
    provider = Provider.OPEN_METEO
    base_url = OPEN_METEO_URL
    timeout = 5.0
    max_days = 16

    def __init__(self, client, timezone: str = DEFAULT_TIMEZONE, **kwargs):
        super().__init__(client, **kwargs)
        self.timezone = timezone

    def _params(self, city, days: int) -> Dict[str, Any]:
        return {
            "latitude": city.latitude,
            "longitude": city.longitude,
            "daily": "temperature_2m_max,temperature_2m_min,weather_code",
            "timezone": self.timezone,
            "forecast_days": days,
        }

    def _parse(self, payload: Any, city) -> List[ProviderForecast]:
        daily = payload["daily"]
        dates = daily["time"]
        maxes = daily["temperature_2m_max"]
        mins = daily["temperature_2m_min"]
        codes = daily["weather_code"]
        if not (len(dates) == len(maxes) == len(mins) == len(codes)):
            raise ProviderPermanentError(self.name, "daily arrays have different lengths")

        forecasts = []
        for day, t_max, t_min, code in zip(dates, maxes, mins, codes):
            if t_max is None or t_min is None:
                # Open-Meteo nulls out days past the model's reach
                logger.debug("open_meteo: no temperatures for %s, skipping", day)
                continue
            forecasts.append(ProviderForecast(
                date=day,
                temp_max=float(t_max),
                temp_min=float(t_min),
                condition=conditions.from_wmo_code(code),
            ))
        return forecasts
