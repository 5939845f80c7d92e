"""
OpenWeatherMap 5 day / 3 hour forecast adapter.

The free feed has no daily endpoint, so the 3-hourly slots are folded into
local calendar days using the ``city.timezone`` offset from the response:
max of maxima, min of minima, and the most frequent condition (earliest slot
wins a tie). Days beyond the feed are not invented.
"""

import logging
from collections import Counter, OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from ensemble.models import Provider, ProviderForecast
from providers import conditions
from providers.base import KeyedWeatherProvider, ProviderPermanentError

logger = logging.getLogger(__name__)

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/forecast"


class OpenWeatherProvider(KeyedWeatherProvider):
    provider = Provider.OPEN_WEATHER
    base_url = OPENWEATHER_URL
    timeout = 5.0
    max_days = 5

    def _params(self, city, days: int) -> Dict[str, Any]:
        return {
            "lat": city.latitude,
            "lon": city.longitude,
            "appid": self.api_key,
            "units": "metric",
        }

    def _parse(self, payload: Any, city) -> List[ProviderForecast]:
        slots = payload["list"]
        if not slots:
            raise ProviderPermanentError(self.name, "empty forecast list")
        offset = timedelta(seconds=int(payload.get("city", {}).get("timezone", 0)))

        days: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for slot in slots:
            local = datetime.fromtimestamp(int(slot["dt"]), tz=timezone.utc) + offset
            key = local.date().isoformat()
            main = slot["main"]
            weather = slot.get("weather") or [{}]
            category = conditions.from_openweather(weather[0].get("main"), weather[0].get("id"))

            bucket = days.setdefault(key, {"max": [], "min": [], "conditions": Counter()})
            bucket["max"].append(float(main["temp_max"]))
            bucket["min"].append(float(main["temp_min"]))
            bucket["conditions"][category] += 1

        forecasts = []
        for day, bucket in days.items():
            condition, _ = bucket["conditions"].most_common(1)[0]
            forecasts.append(ProviderForecast(
                date=day,
                temp_max=max(bucket["max"]),
                temp_min=min(bucket["min"]),
                condition=condition,
            ))
        return forecasts
