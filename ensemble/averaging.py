"""
Weighted temperature averaging across providers.

Fixed trust weights (Open-Meteo 0.40, OpenWeatherMap 0.35, WeatherAPI 0.25)
are renormalized over the providers that actually reported, so a lone
provider's value passes through unchanged.
"""

from typing import Mapping, Optional

from ensemble.models import PROVIDER_PRIORITY, Provider

PROVIDER_WEIGHTS = {
    Provider.OPEN_METEO: 0.40,
    Provider.OPEN_WEATHER: 0.35,
    Provider.WEATHER_API: 0.25,
}

# Returned when no provider reported. Callers must not treat it as a reading.
NO_DATA_SENTINEL = 0.0


def weighted_average(values: Mapping[Provider, Optional[float]]) -> float:
    """Weighted mean of the present values.

    Args:
        values: Provider -> temperature, or None when the provider is absent

    Returns:
        The renormalized weighted mean, or ``NO_DATA_SENTINEL`` if nothing is present
    """
    present = [
        (values[p], PROVIDER_WEIGHTS[p])
        for p in PROVIDER_PRIORITY
        if values.get(p) is not None
    ]
    if not present:
        return NO_DATA_SENTINEL
    if len(present) == 1:
        return float(present[0][0])

    total_weight = sum(w for _, w in present)
    result = sum(v * w for v, w in present) / total_weight

    # Guard against float drift pushing the mean just outside the inputs
    lo = min(v for v, _ in present)
    hi = max(v for v, _ in present)
    return min(max(result, lo), hi)
