"""
Condition vocabulary shared by all providers.

Each adapter maps its native codes onto the categories below so that votes
between providers compare like with like. ``UNKNOWN`` is the fallback for
codes we do not recognise; it takes part in voting like any other category.
"""

import logging
from typing import Optional

from ensemble.models import UNKNOWN_CONDITION

logger = logging.getLogger(__name__)

CLEAR = "Clear"
CLOUDY = "Cloudy"
RAINY = "Rainy"
SNOW = "Snow"
FOGGY = "Foggy"
THUNDERSTORM = "Thunderstorm"
UNKNOWN = UNKNOWN_CONDITION

CATEGORIES = (CLEAR, CLOUDY, RAINY, SNOW, FOGGY, THUNDERSTORM)

# WMO 4677 codes as used by Open-Meteo
_WMO_CODES = {
    0: CLEAR, 1: CLEAR, 2: CLEAR,
    3: CLOUDY,
    45: FOGGY, 48: FOGGY,
    51: RAINY, 53: RAINY, 55: RAINY, 56: RAINY, 57: RAINY,
    61: RAINY, 63: RAINY, 65: RAINY, 66: RAINY, 67: RAINY,
    71: SNOW, 73: SNOW, 75: SNOW, 77: SNOW,
    80: RAINY, 81: RAINY, 82: RAINY,
    85: SNOW, 86: SNOW,
    95: THUNDERSTORM, 96: THUNDERSTORM, 99: THUNDERSTORM,
}

# OpenWeatherMap "main" groups
_OWM_GROUPS = {
    "clear": CLEAR,
    "clouds": CLOUDY,
    "rain": RAINY,
    "drizzle": RAINY,
    "snow": SNOW,
    "thunderstorm": THUNDERSTORM,
    "mist": FOGGY, "smoke": FOGGY, "haze": FOGGY, "dust": FOGGY, "fog": FOGGY,
    "sand": FOGGY, "ash": FOGGY, "squall": FOGGY, "tornado": FOGGY,
}

# WeatherAPI condition codes
_WEATHERAPI_CODES = {
    1000: CLEAR,
    1003: CLOUDY, 1006: CLOUDY, 1009: CLOUDY,
    1030: FOGGY, 1135: FOGGY, 1147: FOGGY,
    1087: THUNDERSTORM, 1273: THUNDERSTORM, 1276: THUNDERSTORM,
    1279: THUNDERSTORM, 1282: THUNDERSTORM,
}
_WEATHERAPI_RAIN = (1063, 1072, 1150, 1153, 1168, 1171, 1180, 1183, 1186, 1189,
                    1192, 1195, 1198, 1201, 1240, 1243, 1246)
_WEATHERAPI_SNOW = (1066, 1069, 1114, 1117, 1204, 1207, 1210, 1213, 1216, 1219,
                    1222, 1225, 1237, 1249, 1252, 1255, 1258, 1261, 1264)
_WEATHERAPI_CODES.update({code: RAINY for code in _WEATHERAPI_RAIN})
_WEATHERAPI_CODES.update({code: SNOW for code in _WEATHERAPI_SNOW})

# Keyword fallback for free text, checked in order
_TEXT_KEYWORDS = (
    ("thunder", THUNDERSTORM),
    ("storm", THUNDERSTORM),
    ("snow", SNOW),
    ("sleet", SNOW),
    ("blizzard", SNOW),
    ("ice", SNOW),
    ("rain", RAINY),
    ("drizzle", RAINY),
    ("shower", RAINY),
    ("fog", FOGGY),
    ("mist", FOGGY),
    ("haze", FOGGY),
    ("cloud", CLOUDY),
    ("overcast", CLOUDY),
    ("clear", CLEAR),
    ("sunny", CLEAR),
)


def from_wmo_code(code: Optional[int]) -> str:
    """Map an Open-Meteo WMO weather code."""
    if code is None:
        return UNKNOWN
    return _WMO_CODES.get(int(code), UNKNOWN)


def from_openweather(main: Optional[str], condition_id: Optional[int] = None) -> str:
    """Map an OpenWeatherMap weather entry.

    The ``main`` group is tried first; the numeric condition id is used when
    the group is missing or not one we know.
    """
    if main:
        category = _OWM_GROUPS.get(main.strip().lower())
        if category:
            return category
    if condition_id is not None:
        group = int(condition_id) // 100
        if group == 2:
            return THUNDERSTORM
        if group in (3, 5):
            return RAINY
        if group == 6:
            return SNOW
        if group == 7:
            return FOGGY
        if condition_id == 800:
            return CLEAR
        if group == 8:
            return CLOUDY
    return UNKNOWN


def from_weatherapi(code: Optional[int], text: Optional[str] = None) -> str:
    """Map a WeatherAPI condition code, falling back to its text."""
    if code is not None and int(code) in _WEATHERAPI_CODES:
        return _WEATHERAPI_CODES[int(code)]
    return from_text(text)


def from_text(text: Optional[str]) -> str:
    """Keyword match on a free-text description."""
    if not text:
        return UNKNOWN
    lowered = text.lower()
    for keyword, category in _TEXT_KEYWORDS:
        if keyword in lowered:
            return category
    logger.debug("conditions: no category for %r", text)
    return UNKNOWN
