"""
City gazetteer.

``Gazetteer.load()`` reads the bundled city list once and returns an
immutable lookup table. The app builds one at startup and hands it to
whatever needs it; there is no module-level city list.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ensemble.errors import CityNotFoundError, InvalidInputError

logger = logging.getLogger(__name__)

DATA_FILE = Path(__file__).parent / "data" / "cities.json"
DEFAULT_COUNTRY = "Indonesia"
MAX_CITY_NAME_LENGTH = 50


class City(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    province: str
    latitude: float
    longitude: float


def validate_city_input(name: Optional[str]) -> str:
    """Trimmed city name, or InvalidInputError if empty or over 50 characters."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise InvalidInputError("City name is required")
    if len(trimmed) > MAX_CITY_NAME_LENGTH:
        raise InvalidInputError(f"City name must not exceed {MAX_CITY_NAME_LENGTH} characters")
    return trimmed


class Gazetteer:
    """Read-only, case-insensitive city lookup."""

    def __init__(self, cities: Iterable[City], country: str = DEFAULT_COUNTRY):
        self._cities: Tuple[City, ...] = tuple(cities)
        self._by_name = {c.name.lower(): c for c in self._cities}
        self.country = country

    @classmethod
    def load(cls, path: Path = DATA_FILE, country: str = DEFAULT_COUNTRY) -> "Gazetteer":
        with open(path, encoding="utf-8") as f:
            records = json.load(f)
        gazetteer = cls((City(**r) for r in records), country=country)
        logger.info("Loaded %d cities from %s", len(gazetteer), path.name)
        return gazetteer

    def find(self, name: str) -> City:
        city = self._by_name.get(name.strip().lower())
        if city is None:
            logger.debug("City not found: %r", name)
            raise CityNotFoundError(name.strip())
        return city

    def all(self) -> Tuple[City, ...]:
        return self._cities

    def __len__(self) -> int:
        return len(self._cities)

    def __contains__(self, name: str) -> bool:
        return name.strip().lower() in self._by_name
