"""
Saved cities and the active city.

CityRegistry is the only writer of the saved_cities list. Names are unique
(exact, case-sensitive match) and the list keeps insertion order, which is
also display order.

ActiveCitySelector is a single last-write-wins slot holding a city name. It
does not check the registry: a geolocated city can be active without being
saved, and removing a city does not clear it.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from .cache import CacheStore
from .errors import StorageError
from .schemas import ForecastBundle, SavedCity, WeatherSnapshot
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

SAVED_CITIES_KEY = "saved_cities"
LAST_CITY_KEY = "last_city"

_city_list = TypeAdapter(List[SavedCity])


class ActiveCitySelector:
    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get(self) -> Optional[str]:
        return await self.store.get(LAST_CITY_KEY)

    async def set(self, name: str) -> None:
        await self.store.set(LAST_CITY_KEY, name)


class CityRegistry:
    def __init__(
        self,
        store: KeyValueStore,
        weather_cache: CacheStore[WeatherSnapshot],
        forecast_cache: CacheStore[ForecastBundle],
    ):
        self.store = store
        self.weather_cache = weather_cache
        self.forecast_cache = forecast_cache
        self.active = ActiveCitySelector(store)

    async def list(self) -> List[SavedCity]:
        raw = await self.store.get(SAVED_CITIES_KEY)
        if not raw:
            return []
        try:
            return _city_list.validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Corrupt saved city list: {e}") from e

    async def contains(self, name: str) -> bool:
        return any(c.name == name for c in await self.list())

    async def add(self, city: SavedCity) -> bool:
        """
        Append a city. Returns False (and changes nothing) if a city with the
        same name is already saved.
        """
        cities = await self.list()
        if any(c.name == city.name for c in cities):
            logger.debug("City %r already saved", city.name)
            return False

        cities.append(city)
        await self._save(cities)
        logger.info("Saved city %r (%d total)", city.name, len(cities))
        return True

    async def remove(self, name: str) -> None:
        """Delete a city by name and purge its cached weather and forecast."""
        cities = await self.list()
        remaining = [c for c in cities if c.name != name]
        if len(remaining) != len(cities):
            await self._save(remaining)
            logger.info("Removed city %r", name)

        # Cached data goes either way; it may exist for an unsaved city too.
        await self.weather_cache.invalidate(name)
        await self.forecast_cache.invalidate(name)

    async def set_active(self, name: str) -> None:
        await self.active.set(name)

    async def get_active(self) -> Optional[str]:
        return await self.active.get()

    async def _save(self, cities: List[SavedCity]) -> None:
        payload = [c.model_dump(by_alias=True) for c in cities]
        await self.store.set(SAVED_CITIES_KEY, json.dumps(payload))
