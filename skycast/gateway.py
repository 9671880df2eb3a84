"""
Weather gateway: decides between cache and remote fetch.

Current weather and forecasts are cached per resolved city name (the name the
provider returns, which may differ in case or spelling from what was asked).
Remote failures propagate as FetchError/NotFoundError; there are no retries
here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from .cache import CacheStore, Clock, epoch_ms
from .forecast import aggregate
from .schemas import CityCandidate, Coordinates, ForecastBundle, WeatherSnapshot
from .weather_clients import (
    MAX_CITY_CANDIDATES,
    RemoteWeatherAPI,
    parse_candidates,
    parse_current,
    parse_forecast,
)

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


class WeatherGateway:
    def __init__(
        self,
        api: RemoteWeatherAPI,
        weather_cache: CacheStore[WeatherSnapshot],
        forecast_cache: CacheStore[ForecastBundle],
        clock: Clock = epoch_ms,
    ):
        self.api = api
        self.weather_cache = weather_cache
        self.forecast_cache = forecast_cache
        self.clock = clock

    async def get_current_weather_for_city(self, name: str) -> WeatherSnapshot:
        """
        Cache-first lookup.

        A cached snapshot without utc_offset_seconds was written by an older
        schema and cannot show local time, so it is refetched even if fresh.
        """
        cached = await self.weather_cache.read(name)
        if cached is not None:
            if cached.utc_offset_seconds is not None:
                return cached
            logger.warning("Cached weather for %r has no UTC offset, refetching", name)

        data = await self.api.fetch_current(city=name)
        return await self._store_snapshot(data)

    async def get_current_weather_for_coordinates(self, coords: Coordinates) -> WeatherSnapshot:
        """Always remote: the cache key (city name) is only known from the response."""
        data = await self.api.fetch_current(coords=coords)
        return await self._store_snapshot(data)

    async def get_forecast_for_city(self, name: str) -> ForecastBundle:
        cached = await self.forecast_cache.read(name)
        if cached is not None:
            return cached

        data = await self.api.fetch_forecast(name)
        city_name, offset, samples = parse_forecast(data)
        bundle = ForecastBundle(
            city_name=city_name,
            days=aggregate(samples, offset or 0),
            captured_at_epoch_ms=self.clock(),
            utc_offset_seconds=offset,
        )
        await self.forecast_cache.write(bundle.city_name, bundle)
        logger.info("Fetched %d-day forecast for %r", len(bundle.days), bundle.city_name)
        return bundle

    async def search_cities_by_name(self, query: str) -> List[CityCandidate]:
        # Partial input while typing; not worth a remote call
        if len(query) < MIN_SEARCH_LENGTH:
            return []

        results = await self.api.search_cities(query, limit=MAX_CITY_CANDIDATES)
        return parse_candidates(results)

    async def _store_snapshot(self, data: Dict[str, Any]) -> WeatherSnapshot:
        snapshot = parse_current(data, captured_at_epoch_ms=self.clock())
        await self.weather_cache.write(snapshot.city_name, snapshot)
        logger.info("Fetched current weather for %r: %s°C, %s",
                    snapshot.city_name, snapshot.temperature, snapshot.description)
        return snapshot
