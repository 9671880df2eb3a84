"""
Expiring cache on top of the key-value store.

Entries are written as {payload, capturedAtEpochMs} envelopes and checked on
read: anything older than CACHE_TTL_MS is deleted and reported as a miss.
There is no background sweep.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import CacheCorruptError
from .schemas import CacheEntry, ForecastBundle, WeatherSnapshot
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

# 30 minutes, for both current weather and forecasts
CACHE_TTL_MS = 30 * 60 * 1000

WEATHER_PREFIX = "weather_"
FORECAST_PREFIX = "forecast_"

T = TypeVar("T", bound=BaseModel)

Clock = Callable[[], int]


def epoch_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


class CacheStore(Generic[T]):
    """
    Cache of one payload type, keyed by city name.

    The key prefix keeps weather and forecast entries for the same city apart
    in the shared store.
    """

    def __init__(
        self,
        store: KeyValueStore,
        prefix: str,
        model: Type[T],
        clock: Clock = epoch_ms,
    ):
        self.store = store
        self.prefix = prefix
        self.model = model
        self.clock = clock

    def storage_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def read(self, key: str) -> Optional[T]:
        storage_key = self.storage_key(key)
        raw = await self.store.get(storage_key)
        if raw is None:
            logger.debug("Cache miss for %s", storage_key)
            return None

        try:
            entry = CacheEntry[self.model].model_validate_json(raw)
        except ValidationError as e:
            raise CacheCorruptError(f"Corrupt cache entry {storage_key!r}: {e}") from e

        age = self.clock() - entry.captured_at_epoch_ms
        if age > CACHE_TTL_MS:
            logger.info("Evicting stale cache entry %s (age %d ms)", storage_key, age)
            await self.store.remove(storage_key)
            return None

        logger.debug("Cache hit for %s (age %d ms)", storage_key, age)
        return entry.payload

    async def write(self, key: str, payload: T) -> None:
        entry = CacheEntry[self.model](payload=payload, captured_at_epoch_ms=self.clock())
        await self.store.set(self.storage_key(key), entry.model_dump_json(by_alias=True))
        logger.info("Cached %s", self.storage_key(key))

    async def invalidate(self, key: str) -> None:
        await self.store.remove(self.storage_key(key))


def weather_cache(store: KeyValueStore, clock: Clock = epoch_ms) -> CacheStore[WeatherSnapshot]:
    return CacheStore(store, WEATHER_PREFIX, WeatherSnapshot, clock)


def forecast_cache(store: KeyValueStore, clock: Clock = epoch_ms) -> CacheStore[ForecastBundle]:
    return CacheStore(store, FORECAST_PREFIX, ForecastBundle, clock)
