"""
Pydantic schemas.

These are the internal data model. Field names are snake_case in Python and
camelCase on the wire/in storage (capturedAtEpochMs, utcOffsetSeconds, ...),
so persisted entries stay readable by older clients of the same store.
"""

from __future__ import annotations

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: camelCase aliases, accepts either spelling on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Coordinates(FrozenCamelModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class WeatherSnapshot(FrozenCamelModel):
    """
    Current conditions for one city at one point in time.

    utc_offset_seconds is optional only because entries cached by an older
    schema lack it; the gateway refuses to serve those from cache.
    """
    temperature: int
    feels_like: int
    temp_min: int
    temp_max: int
    humidity: float
    pressure: float
    description: str
    icon_id: str
    wind_speed: float
    city_name: str
    country_code: str
    captured_at_epoch_ms: int
    utc_offset_seconds: Optional[int] = None


class RawSample(FrozenCamelModel):
    """One 3-hour forecast step, temperatures already rounded."""
    timestamp_utc: int
    temp: int
    temp_min: int
    temp_max: int
    description: str
    icon_id: str
    humidity: float


class ForecastDay(FrozenCamelModel):
    calendar_date: str  # YYYY-MM-DD in the provider's reporting timezone
    temp: int
    temp_min: int
    temp_max: int
    description: str
    icon_id: str
    humidity: float


class ForecastBundle(FrozenCamelModel):
    city_name: str
    days: List[ForecastDay]
    captured_at_epoch_ms: int
    utc_offset_seconds: Optional[int] = None


class SavedCity(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    country_code: str = ""
    is_primary: bool = False


class CityCandidate(FrozenCamelModel):
    """Normalized geocoding result."""
    name: str
    country_code: str = ""
    state: str = ""
    lat: float
    lon: float


class HomeWeather(CamelModel):
    """
    Result of the home-screen lookup.

    suggested_city is set when the weather came from geolocation and the
    resolved city is not saved yet.
    """
    snapshot: WeatherSnapshot
    suggested_city: Optional[SavedCity] = None


P = TypeVar("P", bound=BaseModel)


class CacheEntry(CamelModel, Generic[P]):
    """Persisted cache envelope: {payload, capturedAtEpochMs}."""
    payload: P
    captured_at_epoch_ms: int


class ActiveCityIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class UnitIn(BaseModel):
    unit: str = Field(..., pattern="^(C|F)$")
