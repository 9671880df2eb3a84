"""
Session context and the use cases that span several components.

AppContext bundles everything a request needs. It is built once per store
(per app, or per test) and passed explicitly; nothing here is module-level
state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .cache import Clock, epoch_ms, forecast_cache, weather_cache
from .gateway import WeatherGateway
from .location import LocationProvider
from .registry import CityRegistry
from .schemas import HomeWeather, SavedCity
from .storage import KeyValueStore
from .units import UnitPreference
from .weather_clients import RemoteWeatherAPI

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    store: KeyValueStore
    registry: CityRegistry
    gateway: WeatherGateway
    units: UnitPreference


def build_context(store: KeyValueStore, api: RemoteWeatherAPI, clock: Clock = epoch_ms) -> AppContext:
    """Wire the caches, registry, gateway and preferences onto one store."""
    weather = weather_cache(store, clock)
    forecast = forecast_cache(store, clock)
    return AppContext(
        store=store,
        registry=CityRegistry(store, weather, forecast),
        gateway=WeatherGateway(api, weather, forecast, clock),
        units=UnitPreference(store),
    )


async def select_city(context: AppContext, name: str) -> None:
    """Make a city the one the weather and forecast views show."""
    await context.registry.set_active(name)


async def load_home_weather(context: AppContext, location: LocationProvider) -> Optional[HomeWeather]:
    """
    Weather for the home view.

    - an active city wins (cache-first lookup)
    - otherwise geolocate, make the resolved city active, and suggest saving
      it if it is not saved yet
    - no active city and no location: None
    """
    active = await context.registry.get_active()
    if active:
        snapshot = await context.gateway.get_current_weather_for_city(active)
        return HomeWeather(snapshot=snapshot)

    coords = await location.get_current_coordinates()
    if coords is None:
        logger.info("No active city and no location available")
        return None

    snapshot = await context.gateway.get_current_weather_for_coordinates(coords)
    await context.registry.set_active(snapshot.city_name)

    suggested = None
    if not await context.registry.contains(snapshot.city_name):
        suggested = SavedCity(name=snapshot.city_name, country_code=snapshot.country_code)
    return HomeWeather(snapshot=snapshot, suggested_city=suggested)
