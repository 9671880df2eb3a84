"""
FastAPI entrypoint.

This file focuses on:
- routing
- request/response handling
- converting temperatures to the user's unit for display

Run with:
    uvicorn skycast.main:create_app --factory
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status

from .cache import Clock, epoch_ms
from .context import AppContext, build_context, load_home_weather, select_city
from .db import make_engine, make_session_factory
from .errors import FetchError, NotFoundError, ParseError, StorageError, WeatherError
from .location import FixedLocationProvider
from .schemas import ActiveCityIn, Coordinates, ForecastBundle, SavedCity, UnitIn, WeatherSnapshot
from .settings import Settings, configure_logging, get_settings
from .storage import KeyValueStore, SqlKeyValueStore
from .units import TemperatureUnit, to_display_temperature
from .weather_clients import OpenWeatherClient, RemoteWeatherAPI, icon_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    api: Optional[RemoteWeatherAPI] = None,
    clock: Clock = epoch_ms,
) -> FastAPI:
    """
    Build the app. Anything not passed in is created from settings
    (SQLite store, OpenWeather client); tests pass fakes for both.
    """
    if store is None or api is None:
        settings = settings or get_settings()
    if settings is not None:
        configure_logging(settings.log_level)

    if store is None:
        store = SqlKeyValueStore(make_session_factory(make_engine(settings.sqlite_path)))
    if api is None:
        api = OpenWeatherClient(
            settings.openweather_api_key,
            base_url=settings.openweather_base_url,
            timeout_s=settings.http_timeout_s,
        )

    app = FastAPI(title=settings.app_name if settings else "SkyCast")
    app.state.context = build_context(store, api, clock)
    app.include_router(router)
    return app


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def http_error(e: WeatherError) -> HTTPException:
    """Map core errors to HTTP status codes."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (FetchError, ParseError)):
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, StorageError):
        logger.error("Storage error: %s", e)
        return HTTPException(status_code=500, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def snapshot_to_dict(snapshot: WeatherSnapshot, unit: TemperatureUnit) -> Dict[str, Any]:
    """Snapshot as JSON with temperatures in the display unit."""
    out = snapshot.model_dump(by_alias=True)
    for field in ("temperature", "feelsLike", "tempMin", "tempMax"):
        out[field] = to_display_temperature(out[field], unit)
    out["unit"] = unit.value
    out["iconUrl"] = icon_url(snapshot.icon_id)
    return out


def forecast_to_dict(bundle: ForecastBundle, unit: TemperatureUnit) -> Dict[str, Any]:
    out = bundle.model_dump(by_alias=True)
    for day in out["days"]:
        for field in ("temp", "tempMin", "tempMax"):
            day[field] = to_display_temperature(day[field], unit)
        day["iconUrl"] = icon_url(day["iconId"])
    out["unit"] = unit.value
    return out


# -------------------------
# Weather
# -------------------------

@router.get("/weather")
async def api_weather(city: str = Query(..., min_length=1, max_length=255), ctx: AppContext = Depends(get_context)):
    """Current weather for a city (cache-first)."""
    try:
        snapshot = await ctx.gateway.get_current_weather_for_city(city)
        return snapshot_to_dict(snapshot, await ctx.units.get())
    except WeatherError as e:
        raise http_error(e)


@router.get("/weather/by-coords")
async def api_weather_by_coords(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    ctx: AppContext = Depends(get_context),
):
    """
    Current-location weather:
    - browser provides coords via Geolocation API
    - always fetched remotely, cached under the resolved city name
    """
    try:
        snapshot = await ctx.gateway.get_current_weather_for_coordinates(Coordinates(lat=lat, lon=lon))
        return snapshot_to_dict(snapshot, await ctx.units.get())
    except WeatherError as e:
        raise http_error(e)


@router.get("/forecast")
async def api_forecast(city: str = Query(..., min_length=1, max_length=255), ctx: AppContext = Depends(get_context)):
    """Up to 7 daily summaries for a city (cache-first)."""
    try:
        bundle = await ctx.gateway.get_forecast_for_city(city)
        return forecast_to_dict(bundle, await ctx.units.get())
    except WeatherError as e:
        raise http_error(e)


@router.get("/home")
async def api_home(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    ctx: AppContext = Depends(get_context),
):
    """
    Weather for the landing view: the active city, or the caller's location
    when no city is active. Coordinates are optional; without them the
    location is treated as unavailable.
    """
    coords = Coordinates(lat=lat, lon=lon) if lat is not None and lon is not None else None
    try:
        home = await load_home_weather(ctx, FixedLocationProvider(coords))
        unit = await ctx.units.get()
    except WeatherError as e:
        raise http_error(e)

    if home is None:
        raise HTTPException(
            status_code=404,
            detail="Unable to get location. Enable location services or add a city manually.",
        )
    return {
        "weather": snapshot_to_dict(home.snapshot, unit),
        "suggestedCity": home.suggested_city.model_dump(by_alias=True) if home.suggested_city else None,
    }


# -------------------------
# Cities
# -------------------------

@router.get("/cities/search")
async def api_search_cities(q: str = Query(..., max_length=255), ctx: AppContext = Depends(get_context)):
    """Geocoding suggestions; fewer than 2 characters returns an empty list."""
    try:
        candidates = await ctx.gateway.search_cities_by_name(q)
    except WeatherError as e:
        raise http_error(e)
    return [c.model_dump(by_alias=True) for c in candidates]


@router.get("/cities")
async def api_list_cities(ctx: AppContext = Depends(get_context)):
    try:
        cities = await ctx.registry.list()
    except WeatherError as e:
        raise http_error(e)
    return [c.model_dump(by_alias=True) for c in cities]


@router.post("/cities", status_code=status.HTTP_201_CREATED)
async def api_add_city(payload: SavedCity, ctx: AppContext = Depends(get_context)):
    """Save a city; 409 if a city with the same name is already saved."""
    try:
        added = await ctx.registry.add(payload)
    except WeatherError as e:
        raise http_error(e)
    if not added:
        raise HTTPException(status_code=409, detail=f"{payload.name} is already saved")
    return payload.model_dump(by_alias=True)


@router.delete("/cities/{name}")
async def api_remove_city(name: str, ctx: AppContext = Depends(get_context)):
    """Delete a saved city and its cached weather/forecast."""
    try:
        await ctx.registry.remove(name)
    except WeatherError as e:
        raise http_error(e)
    return {"ok": True}


@router.get("/active-city")
async def api_get_active_city(ctx: AppContext = Depends(get_context)):
    return {"name": await ctx.registry.get_active()}


@router.put("/active-city")
async def api_set_active_city(payload: ActiveCityIn, ctx: AppContext = Depends(get_context)):
    await select_city(ctx, payload.name)
    return {"name": payload.name}


# -------------------------
# Preferences
# -------------------------

@router.get("/preferences/unit")
async def api_get_unit(ctx: AppContext = Depends(get_context)):
    try:
        unit = await ctx.units.get()
    except WeatherError as e:
        raise http_error(e)
    return {"unit": unit.value}


@router.put("/preferences/unit")
async def api_set_unit(payload: UnitIn, ctx: AppContext = Depends(get_context)):
    await ctx.units.set(payload.unit)
    return {"unit": payload.unit}


@router.post("/preferences/unit/toggle")
async def api_toggle_unit(ctx: AppContext = Depends(get_context)):
    try:
        unit = await ctx.units.toggle()
    except WeatherError as e:
        raise http_error(e)
    return {"unit": unit.value}
