"""
Weather clients.

OpenWeatherClient talks HTTP and returns raw JSON; the parse_* functions turn
raw payloads into the internal models. Keeping them apart lets the gateway
decide when to fetch and lets tests feed payloads straight into the parsers.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Protocol, Tuple

import httpx
from pydantic import ValidationError

from .errors import FetchError, NotFoundError, ParseError
from .schemas import CityCandidate, Coordinates, RawSample, WeatherSnapshot
from .units import round_half_away_from_zero

logger = logging.getLogger(__name__)

MAX_CITY_CANDIDATES = 5


class RemoteWeatherAPI(Protocol):
    async def fetch_current(
        self, *, city: Optional[str] = None, coords: Optional[Coordinates] = None
    ) -> Dict[str, Any]:
        ...

    async def fetch_forecast(self, city: str) -> Dict[str, Any]:
        ...

    async def search_cities(self, query: str, limit: int = MAX_CITY_CANDIDATES) -> List[Dict[str, Any]]:
        ...


class OpenWeatherClient:
    """
    OpenWeatherMap wrapper.

    Endpoints used:
    - Current weather:
        /data/2.5/weather?q=CITY (or lat=..&lon=..)&units=metric&appid=KEY
    - 5-day forecast (3-hour increments):
        /data/2.5/forecast?q=CITY&units=metric&appid=KEY
    - Geocoding:
        /geo/1.0/direct?q=...&limit=5&appid=KEY

    Temperatures are requested in Celsius; conversion for display happens
    later (see units.to_display_temperature).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openweathermap.org",
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base = base_url.rstrip("/")
        self.timeout_s = timeout_s
        # Tests plug in httpx.MockTransport here
        self.transport = transport

    async def fetch_current(
        self, *, city: Optional[str] = None, coords: Optional[Coordinates] = None
    ) -> Dict[str, Any]:
        """Retrieves current weather conditions for a city name or a lat/lon pair."""
        if (city is None) == (coords is None):
            raise ValueError("Pass exactly one of city or coords")

        if city is not None:
            params: Dict[str, Any] = {"q": city}
        else:
            params = {"lat": coords.lat, "lon": coords.lon}
        params.update({"units": "metric", "appid": self.api_key})
        return await self._get("/data/2.5/weather", params, "Current weather")

    async def fetch_forecast(self, city: str) -> Dict[str, Any]:
        """
        Retrieves the 5-day forecast in 3-hour increments.
        We later summarize this into one row per day (see forecast.aggregate).
        """
        params = {"q": city, "units": "metric", "appid": self.api_key}
        return await self._get("/data/2.5/forecast", params, "Forecast")

    async def search_cities(self, query: str, limit: int = MAX_CITY_CANDIDATES) -> List[Dict[str, Any]]:
        params = {"q": query, "limit": limit, "appid": self.api_key}
        results = await self._get("/geo/1.0/direct", params, "Geocoding")
        return results or []

    async def _get(self, path: str, params: Dict[str, Any], what: str) -> Any:
        url = f"{self.base}{path}"
        logger.info("%s request: %s", what, url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                r = await client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.error("%s request failed: %s", what, e)
            raise FetchError(f"{what} request failed: {e}") from e

        if r.status_code == 404:
            raise NotFoundError(f"{what} failed (404): {_error_message(r)}", status_code=404)
        if r.status_code != 200:
            logger.error("%s failed with status %s", what, r.status_code)
            raise FetchError(
                f"{what} failed ({r.status_code}): {_error_message(r)}",
                status_code=r.status_code,
            )

        try:
            return r.json()
        except ValueError as e:
            raise ParseError(f"{what} response is not JSON") from e


def _error_message(response: httpx.Response) -> str:
    """OpenWeather error bodies look like {"cod": "404", "message": "city not found"}."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and "message" in body:
        return str(body["message"])
    return response.text[:200]


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------

def _field(data: Any, path: str, what: str) -> Any:
    """
    Walk a dotted path ("main.temp", "weather.0.icon") through dicts/lists.
    Missing or mistyped steps raise ParseError naming the path.
    """
    node = data
    for part in path.split("."):
        try:
            node = node[int(part)] if part.isdigit() else node[part]
        except (KeyError, IndexError, TypeError):
            raise ParseError(f"{what} payload is missing '{path}'")
    if node is None:
        raise ParseError(f"{what} payload has null '{path}'")
    return node


def _number(data: Any, path: str, what: str) -> float:
    value = _field(data, path, what)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"{what} payload has non-numeric '{path}': {value!r}")
    if not math.isfinite(value):
        raise ParseError(f"{what} payload has non-finite '{path}': {value!r}")
    return value


def _temp(data: Any, path: str, what: str) -> int:
    return round_half_away_from_zero(_number(data, path, what))


def _optional_offset(data: Any, path: str, what: str) -> Optional[int]:
    """UTC offset in seconds, or None when the provider leaves it out."""
    parent, _, key = path.rpartition(".")
    container = _field(data, parent, what) if parent else data
    if not isinstance(container, dict) or container.get(key) is None:
        return None
    return int(_number(data, path, what))


def parse_current(data: Dict[str, Any], captured_at_epoch_ms: int) -> WeatherSnapshot:
    """Normalize a /data/2.5/weather payload."""
    what = "Current weather"
    # Coordinates over open water resolve to no "sys.country"
    sys_block = data.get("sys") if isinstance(data, dict) else None
    if sys_block is None:
        sys_block = {}
    elif not isinstance(sys_block, dict):
        raise ParseError(f"{what} payload 'sys' is not an object")
    offset = _optional_offset(data, "timezone", what)
    try:
        return WeatherSnapshot(
            temperature=_temp(data, "main.temp", what),
            feels_like=_temp(data, "main.feels_like", what),
            temp_min=_temp(data, "main.temp_min", what),
            temp_max=_temp(data, "main.temp_max", what),
            humidity=_number(data, "main.humidity", what),
            pressure=_number(data, "main.pressure", what),
            description=_field(data, "weather.0.description", what),
            icon_id=_field(data, "weather.0.icon", what),
            wind_speed=_number(data, "wind.speed", what),
            city_name=_field(data, "name", what),
            country_code=sys_block.get("country") or "",
            captured_at_epoch_ms=captured_at_epoch_ms,
            utc_offset_seconds=offset,
        )
    except ValidationError as e:
        raise ParseError(f"{what} payload has invalid fields: {e}") from e


def parse_forecast(data: Dict[str, Any]) -> Tuple[str, Optional[int], List[RawSample]]:
    """
    Normalize a /data/2.5/forecast payload.

    Returns (resolved city name, city UTC offset in seconds or None, samples).
    """
    what = "Forecast"
    city_name = _field(data, "city.name", what)
    offset = _optional_offset(data, "city.timezone", what)
    items = _field(data, "list", what)
    if not isinstance(items, list):
        raise ParseError(f"{what} payload 'list' is not a list")

    samples = []
    for i, item in enumerate(items):
        where = f"{what} step {i}"
        try:
            samples.append(RawSample(
                timestamp_utc=int(_number(item, "dt", where)),
                temp=_temp(item, "main.temp", where),
                temp_min=_temp(item, "main.temp_min", where),
                temp_max=_temp(item, "main.temp_max", where),
                description=_field(item, "weather.0.description", where),
                icon_id=_field(item, "weather.0.icon", where),
                humidity=_number(item, "main.humidity", where),
            ))
        except ValidationError as e:
            raise ParseError(f"{where} has invalid fields: {e}") from e
    return city_name, offset, samples


def parse_candidates(results: List[Dict[str, Any]]) -> List[CityCandidate]:
    """Normalize geocoding results, keeping at most MAX_CITY_CANDIDATES."""
    what = "Geocoding"
    if not isinstance(results, list):
        raise ParseError(f"{what} payload is not a list")

    out: List[CityCandidate] = []
    for best in results[:MAX_CITY_CANDIDATES]:
        try:
            out.append(CityCandidate(
                name=_field(best, "name", what),
                country_code=best.get("country", ""),
                state=best.get("state", ""),
                lat=float(_number(best, "lat", what)),
                lon=float(_number(best, "lon", what)),
            ))
        except ValidationError as e:
            raise ParseError(f"{what} result has invalid fields: {e}") from e
    return out


ICON_BASE_URL = "https://openweathermap.org/img/wn"


def icon_url(icon_id: str) -> str:
    """URL of the 2x PNG for an OpenWeather icon code such as "04d"."""
    return f"{ICON_BASE_URL}/{icon_id}@2x.png"
