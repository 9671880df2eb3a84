"""Shared pytest fixtures and fakes for skycast tests.

Async code is driven with asyncio.run; nothing here touches the network.
"""

import asyncio
import copy

import pytest

from skycast.context import build_context

# 2024-06-01 12:00:00 UTC
BASE_TIME_MS = 1_717_243_200_000


def run(coro):
    """Run a coroutine to completion."""
    return asyncio.run(coro)


class MemoryStore:
    """Dict-backed KeyValueStore; tests inspect .data directly."""

    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value

    async def remove(self, key):
        self.data.pop(key, None)


class FakeClock:
    def __init__(self, now_ms=BASE_TIME_MS):
        self.now_ms = now_ms

    def __call__(self):
        return self.now_ms

    def advance(self, ms):
        self.now_ms += ms


def current_payload(name="Paris", country="FR", temp=21.6, timezone=7200, **overrides):
    """OpenWeather /data/2.5/weather response shape."""
    payload = {
        "coord": {"lon": 2.35, "lat": 48.85},
        "weather": [{"id": 803, "main": "Clouds", "description": "broken clouds", "icon": "04d"}],
        "main": {
            "temp": temp,
            "feels_like": 21.2,
            "temp_min": 19.5,
            "temp_max": 23.4,
            "pressure": 1014,
            "humidity": 58,
        },
        "wind": {"speed": 3.13, "deg": 93},
        "dt": 1717243200,
        "sys": {"country": country},
        "timezone": timezone,
        "name": name,
    }
    if timezone is None:
        del payload["timezone"]
    payload.update(overrides)
    return payload


def forecast_item(dt, temp=20.0, temp_min=18.0, temp_max=22.0, description="clear sky", icon="01d", humidity=50):
    return {
        "dt": dt,
        "main": {"temp": temp, "temp_min": temp_min, "temp_max": temp_max, "humidity": humidity},
        "weather": [{"main": "Clear", "description": description, "icon": icon}],
    }


def forecast_payload(items, name="Paris", timezone=0):
    return {"cod": "200", "list": items, "city": {"name": name, "country": "FR", "timezone": timezone}}


class FakeWeatherAPI:
    """RemoteWeatherAPI fake that records calls and serves canned payloads."""

    def __init__(self, current=None, forecast=None, cities=None, error=None):
        self.current = current if current is not None else current_payload()
        self.forecast = forecast if forecast is not None else forecast_payload([forecast_item(1717243200)])
        self.cities = cities if cities is not None else []
        self.error = error
        self.calls = []

    async def fetch_current(self, *, city=None, coords=None):
        self.calls.append(("current", city, coords))
        if self.error:
            raise self.error
        return copy.deepcopy(self.current)

    async def fetch_forecast(self, city):
        self.calls.append(("forecast", city))
        if self.error:
            raise self.error
        return copy.deepcopy(self.forecast)

    async def search_cities(self, query, limit=5):
        self.calls.append(("search", query, limit))
        if self.error:
            raise self.error
        return copy.deepcopy(self.cities)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api():
    return FakeWeatherAPI()


@pytest.fixture
def context(store, api, clock):
    return build_context(store, api, clock)
