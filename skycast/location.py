"""
Location capability.

Permission denied and "no fix" are the same outcome here: None. Callers
branch on it; it is not an error.
"""

from __future__ import annotations

from typing import Optional, Protocol

from .schemas import Coordinates


class LocationProvider(Protocol):
    async def get_current_coordinates(self) -> Optional[Coordinates]:
        ...


class FixedLocationProvider:
    """
    Coordinates supplied by the caller, e.g. the browser's Geolocation API
    result sent along with a request. None means the client had no location.
    """

    def __init__(self, coords: Optional[Coordinates] = None):
        self.coords = coords

    async def get_current_coordinates(self) -> Optional[Coordinates]:
        return self.coords
