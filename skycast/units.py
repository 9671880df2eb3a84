"""
Temperature units.

Every temperature shown to a user goes through round_half_away_from_zero, so
the current-weather card and the forecast list never disagree by one degree
on the same value.
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Union

from .errors import StorageError
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

TEMP_UNIT_KEY = "temp_unit"


class TemperatureUnit(str, Enum):
    CELSIUS = "C"
    FAHRENHEIT = "F"


def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    # str() first so 0.1-style binary noise does not move a tie
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_display_temperature(celsius: Union[int, float], unit: Union[TemperatureUnit, str]) -> Union[int, float]:
    """Convert a Celsius reading to the user's unit. Celsius passes through unchanged."""
    if TemperatureUnit(unit) is TemperatureUnit.FAHRENHEIT:
        return round_half_away_from_zero(celsius * 9 / 5 + 32)
    return celsius


class UnitPreference:
    """The user's temperature unit, persisted under temp_unit (default Celsius)."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get(self) -> TemperatureUnit:
        raw = await self.store.get(TEMP_UNIT_KEY)
        if not raw:
            return TemperatureUnit.CELSIUS
        try:
            return TemperatureUnit(raw)
        except ValueError:
            raise StorageError(f"Unknown temperature unit stored: {raw!r}")

    async def set(self, unit: Union[TemperatureUnit, str]) -> None:
        unit = TemperatureUnit(unit)
        await self.store.set(TEMP_UNIT_KEY, unit.value)
        logger.info("Temperature unit set to %s", unit.value)

    async def toggle(self) -> TemperatureUnit:
        current = await self.get()
        new_unit = (
            TemperatureUnit.FAHRENHEIT
            if current is TemperatureUnit.CELSIUS
            else TemperatureUnit.CELSIUS
        )
        await self.set(new_unit)
        return new_unit
