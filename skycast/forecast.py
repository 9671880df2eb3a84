"""
Forecast aggregation.

OpenWeather's forecast endpoint returns ~40 data points in 3-hour steps. The
forecast view shows one row per day, so we collapse the steps:

- group by calendar date (UTC timestamp shifted by the city's UTC offset)
- the first step of a day seeds temp/description/icon/humidity
- later steps of the same day only widen temp_min/temp_max
- days keep first-seen order, capped at MAX_FORECAST_DAYS
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List

from .schemas import ForecastDay, RawSample

MAX_FORECAST_DAYS = 7


def calendar_date(timestamp_utc: int, utc_offset_seconds: int = 0) -> str:
    """YYYY-MM-DD of a UTC epoch timestamp as seen at the given UTC offset."""
    return datetime.fromtimestamp(timestamp_utc + utc_offset_seconds, tz=timezone.utc).date().isoformat()


def aggregate(samples: Iterable[RawSample], utc_offset_seconds: int = 0) -> List[ForecastDay]:
    # dicts keep insertion order, which is the first-seen date order we want
    days: Dict[str, dict] = {}
    for sample in samples:
        day = calendar_date(sample.timestamp_utc, utc_offset_seconds)
        existing = days.get(day)
        if existing is None:
            days[day] = {
                "calendar_date": day,
                "temp": sample.temp,
                "temp_min": sample.temp_min,
                "temp_max": sample.temp_max,
                "description": sample.description,
                "icon_id": sample.icon_id,
                "humidity": sample.humidity,
            }
            continue
        existing["temp_min"] = min(existing["temp_min"], sample.temp_min)
        existing["temp_max"] = max(existing["temp_max"], sample.temp_max)

    return [ForecastDay(**fields) for fields in list(days.values())[:MAX_FORECAST_DAYS]]
