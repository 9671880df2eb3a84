"""
Error types shared across the package.

Everything derives from WeatherError so the HTTP layer can catch one base
type and map subclasses to status codes.
"""

from __future__ import annotations

from typing import Optional


class WeatherError(RuntimeError):
    """Base class for weather lookup and persistence failures."""
    pass


class FetchError(WeatherError):
    """Remote weather API call failed (network, timeout, non-2xx status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(FetchError):
    """The provider does not know the requested city."""
    pass


class ParseError(WeatherError):
    """Remote payload is missing expected fields or has the wrong shape."""
    pass


class StorageError(WeatherError):
    """Persisted state could not be decoded."""
    pass


class CacheCorruptError(StorageError):
    """A cache envelope is not valid JSON or does not match its payload model."""
    pass
