import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized configuration.

    Loaded from:
    - environment variables
    - .env file (if present)
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Required key (the app should fail fast if missing)
    openweather_api_key: str

    openweather_base_url: str = "https://api.openweathermap.org"
    http_timeout_s: float = 10.0

    # SQLite file backing the key-value store (saved cities, cache, preferences)
    sqlite_path: str = "skycast.sqlite3"

    log_level: str = "INFO"
    app_name: str = "SkyCast"


@lru_cache
def get_settings() -> Settings:
    """Build settings once per process."""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Apply a root logging configuration with the given level name."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
