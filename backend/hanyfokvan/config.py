from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

DEFAULT_LATITUDE = 46.30
DEFAULT_LONGITUDE = 25.30
DEFAULT_LOCATION_NAME = "Odorheiu Secuiesc"


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_float(name: str, default: float) -> float:
    value = _env(name)
    if value is None:
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    weather_api_key: Optional[str] = None
    netatmo_client_id: Optional[str] = None
    netatmo_client_secret: Optional[str] = None
    netatmo_refresh_token: Optional[str] = None
    netatmo_access_token: Optional[str] = None
    locationiq_api_key: Optional[str] = None
    default_latitude: float = DEFAULT_LATITUDE
    default_longitude: float = DEFAULT_LONGITUDE
    default_location_name: str = DEFAULT_LOCATION_NAME
    http_timeout: float = 10.0
    frontend_origin: str = "http://localhost:5174"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            weather_api_key=_env("WEATHER_API_KEY"),
            netatmo_client_id=_env("NETATMO_CLIENT_ID"),
            netatmo_client_secret=_env("NETATMO_CLIENT_SECRET"),
            netatmo_refresh_token=_env("NETATMO_REFRESH_TOKEN"),
            netatmo_access_token=_env("NETATMO_ACCESS_TOKEN"),
            locationiq_api_key=_env("LOCATIONIQ_API_KEY"),
            default_latitude=_env_float("DEFAULT_LATITUDE", DEFAULT_LATITUDE),
            default_longitude=_env_float("DEFAULT_LONGITUDE", DEFAULT_LONGITUDE),
            default_location_name=_env("DEFAULT_LOCATION_NAME") or DEFAULT_LOCATION_NAME,
            http_timeout=_env_float("HTTP_TIMEOUT_SECONDS", 10.0),
            frontend_origin=_env("FRONTEND_ORIGIN") or "http://localhost:5174",
            log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s | %(message)s",
    )
