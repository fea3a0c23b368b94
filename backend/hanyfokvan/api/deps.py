from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from hanyfokvan.hub.weather_hub import WeatherHub
from hanyfokvan.infra.geocoding.locationiq_client import LocationIqGeocoder


def get_hub(request: Request) -> WeatherHub:
    hub = getattr(request.app.state, "weather_hub", None)
    if hub is None:
        raise HTTPException(status_code=500, detail="Weather hub not configured")
    return hub


def get_geocoder(request: Request) -> Optional[LocationIqGeocoder]:
    return getattr(request.app.state, "geocoder", None)
