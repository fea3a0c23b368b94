from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from hanyfokvan.api.routers import weather
from hanyfokvan.config import Settings, configure_logging, get_settings
from hanyfokvan.hub.weather_hub import WeatherHub
from hanyfokvan.hub.weather_registry import build_default_registry
from hanyfokvan.infra.geocoding.locationiq_client import LocationIqGeocoder


def create_app(
    hub: Optional[WeatherHub] = None,
    geocoder: Optional[LocationIqGeocoder] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="HanyFokVan API", version="0.1.0")
    if hub is None:
        hub = WeatherHub(
            build_default_registry(settings),
            default_lat=settings.default_latitude,
            default_lon=settings.default_longitude,
            default_name=settings.default_location_name,
        )
    if geocoder is None:
        geocoder = LocationIqGeocoder(settings.locationiq_api_key)
    app.state.weather_hub = hub
    app.state.geocoder = geocoder

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(weather.router, prefix="/api")

    @app.get("/healtz", response_class=PlainTextResponse)
    def healthcheck():
        return "OK"

    return app


def run() -> None:
    import uvicorn

    configure_logging()
    uvicorn.run("hanyfokvan.api.main:create_app", factory=True, host="0.0.0.0", port=8000)
