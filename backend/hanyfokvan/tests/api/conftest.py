from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from hanyfokvan.api.main import create_app
from hanyfokvan.config import Settings
from hanyfokvan.domain.models import NearbyStation, StationObservation
from hanyfokvan.hub.weather_hub import WeatherHub
from hanyfokvan.hub.weather_registry import StationProviderRegistry
from hanyfokvan.providers.weather.base import ProviderNotConfiguredError


class FakeProvider:
    def __init__(self, name: str, observations=None, stations=None, usable: bool = True) -> None:
        self.name = name
        self.observations = observations or []
        self.stations = stations or []
        self.usable = usable

    def is_usable(self) -> bool:
        return self.usable

    async def fetch_observations(self, *, lat: float, lon: float):
        return list(self.observations)

    async def list_nearby_stations(self, *, lat: float, lon: float):
        return list(self.stations)


class FakeGeocoder:
    def __init__(self, city=None) -> None:
        self.city = city
        self.calls: list[tuple[float, float]] = []

    async def get_city_name(self, lat: float, lon: float):
        self.calls.append((lat, lon))
        return self.city


def _build_api_client(providers, geocoder):
    registry = StationProviderRegistry()
    for provider in providers:
        registry.register(provider)
    app = create_app(hub=WeatherHub(registry), geocoder=geocoder, settings=Settings())
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def geocoder():
    return FakeGeocoder(city="Székelyudvarhely")


@pytest.fixture()
def api_client(geocoder):
    wx = FakeProvider(
        "Weather.com PWS",
        observations=[
            StationObservation(station_id="IODORH15", source="Weather.com PWS", temperature_c=11.0, humidity_pct=80),
            StationObservation(station_id="IODORH16", source="Weather.com PWS", temperature_c=12.0),
        ],
        stations=[
            NearbyStation(id="IODORH15", name="Odorhei 15", source="Weather.com PWS", distance_km=1.234),
            NearbyStation(id="IODORH16", name="Odorhei 16", source="Weather.com PWS"),
        ],
    )
    net = FakeProvider(
        "Netatmo",
        observations=[
            StationObservation(station_id="70:ee", source="Netatmo", temperature_c=13.0, pressure_mb=1012.0)
        ],
        stations=[NearbyStation(id="70:ee", name="Netatmo 0:ee", source="Netatmo", distance_km=0.3)],
    )
    yield from _build_api_client([wx, net], geocoder)


@pytest.fixture()
def api_client_no_providers(geocoder):
    yield from _build_api_client([FakeProvider("Netatmo", usable=False)], geocoder)


class MisconfiguredProvider(FakeProvider):
    async def list_nearby_stations(self, *, lat: float, lon: float):
        raise ProviderNotConfiguredError(self.name, "set NETATMO_REFRESH_TOKEN")


@pytest.fixture()
def api_client_misconfigured_netatmo(geocoder):
    wx = FakeProvider(
        "Weather.com PWS",
        stations=[NearbyStation(id="IODORH15", name="Odorhei 15", source="Weather.com PWS", distance_km=1.0)],
    )
    yield from _build_api_client([wx, MisconfiguredProvider("Netatmo")], geocoder)
