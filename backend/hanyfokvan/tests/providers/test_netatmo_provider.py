from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import httpx
import pytest

from hanyfokvan.domain.geo import haversine_km
from hanyfokvan.infra.weather.netatmo_auth import NetatmoTokenManager, TokenState
from hanyfokvan.infra.weather.netatmo_client import NetatmoClient
from hanyfokvan.providers.weather.base import ProviderNotConfiguredError
from hanyfokvan.providers.weather.netatmo import NetatmoProvider

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

PUBLIC_DATA = {
    "status": "ok",
    "body": [
        {
            "_id": "70:ee:50:00:aa:01",
            "place": {"location": [25.31, 46.31]},
            "measures": {
                "02:00:00:00:aa:01": {
                    "res": {"1760788800": [12.3, 60]},
                    "type": ["Temperature", "Humidity"],
                },
                "70:ee:50:00:aa:01": {
                    "res": {"1760788800": [1013.2]},
                    "type": ["pressure"],
                },
            },
        },
        {
            "_id": "70:ee:50:00:bb:02",
            "place": {"location": [25.29, 46.29]},
            "measures": {
                "70:ee:50:00:bb:02": {"res": {"1760788800": [1011.0]}, "type": ["Pressure"]},
            },
        },
        {
            "_id": "",
            "place": {"location": [25.3, 46.3]},
            "measures": {"x": {"res": {"1": [5.0]}, "type": ["Temperature"]}},
        },
    ],
}


def _provider(handler=None, *, valid_token: bool = True, refresh_token: str | None = "refresh-1") -> NetatmoProvider:
    transport = httpx.MockTransport(handler) if handler else None
    tokens = NetatmoTokenManager("client-id", "client-secret", refresh_token, transport=transport, clock=lambda: NOW)
    if valid_token:
        tokens.set_state(
            TokenState(refresh_token=refresh_token, access_token="token-1", expires_at=NOW + timedelta(hours=1))
        )
    return NetatmoProvider(tokens, NetatmoClient(transport=transport))


def test_device_measurements_are_mapped_by_type_name():
    provider = _provider()
    device = {
        "_id": "70:ee:50:00:aa:01",
        "measures": {"mod": {"res": {"1760788800": [12.3, 60]}, "type": ["Temperature", "Humidity"]}},
    }
    obs = provider._parse_device_observation(device)
    assert obs is not None
    assert obs.temperature_c == 12.3
    assert obs.humidity_pct == 60
    assert obs.pressure_mb is None
    assert obs.source == "Netatmo"


def test_device_without_temperature_yields_nothing():
    device = {"_id": "70:ee:50:00:bb:02", "measures": {"m": {"res": {"1": [55]}, "type": ["Humidity"]}}}
    assert _provider()._parse_device_observation(device) is None


def test_only_most_recent_result_batch_is_used():
    device = {
        "_id": "dev",
        "measures": {"m": {"res": {"200": [9.5], "100": [30.0]}, "type": ["temperature"]}},
    }
    assert _provider()._parse_device_observation(device).temperature_c == 9.5


def test_station_location_is_longitude_then_latitude():
    provider = _provider()
    station = provider._parse_device_station(
        {"_id": "70:ee:50:00:aa:01", "place": {"location": [25.31, 46.31]}}, 46.30, 25.30
    )
    assert station.latitude == 46.31
    assert station.longitude == 25.31
    assert station.name == "Netatmo a:01"
    assert station.distance_km == pytest.approx(haversine_km(46.30, 25.30, 46.31, 25.31))


def test_station_without_location_has_no_distance():
    station = _provider()._parse_device_station({"_id": "abcd1234"}, 46.30, 25.30)
    assert station.distance_km is None
    assert station.name == "Netatmo 1234"


def test_fetch_observations_queries_bounding_box_with_bearer_token():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=PUBLIC_DATA)

    observations = asyncio.run(_provider(handler).fetch_observations(lat=46.30, lon=25.30))

    assert len(observations) == 1
    obs = observations[0]
    assert (obs.station_id, obs.temperature_c, obs.humidity_pct, obs.pressure_mb) == (
        "70:ee:50:00:aa:01",
        12.3,
        60,
        1013.2,
    )
    request = seen[0]
    assert request.url.path == "/api/getpublicdata"
    assert request.headers["Authorization"] == "Bearer token-1"
    form = {k: float(v[0]) if k != "filter" else v[0] for k, v in parse_qs(request.content.decode()).items()}
    assert form["lat_ne"] == pytest.approx(46.35)
    assert form["lon_ne"] == pytest.approx(25.35)
    assert form["lat_sw"] == pytest.approx(46.25)
    assert form["lon_sw"] == pytest.approx(25.25)
    assert form["filter"] == "true"


def test_fetch_observations_refreshes_missing_token_first():
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path == "/oauth2/token":
            return httpx.Response(200, json={"access_token": "token-2", "expires_in": 10800})
        assert request.headers["Authorization"] == "Bearer token-2"
        return httpx.Response(200, json=PUBLIC_DATA)

    observations = asyncio.run(_provider(handler, valid_token=False).fetch_observations(lat=46.3, lon=25.3))
    assert paths == ["/oauth2/token", "/api/getpublicdata"]
    assert len(observations) == 1


def test_failed_refresh_returns_empty_without_querying():
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(400, json={"error": "invalid_grant"})

    observations = asyncio.run(_provider(handler, valid_token=False).fetch_observations(lat=46.3, lon=25.3))
    assert observations == []
    assert paths == ["/oauth2/token"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(403, json={"error": {"code": 13}}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"status": "ok"}),
        httpx.Response(200, json={"body": {"unexpected": True}}),
    ],
)
def test_bad_public_data_degrades_to_empty(response):
    provider = _provider(lambda request: response)
    assert asyncio.run(provider.fetch_observations(lat=46.3, lon=25.3)) == []


def test_list_nearby_stations_sorted_and_skips_blank_ids():
    provider = _provider(lambda request: httpx.Response(200, json=PUBLIC_DATA))
    stations = asyncio.run(provider.list_nearby_stations(lat=46.295, lon=25.295))
    assert [s.id for s in stations] == ["70:ee:50:00:bb:02", "70:ee:50:00:aa:01"]
    assert stations[0].distance_km < stations[1].distance_km


def test_usability_needs_all_three_credentials():
    provider = _provider(refresh_token=None, valid_token=False)
    assert not provider.is_usable()
    assert asyncio.run(provider.fetch_observations(lat=46.3, lon=25.3)) == []
    with pytest.raises(ProviderNotConfiguredError):
        asyncio.run(provider.list_nearby_stations(lat=46.3, lon=25.3))
