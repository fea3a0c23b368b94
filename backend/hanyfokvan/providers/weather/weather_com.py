from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import httpx

from hanyfokvan.config import Settings
from hanyfokvan.domain.models import NearbyStation, StationObservation
from hanyfokvan.infra.weather.weather_com_client import WeatherComClient

from .base import ProviderNotConfiguredError, StationProvider
from .payload import as_float, item_at

logger = logging.getLogger(__name__)


class WeatherComProvider(StationProvider):
    name = "Weather.com PWS"
    MAX_STATIONS = 6

    def __init__(self, client: WeatherComClient):
        self.client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "WeatherComProvider":
        return cls(WeatherComClient(settings.weather_api_key, timeout=settings.http_timeout, transport=transport))

    def is_usable(self) -> bool:
        return bool(self.client.api_key and self.client.api_key.strip())

    async def fetch_observations(self, *, lat: float, lon: float) -> List[StationObservation]:
        if not self.is_usable():
            logger.debug("[%s] Not configured, skipping", self.name)
            return []
        try:
            async with self.client.session() as http:
                stations = await self._fetch_stations(http, lat, lon)
                nearest = stations[: self.MAX_STATIONS]
                results = await asyncio.gather(*(self._fetch_station(http, s.id) for s in nearest))
        except (httpx.HTTPError, ValueError, TypeError, KeyError) as exc:
            logger.error("[%s] Error fetching observations: %s", self.name, exc)
            return []
        observations = [obs for obs in results if obs is not None]
        logger.debug("[%s] Retrieved %d observations", self.name, len(observations))
        return observations

    async def list_nearby_stations(self, *, lat: float, lon: float) -> List[NearbyStation]:
        if not self.is_usable():
            raise ProviderNotConfiguredError(self.name, "Set WEATHER_API_KEY environment variable.")
        try:
            async with self.client.session() as http:
                return await self._fetch_stations(http, lat, lon)
        except (httpx.HTTPError, ValueError, TypeError, KeyError) as exc:
            logger.error("[%s] Error fetching nearby stations: %s", self.name, exc)
            return []

    async def _fetch_stations(self, http: httpx.AsyncClient, lat: float, lon: float) -> List[NearbyStation]:
        payload = await self.client.fetch_near(http, lat, lon)
        return self._parse_stations(payload)

    async def _fetch_station(self, http: httpx.AsyncClient, station_id: str) -> Optional[StationObservation]:
        try:
            payload = await self.client.fetch_current(http, station_id)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("[%s] Failed to fetch data for %s: %s", self.name, station_id, exc)
            return None
        return self._parse_observation(payload, station_id)

    def _parse_stations(self, payload: dict) -> List[NearbyStation]:
        location = payload.get("location") if isinstance(payload, dict) else None
        if not isinstance(location, dict):
            return []
        ids = location.get("stationId")
        if not isinstance(ids, list):
            return []
        stations: List[NearbyStation] = []
        # The near endpoint answers with parallel arrays; a short array only blanks its own field
        for idx, raw_id in enumerate(ids):
            station_id = str(raw_id).strip() if raw_id is not None else ""
            if not station_id:
                continue
            name = item_at(location.get("stationName"), idx)
            distance = as_float(item_at(location.get("distanceKm"), idx))
            stations.append(
                NearbyStation(
                    id=station_id,
                    name=str(name) if name else station_id,
                    source=self.name,
                    latitude=as_float(item_at(location.get("latitude"), idx)),
                    longitude=as_float(item_at(location.get("longitude"), idx)),
                    distance_km=distance if distance is not None and distance >= 0 else None,
                )
            )
        return stations

    def _parse_observation(self, payload: dict, station_id: str) -> Optional[StationObservation]:
        observations = payload.get("observations") if isinstance(payload, dict) else None
        if not isinstance(observations, list) or not observations:
            return None
        observation = observations[0]
        if not isinstance(observation, dict):
            return None
        metric = observation.get("metric")
        if not isinstance(metric, dict):
            return None
        temperature = as_float(metric.get("temp"))
        if temperature is None:
            return None
        return StationObservation(
            station_id=station_id,
            source=self.name,
            temperature_c=temperature,
            humidity_pct=as_float(observation.get("humidity")),
            pressure_mb=as_float(metric.get("pressure")),
        )
