from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from hanyfokvan.config import Settings
from hanyfokvan.domain.geo import bounding_box, haversine_km, sort_by_distance
from hanyfokvan.domain.models import NearbyStation, StationObservation
from hanyfokvan.infra.weather.netatmo_auth import NetatmoTokenManager
from hanyfokvan.infra.weather.netatmo_client import NetatmoClient

from .base import ProviderNotConfiguredError, StationProvider
from .payload import as_float

logger = logging.getLogger(__name__)

# Roughly 5 km in every direction at mid latitudes
BOUNDING_BOX_HALF_WIDTH_DEG = 0.05

MEASURE_FIELDS = {
    "temperature": "temperature_c",
    "humidity": "humidity_pct",
    "pressure": "pressure_mb",
}


class NetatmoProvider(StationProvider):
    name = "Netatmo"

    def __init__(self, tokens: NetatmoTokenManager, client: Optional[NetatmoClient] = None):
        self.tokens = tokens
        self.client = client or NetatmoClient()

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "NetatmoProvider":
        tokens = NetatmoTokenManager(
            settings.netatmo_client_id,
            settings.netatmo_client_secret,
            settings.netatmo_refresh_token,
            settings.netatmo_access_token,
            timeout=settings.http_timeout,
            transport=transport,
            source_name=cls.name,
        )
        return cls(tokens, NetatmoClient(timeout=settings.http_timeout, transport=transport))

    def is_usable(self) -> bool:
        return self.tokens.has_credentials()

    async def fetch_observations(self, *, lat: float, lon: float) -> List[StationObservation]:
        if not self.is_usable():
            logger.debug("[%s] Not configured, skipping", self.name)
            return []
        try:
            devices = await self._fetch_devices(lat, lon)
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "[%s] API returned %s: %s", self.name, exc.response.status_code, exc.response.text
            )
            return []
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("[%s] Error fetching observations: %s", self.name, exc)
            return []
        if devices is None:
            return []
        observations = []
        for device in devices:
            observation = self._parse_device_observation(device)
            if observation is not None:
                observations.append(observation)
        logger.debug("[%s] Retrieved %d observations", self.name, len(observations))
        return observations

    async def list_nearby_stations(self, *, lat: float, lon: float) -> List[NearbyStation]:
        if not self.is_usable():
            raise ProviderNotConfiguredError(
                self.name, "Set NETATMO_CLIENT_ID, NETATMO_CLIENT_SECRET and NETATMO_REFRESH_TOKEN."
            )
        try:
            devices = await self._fetch_devices(lat, lon)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("[%s] Error fetching nearby stations: %s", self.name, exc)
            return []
        if devices is None:
            return []
        stations = [s for s in (self._parse_device_station(d, lat, lon) for d in devices) if s is not None]
        return sort_by_distance(stations)

    async def _fetch_devices(self, lat: float, lon: float) -> Optional[list]:
        access_token = await self.tokens.get_access_token()
        if not access_token:
            logger.warning("[%s] No valid access token available", self.name)
            return None
        box = bounding_box(lat, lon, BOUNDING_BOX_HALF_WIDTH_DEG)
        payload = await self.client.fetch_public_data(box, access_token)
        body = payload.get("body") if isinstance(payload, dict) else None
        if not isinstance(body, list):
            return []
        return [device for device in body if isinstance(device, dict)]

    @staticmethod
    def _device_id(device: dict) -> Optional[str]:
        device_id = device.get("_id")
        if not isinstance(device_id, str) or not device_id.strip():
            return None
        return device_id

    def _parse_device_observation(self, device: dict) -> Optional[StationObservation]:
        device_id = self._device_id(device)
        if device_id is None:
            return None
        values = {}
        measures = device.get("measures")
        if isinstance(measures, dict):
            for module in measures.values():
                if not isinstance(module, dict):
                    continue
                types = module.get("type")
                results = module.get("res")
                if not isinstance(types, list) or not isinstance(results, dict) or not results:
                    continue
                # Only the most recent batch: the first timestamp in "res"
                latest = next(iter(results.values()))
                if not isinstance(latest, list):
                    continue
                for measure_type, raw in zip(types, latest):
                    field_name = MEASURE_FIELDS.get(str(measure_type).lower())
                    value = as_float(raw)
                    if field_name and value is not None:
                        values[field_name] = value
        if "temperature_c" not in values:
            return None
        return StationObservation(station_id=device_id, source=self.name, **values)

    def _parse_device_station(self, device: dict, ref_lat: float, ref_lon: float) -> Optional[NearbyStation]:
        device_id = self._device_id(device)
        if device_id is None:
            return None
        lat = lon = None
        place = device.get("place")
        location = place.get("location") if isinstance(place, dict) else None
        # Netatmo places are [longitude, latitude]
        if isinstance(location, list) and len(location) >= 2:
            lon = as_float(location[0])
            lat = as_float(location[1])
        distance = None
        if lat is not None and lon is not None:
            distance = haversine_km(ref_lat, ref_lon, lat, lon)
        return NearbyStation(
            id=device_id,
            name=f"Netatmo {device_id[-4:]}",
            source=self.name,
            latitude=lat,
            longitude=lon,
            distance_km=distance,
        )
