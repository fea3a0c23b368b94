from __future__ import annotations

import dataclasses
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from hanyfokvan.api.deps import get_geocoder, get_hub
from hanyfokvan.domain.models import ConsensusReading, NearbyStation
from hanyfokvan.hub.weather_hub import WeatherHub
from hanyfokvan.infra.geocoding.locationiq_client import LocationIqGeocoder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weather", tags=["weather"])


@router.get("/current")
async def get_current_weather(
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Latitude"),
    lon: Optional[float] = Query(None, ge=-180, le=180, description="Longitude"),
    hub: WeatherHub = Depends(get_hub),
    geocoder: Optional[LocationIqGeocoder] = Depends(get_geocoder),
):
    if (lat is None) != (lon is None):
        raise HTTPException(status_code=422, detail="lat and lon must be supplied together")
    logger.info("Fetching current weather data for lat=%s, lon=%s", lat, lon)
    reading = await hub.fetch_consensus(lat, lon)
    if not reading.has_data:
        return []
    if lat is not None and geocoder is not None:
        city = await geocoder.get_city_name(lat, lon)
        if city:
            reading = dataclasses.replace(reading, location_label=city)
    return [_reading_payload(reading)]


@router.get("/nearby-stations")
async def get_nearby_stations(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude"),
    hub: WeatherHub = Depends(get_hub),
):
    logger.info("Fetching nearby stations for lat=%s, lon=%s", lat, lon)
    stations = await hub.list_nearby_stations(lat, lon)
    return [_station_payload(station) for station in stations]


def _reading_payload(reading: ConsensusReading) -> dict:
    return {
        "temperatureC": reading.temperature_c,
        "humidity": reading.humidity_pct,
        "pressureMb": reading.pressure_mb,
        "source": reading.source_label,
        "location": reading.location_label,
        "fetchedAt": reading.fetched_at.isoformat(),
        "stationCount": reading.station_count,
    }


def _station_payload(station: NearbyStation) -> dict:
    return {
        "id": station.id,
        "name": station.name,
        "latitude": station.latitude,
        "longitude": station.longitude,
        "distanceKm": round(station.distance_km, 2) if station.distance_km is not None else None,
        "source": station.source,
    }
