from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from hanyfokvan.config import DEFAULT_LATITUDE, DEFAULT_LOCATION_NAME, DEFAULT_LONGITUDE
from hanyfokvan.domain.consensus import compute_consensus, format_coordinates, is_default_location
from hanyfokvan.domain.geo import sort_by_distance
from hanyfokvan.domain.models import ConsensusReading, NearbyStation, StationObservation
from hanyfokvan.providers.weather.base import StationProvider

from .weather_registry import StationProviderRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WeatherHub:
    """Fans requests out to every usable provider and merges what comes back.

    A provider that raises contributes nothing. Its error is kept in
    ``errors``, which each call replaces with its own list once it finishes.
    Cancellation of the caller is not caught and aborts every in-flight
    provider request.
    """

    def __init__(
        self,
        registry: StationProviderRegistry,
        *,
        default_lat: float = DEFAULT_LATITUDE,
        default_lon: float = DEFAULT_LONGITUDE,
        default_name: str = DEFAULT_LOCATION_NAME,
    ) -> None:
        self._registry = registry
        self.default_lat = default_lat
        self.default_lon = default_lon
        self.default_name = default_name
        self.errors: list[tuple[str, Exception]] = []

    @property
    def registry(self) -> StationProviderRegistry:
        return self._registry

    async def fetch_consensus(self, lat: Optional[float] = None, lon: Optional[float] = None) -> ConsensusReading:
        lat = self.default_lat if lat is None else lat
        lon = self.default_lon if lon is None else lon
        providers = self._registry.usable()
        if not providers:
            self.errors = []
            logger.warning("No weather data sources are configured")
            return ConsensusReading.empty(self._location_label(lat, lon))

        logger.debug(
            "Fetching weather data from %d sources: %s",
            len(providers),
            ", ".join(p.name for p in providers),
        )
        results, self.errors = await self._gather(providers, lambda p: p.fetch_observations(lat=lat, lon=lon))

        combined: List[StationObservation] = []
        source_counts: dict[str, int] = {}
        for name, observations in results:
            if not observations:
                continue
            combined.extend(observations)
            source_counts[name] = len(observations)
            logger.debug("Got %d observations from %s", len(observations), name)

        if not combined:
            logger.warning("No observations received from any data source")
            return ConsensusReading.empty(self._location_label(lat, lon))

        return compute_consensus(
            combined,
            lat=lat,
            lon=lon,
            source_counts=source_counts,
            default_lat=self.default_lat,
            default_lon=self.default_lon,
            default_name=self.default_name,
        )

    async def list_nearby_stations(self, lat: float, lon: float) -> List[NearbyStation]:
        providers = self._registry.usable()
        results, self.errors = await self._gather(providers, lambda p: p.list_nearby_stations(lat=lat, lon=lon))
        combined: List[NearbyStation] = []
        for _, stations in results:
            combined.extend(stations)
        return sort_by_distance(combined)

    async def _gather(
        self,
        providers: List[StationProvider],
        call: Callable[[StationProvider], Awaitable[List[T]]],
    ) -> Tuple[List[Tuple[str, List[T]]], List[Tuple[str, Exception]]]:
        errors: List[Tuple[str, Exception]] = []

        async def run(provider: StationProvider) -> Tuple[str, List[T]]:
            try:
                return provider.name, list(await call(provider))
            except Exception as exc:
                logger.exception("Error fetching from %s", provider.name)
                errors.append((provider.name, exc))
                return provider.name, []

        results = list(await asyncio.gather(*(run(provider) for provider in providers)))
        return results, errors

    def _location_label(self, lat: float, lon: float) -> str:
        if is_default_location(lat, lon, self.default_lat, self.default_lon):
            return self.default_name
        return format_coordinates(lat, lon)
