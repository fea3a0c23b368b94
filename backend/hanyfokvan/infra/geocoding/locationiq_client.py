from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class LocationIqGeocoder:
    """Reverse geocoding through LocationIQ with an in-process cache.

    Lookups are keyed on coordinates rounded to two decimals (about 1 km).
    Empty answers are cached too so a miss is not retried for a day.
    """

    BASE_URL = "https://us1.locationiq.com/v1/reverse"
    CACHE_TTL_SECONDS = 24 * 60 * 60
    REQUEST_TIMEOUT_SECONDS = 5.0

    def __init__(
        self,
        api_key: Optional[str],
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api_key = api_key
        self.transport = transport
        self._clock = clock
        self._cache: Dict[str, Tuple[float, Optional[str]]] = {}
        if not self.enabled:
            logger.warning("LOCATIONIQ_API_KEY not configured - reverse geocoding will be disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @staticmethod
    def cache_key(lat: float, lon: float) -> str:
        return f"geocode:{lat:.2f},{lon:.2f}"

    async def get_city_name(self, lat: float, lon: float) -> Optional[str]:
        if not self.enabled:
            return None
        key = self.cache_key(lat, lon)
        now = self._clock()
        cached = self._cache.get(key)
        if cached is not None and cached[0] > now:
            logger.debug("Cache hit for geocoding: %s -> %s", key, cached[1])
            return cached[1]
        self._evict_expired(now)
        try:
            city = await self._fetch_city_name(lat, lon)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch city name for coordinates (%s, %s): %s", lat, lon, exc)
            return None
        self._cache[key] = (self._clock() + self.CACHE_TTL_SECONDS, city)
        logger.debug("Cached geocoding result: %s -> %s", key, city)
        return city

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._cache.items() if expires_at <= now]
        for key in expired:
            del self._cache[key]

    async def _fetch_city_name(self, lat: float, lon: float) -> Optional[str]:
        params = {
            "lat": lat,
            "lon": lon,
            "format": "json",
            "zoom": 10,
            "accept-language": "hu",
            "normalizeaddress": 1,
            "normalizecity": 1,
            "namedetails": 1,
            "key": self.api_key,
        }
        async with httpx.AsyncClient(timeout=self.REQUEST_TIMEOUT_SECONDS, transport=self.transport) as client:
            resp = await client.get(self.BASE_URL, params=params)
            resp.raise_for_status()
            data = resp.json()
        address = data.get("address") if isinstance(data, dict) else None
        city = address.get("city") if isinstance(address, dict) else None
        if not isinstance(city, str) or not city:
            logger.debug("No city found in LocationIQ response for (%s, %s)", lat, lon)
            return None
        return city
