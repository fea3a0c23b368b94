from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx


class WeatherComClient:
    NEAR_URL = "https://api.weather.com/v3/location/near"
    CURRENT_URL = "https://api.weather.com/v2/pws/observations/current"

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @asynccontextmanager
    async def session(self) -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            yield client

    async def fetch_near(self, client: httpx.AsyncClient, lat: float, lon: float) -> dict:
        params = {
            "geocode": f"{lat},{lon}",
            "product": "pws",
            "format": "json",
            "apiKey": self.api_key,
        }
        resp = await client.get(self.NEAR_URL, params=params)
        resp.raise_for_status()
        return resp.json()

    async def fetch_current(self, client: httpx.AsyncClient, station_id: str) -> dict:
        params = {
            "stationId": station_id,
            "format": "json",
            "units": "m",
            "numericPrecision": "decimal",
            "apiKey": self.api_key,
        }
        resp = await client.get(self.CURRENT_URL, params=params)
        resp.raise_for_status()
        return resp.json()
