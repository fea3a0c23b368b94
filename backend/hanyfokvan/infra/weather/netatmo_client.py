from __future__ import annotations

from typing import Optional

import httpx

from hanyfokvan.domain.geo import BoundingBox


class NetatmoClient:
    PUBLIC_DATA_URL = "https://api.netatmo.com/api/getpublicdata"

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    async def fetch_public_data(self, box: BoundingBox, access_token: str) -> dict:
        data = {
            "lat_ne": str(box.lat_ne),
            "lon_ne": str(box.lon_ne),
            "lat_sw": str(box.lat_sw),
            "lon_sw": str(box.lon_sw),
            "filter": "true",
        }
        headers = {"Authorization": f"Bearer {access_token}"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(self.PUBLIC_DATA_URL, data=data, headers=headers)
            resp.raise_for_status()
            return resp.json()
