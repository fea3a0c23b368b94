from __future__ import annotations

from typing import Dict, List, Optional

import httpx

from hanyfokvan.config import Settings
from hanyfokvan.providers.weather.base import StationProvider
from hanyfokvan.providers.weather.netatmo import NetatmoProvider
from hanyfokvan.providers.weather.weather_com import WeatherComProvider


class StationProviderRegistry:
    """Ordered in-memory registry; built once at startup and only read after."""

    def __init__(self) -> None:
        self._providers: Dict[str, StationProvider] = {}

    def register(self, provider: StationProvider, name: Optional[str] = None) -> None:
        name = name or provider.name
        if not name:
            raise ValueError("Provider name is required")
        if name in self._providers:
            raise ValueError(f"Provider '{name}' already registered")
        self._providers[name] = provider

    def get(self, name: str) -> StationProvider:
        try:
            return self._providers[name]
        except KeyError as exc:
            raise KeyError(f"Provider '{name}' is not registered") from exc

    def list(self) -> List[str]:
        return list(self._providers.keys())

    def usable(self) -> List[StationProvider]:
        return [provider for provider in self._providers.values() if provider.is_usable()]


def build_default_registry(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> StationProviderRegistry:
    registry = StationProviderRegistry()
    registry.register(WeatherComProvider.from_settings(settings, transport=transport))
    registry.register(NetatmoProvider.from_settings(settings, transport=transport))
    return registry
