from __future__ import annotations

from typing import Protocol

from hanyfokvan.domain.models import NearbyStation, StationObservation


class ProviderNotConfiguredError(RuntimeError):
    """Raised when a provider is asked to act without usable credentials."""

    def __init__(self, provider: str, hint: str = ""):
        message = f"{provider} is not configured"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)
        self.provider = provider


class StationProvider(Protocol):
    """Contract for networks of personal weather stations."""

    name: str

    def is_usable(self) -> bool:
        """Whether credentials are present right now; never cached."""
        raise NotImplementedError

    async def fetch_observations(self, *, lat: float, lon: float) -> list[StationObservation]:
        """Current observations near the point.

        Missing configuration, HTTP failures and malformed payloads are logged
        and degrade to an empty (or shorter) list instead of raising.
        """
        raise NotImplementedError

    async def list_nearby_stations(self, *, lat: float, lon: float) -> list[NearbyStation]:
        """Stations near the point.

        Same tolerance as ``fetch_observations`` except that an unusable
        provider raises ``ProviderNotConfiguredError`` so standalone callers
        can tell "not configured" apart from "nothing found".
        """
        raise NotImplementedError
