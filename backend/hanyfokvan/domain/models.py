from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional


@dataclass(frozen=True)
class StationObservation:
    station_id: str
    source: str
    temperature_c: float
    humidity_pct: Optional[float] = None
    pressure_mb: Optional[float] = None

    def __post_init__(self):
        if not self.station_id or not self.source:
            raise ValueError("station_id and source are required")
        if self.temperature_c is None:
            raise ValueError("temperature_c is required")


@dataclass(frozen=True)
class NearbyStation:
    id: str
    name: str
    source: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_km: Optional[float] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("id is required")
        if self.distance_km is not None and self.distance_km < 0:
            raise ValueError("distance_km must be non-negative")


@dataclass(frozen=True)
class ConsensusReading:
    """Mean of every observation gathered for one request.

    ``temperature_c`` is ``None`` only for the empty reading returned when no
    provider contributed anything.
    """

    temperature_c: Optional[float]
    location_label: str
    source_label: str = ""
    humidity_pct: Optional[float] = None
    pressure_mb: Optional[float] = None
    station_count: int = 0
    source_counts: Dict[str, int] = field(default_factory=dict, hash=False)
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_data(self) -> bool:
        return self.temperature_c is not None and self.station_count > 0

    @classmethod
    def empty(cls, location_label: str = "") -> "ConsensusReading":
        return cls(temperature_c=None, location_label=location_label)
