from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .models import ConsensusReading, StationObservation

# Coordinates closer than this to the default location count as the default
DEFAULT_LOCATION_TOLERANCE_DEG = 0.0001
NEARBY_LABEL = "Nearby mean"


def is_default_location(lat: float, lon: float, default_lat: float, default_lon: float) -> bool:
    return (
        abs(lat - default_lat) < DEFAULT_LOCATION_TOLERANCE_DEG
        and abs(lon - default_lon) < DEFAULT_LOCATION_TOLERANCE_DEG
    )


def format_coordinates(lat: float, lon: float) -> str:
    return f"{lat:.4f},{lon:.4f}"


def _mean(values: List[float], digits: int) -> Optional[float]:
    if not values:
        return None
    rounded = round(sum(values) / len(values), digits)
    return float(rounded)


def compute_consensus(
    observations: Iterable[StationObservation],
    *,
    lat: float,
    lon: float,
    source_counts: Dict[str, int],
    default_lat: float,
    default_lon: float,
    default_name: str,
) -> ConsensusReading:
    """Average every present field independently across ``observations``.

    Temperature is rounded to one decimal, humidity to a whole percent and
    pressure to one decimal. ``source_counts`` keeps its insertion order in
    the source label.
    """
    observations = list(observations)
    temperatures = [o.temperature_c for o in observations if o.temperature_c is not None]
    humidities = [o.humidity_pct for o in observations if o.humidity_pct is not None]
    pressures = [o.pressure_mb for o in observations if o.pressure_mb is not None]

    is_default = is_default_location(lat, lon, default_lat, default_lon)
    location_label = default_name if is_default else format_coordinates(lat, lon)
    if not temperatures:
        return ConsensusReading.empty(location_label)

    details = ", ".join(f"{count} {name}" for name, count in source_counts.items())
    place = default_name if is_default else NEARBY_LABEL
    return ConsensusReading(
        temperature_c=_mean(temperatures, 1),
        humidity_pct=_mean(humidities, 0),
        pressure_mb=_mean(pressures, 1),
        source_label=f"{place} (Mean of {len(temperatures)} stations: {details})",
        location_label=location_label,
        station_count=len(temperatures),
        source_counts=dict(source_counts),
    )
