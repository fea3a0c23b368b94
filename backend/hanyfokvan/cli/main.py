import asyncio
from typing import Optional

import typer

from hanyfokvan.config import configure_logging, get_settings
from hanyfokvan.hub.weather_hub import WeatherHub
from hanyfokvan.hub.weather_registry import build_default_registry

app = typer.Typer(help="Query nearby personal weather stations")


def _build_hub() -> WeatherHub:
    settings = get_settings()
    return WeatherHub(
        build_default_registry(settings),
        default_lat=settings.default_latitude,
        default_lon=settings.default_longitude,
        default_name=settings.default_location_name,
    )


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    configure_logging("DEBUG" if verbose else None)


@app.command("current")
def cli_current(
    lat: Optional[float] = typer.Option(None, help="Latitude; defaults to the configured location"),
    lon: Optional[float] = typer.Option(None, help="Longitude; defaults to the configured location"),
):
    if (lat is None) != (lon is None):
        raise typer.BadParameter("--lat and --lon must be given together")
    reading = asyncio.run(_build_hub().fetch_consensus(lat, lon))
    if not reading.has_data:
        typer.echo("No data available")
        raise typer.Exit(code=0)
    typer.echo(f"{reading.location_label}: {reading.temperature_c:.1f} °C")
    if reading.humidity_pct is not None:
        typer.echo(f"humidity\t{reading.humidity_pct:.0f} %")
    if reading.pressure_mb is not None:
        typer.echo(f"pressure\t{reading.pressure_mb:.1f} mb")
    typer.echo(reading.source_label)


@app.command("stations")
def cli_stations(
    lat: float = typer.Option(..., help="Latitude"),
    lon: float = typer.Option(..., help="Longitude"),
    top: int = typer.Option(20, help="Number of stations to show"),
):
    stations = asyncio.run(_build_hub().list_nearby_stations(lat, lon))
    if not stations:
        typer.echo("No stations found")
        raise typer.Exit(code=0)
    typer.echo("id\tname\tdistance_km\tsource")
    for station in stations[:top]:
        distance = f"{station.distance_km:.2f}" if station.distance_km is not None else "-"
        typer.echo(f"{station.id}\t{station.name}\t{distance}\t{station.source}")


@app.command("providers")
def cli_providers():
    registry = _build_hub().registry
    for name in registry.list():
        status = "usable" if registry.get(name).is_usable() else "not configured"
        typer.echo(f"{name}\t{status}")


if __name__ == "__main__":
    app()
