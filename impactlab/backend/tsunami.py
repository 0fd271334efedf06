"""Tsunami estimates for oceanic impacts."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Mapping, Optional

import math

from .casualties import DEFAULT_POPULATION_DENSITY, PopulationContext
from .physics_engine import ImpactResult
from .units import to_finite

MIN_TSUNAMI_DEPTH_M = 5.0
GRAVITY_MS2 = 9.81
DEFAULT_TRAVEL_DISTANCE_KM = 60.0
FIXED_ARRIVAL_DEPTH_M = 50.0
TSUNAMI_FATALITY_FACTOR = 0.45

ARRIVAL_DEPTH_MODES = ("resolved", "fixed")


@dataclass(frozen=True)
class OceanContext:
    """Bathymetry and sea-state around the impact point."""

    depth_meters: Optional[float] = None
    elevation_meters: Optional[float] = None
    wave_height_meters: Optional[float] = None
    wave_period_seconds: Optional[float] = None
    surface_temperature_c: Optional[float] = None
    source: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, object]]) -> "OceanContext":
        raw = raw or {}
        source = raw.get("source")
        return cls(
            depth_meters=to_finite(raw.get("depth_meters")),
            elevation_meters=to_finite(raw.get("elevation_meters")),
            wave_height_meters=to_finite(raw.get("wave_height_meters")),
            wave_period_seconds=to_finite(raw.get("wave_period_seconds")),
            surface_temperature_c=to_finite(raw.get("surface_temperature_c")),
            source=str(source) if source else None,
        )

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class TsunamiResult:
    source_wave_height: float
    coastal_wave_height: float
    runup_height: float
    inundation_distance_km: float
    arrival_time_minutes: float
    exposed_population: float
    fatalities: float
    depth_meters: float
    wave_period_seconds: Optional[float]
    surface_temperature_c: Optional[float]
    wave_height_meters: Optional[float]
    source: Optional[str]

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def compute_tsunami_impact(
    impact: ImpactResult,
    ocean: Optional[OceanContext],
    population: PopulationContext,
    explicit_population: float = 0.0,
    *,
    arrival_depth_mode: str = "resolved",
) -> Optional[TsunamiResult]:
    """Estimate wave heights, run-up, arrival and exposure for an ocean strike.

    Returns ``None`` unless the ocean depth is a finite number above 5 m.
    Wave heights are reported in metres. ``arrival_depth_mode`` selects the
    depth used for the shallow-water wave speed: ``"resolved"`` uses the looked
    up depth, ``"fixed"`` assumes a 50 m continental shelf.
    """

    if arrival_depth_mode not in ARRIVAL_DEPTH_MODES:
        raise ValueError(f"Unknown tsunami arrival depth mode '{arrival_depth_mode}'.")

    depth_m = to_finite(ocean.depth_meters) if ocean is not None else None
    if depth_m is None or depth_m <= MIN_TSUNAMI_DEPTH_M:
        return None

    crater_radius_km = impact.final_crater_diameter / 2.0 / 1000.0
    depth_km = depth_m / 1000.0
    energy_mt = max(impact.energy_mt, 1.0)
    energy_factor = energy_mt**0.28
    depth_factor = max(math.sqrt(depth_km + 0.05), 0.35)
    source_wave_height = min(energy_factor * 6.0 / depth_factor, crater_radius_km * 800.0)

    travel_distance_km = max(population.radius_km or DEFAULT_TRAVEL_DISTANCE_KM, crater_radius_km * 2.0 + 30.0)
    attenuation = crater_radius_km / max(travel_distance_km, crater_radius_km + 1.0)
    coastal_wave_height = source_wave_height * attenuation**1.1
    runup_height = coastal_wave_height * 1.35
    inundation_distance_km = max(runup_height / 3.0, 1.0) + coastal_wave_height / 5.0

    if arrival_depth_mode == "fixed":
        wave_speed = math.sqrt(GRAVITY_MS2 * FIXED_ARRIVAL_DEPTH_M)
    else:
        wave_speed = math.sqrt(GRAVITY_MS2 * max(depth_m, 10.0))
    arrival_time_minutes = travel_distance_km * 1000.0 / wave_speed / 60.0

    density = max(population.density or DEFAULT_POPULATION_DENSITY, 1.0)
    exposed_population = math.pi * inundation_distance_km**2 * density
    if explicit_population > 0:
        exposed_population = min(exposed_population, explicit_population)

    return TsunamiResult(
        source_wave_height=source_wave_height * 1000.0,
        coastal_wave_height=coastal_wave_height * 1000.0,
        runup_height=runup_height * 1000.0,
        inundation_distance_km=inundation_distance_km,
        arrival_time_minutes=arrival_time_minutes,
        exposed_population=exposed_population,
        fatalities=exposed_population * TSUNAMI_FATALITY_FACTOR,
        depth_meters=depth_m,
        wave_period_seconds=ocean.wave_period_seconds,
        surface_temperature_c=ocean.surface_temperature_c,
        wave_height_meters=ocean.wave_height_meters,
        source=ocean.source,
    )
