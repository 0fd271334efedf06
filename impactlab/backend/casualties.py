"""Population-weighted casualty and economic loss estimates."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

import math

from .physics_engine import ImpactResult
from .units import to_finite

CASUALTY_FATALITY_FACTORS: Dict[str, float] = {
    "fireball": 0.98,
    "blast": 0.80,
    "wind": 0.50,
    "seismic": 0.15,
}
ECONOMIC_LOSS_PER_FATALITY_USD = 4_200_000.0
DEFAULT_POPULATION_DENSITY = 50.0


@dataclass(frozen=True)
class PopulationContext:
    """Population around the impact site (people, people/km², km)."""

    total: float
    density: float
    radius_km: float

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, object]]) -> "PopulationContext":
        raw = raw or {}
        total = to_finite(raw.get("total"))
        density = to_finite(raw.get("density"))
        radius_km = to_finite(raw.get("radius_km"))
        return cls(
            total=max(total or 0.0, 0.0),
            density=density if density and density > 0 else DEFAULT_POPULATION_DENSITY,
            radius_km=radius_km if radius_km and radius_km > 0 else 0.0,
        )

    def to_dict(self) -> Dict[str, float]:
        return {"total": self.total, "density": self.density, "radius_km": self.radius_km}


@dataclass(frozen=True)
class HazardCasualty:
    exposed: float
    fatalities: float

    def to_dict(self) -> Dict[str, float]:
        return {"exposed": self.exposed, "fatalities": self.fatalities}


CasualtyEstimate = Dict[str, HazardCasualty]


@dataclass(frozen=True)
class InfrastructureEstimate:
    severe_damage_radius: float
    window_damage_radius: float
    economic_loss: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "severe_damage_radius": self.severe_damage_radius,
            "window_damage_radius": self.window_damage_radius,
            "economic_loss": self.economic_loss,
        }


def _area_km2(radius_m: object) -> float:
    radius = to_finite(radius_m)
    if radius is None or radius <= 0:
        return 0.0
    return math.pi * (radius / 1000.0) ** 2


def _hazard_radii(impact: ImpactResult) -> Tuple[Tuple[str, float], ...]:
    return (
        ("fireball", impact.fireball_radius),
        ("blast", impact.severe_damage_radius),
        ("wind", impact.wind_damage_radius),
        ("seismic", impact.shockwave_radius),
    )


def explicit_population(population: PopulationContext, population_override: float = 0.0) -> float:
    """The override when positive, otherwise the resolved population total."""

    override = to_finite(population_override) or 0.0
    if override > 0:
        return override
    return max(population.total, 0.0)


def estimate_casualties(
    impact: ImpactResult,
    population: PopulationContext,
    population_override: float = 0.0,
) -> CasualtyEstimate:
    """Exposed and fatal counts per hazard ring.

    When an explicit population is known it is spread over at most the largest
    affected area, and no ring may expose more people than that figure.
    """

    effective_density = max(population.density or DEFAULT_POPULATION_DENSITY, 1.0)
    known_population = explicit_population(population, population_override)
    has_explicit_population = known_population > 0

    hazards = _hazard_radii(impact)
    max_area = max(_area_km2(radius) for _, radius in hazards)
    if has_explicit_population and max_area > 0:
        effective_density = max(effective_density, known_population / max_area)

    casualties: CasualtyEstimate = {}
    for key, radius in hazards:
        area = _area_km2(radius)
        if area <= 0:
            casualties[key] = HazardCasualty(exposed=0.0, fatalities=0.0)
            continue
        exposed = area * effective_density
        if has_explicit_population:
            exposed = min(exposed, known_population)
        casualties[key] = HazardCasualty(
            exposed=exposed,
            fatalities=exposed * CASUALTY_FATALITY_FACTORS[key],
        )
    return casualties


def estimate_economic_loss(
    casualties: CasualtyEstimate,
    population: PopulationContext,
    impact: ImpactResult,
) -> float:
    """Loss in USD, scaled by density and a log-damped infrastructure factor."""

    total_fatalities = sum(entry.fatalities for entry in casualties.values())
    density_factor = max(population.density / 100.0, 0.2)
    infrastructure_factor = (impact.severe_damage_radius / 1000.0) * 12.0
    return total_fatalities * ECONOMIC_LOSS_PER_FATALITY_USD * density_factor * math.log1p(infrastructure_factor)


def build_infrastructure(
    impact: ImpactResult,
    casualties: CasualtyEstimate,
    population: PopulationContext,
) -> InfrastructureEstimate:
    return InfrastructureEstimate(
        severe_damage_radius=impact.severe_damage_radius,
        window_damage_radius=impact.window_damage_radius,
        economic_loss=estimate_economic_loss(casualties, population, impact),
    )


def casualties_to_dict(casualties: CasualtyEstimate) -> Dict[str, Dict[str, float]]:
    return {key: entry.to_dict() for key, entry in casualties.items()}
