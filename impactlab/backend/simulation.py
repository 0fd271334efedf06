"""Request validation and the pure impact-effects pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .casualties import (
    PopulationContext,
    build_infrastructure,
    casualties_to_dict,
    estimate_casualties,
)
from .errors import InvalidSimulationInput
from .footprints import Footprint, build_footprints
from .physics_engine import ImpactParameters, compute_impact
from .reporting import build_summary
from .tsunami import OceanContext, compute_tsunami_impact
from .units import to_finite


@dataclass(frozen=True)
class ImpactLocation:
    lat: float
    lng: float
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"lat": self.lat, "lng": self.lng}
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True)
class SimulationRequest:
    location: ImpactLocation
    parameters: ImpactParameters
    population_override: float = 0.0

    @classmethod
    def from_payload(cls, payload: Any) -> "SimulationRequest":
        """Validate a JSON request body; parameters are clamped, location is strict."""

        if not isinstance(payload, Mapping):
            raise InvalidSimulationInput("Missing simulation payload")

        location = payload.get("location")
        if not isinstance(location, Mapping):
            raise InvalidSimulationInput("Missing or invalid impact location")
        lat = _coordinate(location.get("lat"))
        lng = _coordinate(location.get("lng"))
        if lat is None or lng is None:
            raise InvalidSimulationInput("Missing or invalid impact location")
        if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
            raise InvalidSimulationInput("Impact location is out of range")

        description = location.get("description")
        terrain = payload.get("terrain")
        override = payload.get("populationOverride", payload.get("population_override"))

        return cls(
            location=ImpactLocation(
                lat=lat,
                lng=lng,
                description=(str(description).strip() or None) if description else None,
            ),
            parameters=ImpactParameters.clamped(
                diameter_m=payload.get("diameter"),
                velocity_kms=payload.get("velocity"),
                angle_deg=payload.get("angle"),
                density_kg_m3=payload.get("density"),
                terrain=str(terrain) if terrain else None,
            ),
            population_override=max(to_finite(override) or 0.0, 0.0),
        )


def _coordinate(value: Any) -> Optional[float]:
    # JSON numbers only; strings such as "12" are rejected like any other malformed location.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return to_finite(value)


def run_simulation(
    request: SimulationRequest,
    population_payload: Mapping[str, Any],
    geology: Optional[Mapping[str, Any]],
    *,
    arrival_depth_mode: str = "resolved",
) -> Dict[str, Any]:
    """Evaluate one scenario against already-resolved population and geology.

    Pure and synchronous: the look-ups happen before this is called, and the
    returned mapping is a fresh JSON-ready structure.
    """

    population = PopulationContext.from_dict(population_payload.get("population"))
    params = request.parameters

    impact = compute_impact(params)
    casualties = estimate_casualties(impact, population, request.population_override)
    infrastructure = build_infrastructure(impact, casualties, population)
    ocean = OceanContext.from_dict((geology or {}).get("ocean"))
    tsunami = compute_tsunami_impact(
        impact,
        ocean,
        population,
        request.population_override,
        arrival_depth_mode=arrival_depth_mode,
    )
    footprints: List[Footprint] = build_footprints(impact, casualties, infrastructure, tsunami)
    location = request.location.to_dict()

    return {
        "summary": build_summary(params, impact, location, population, tsunami),
        "location": location,
        "parameters": params.to_dict(),
        "population": dict(population_payload),
        "geology": dict(geology) if geology is not None else None,
        "impact": impact.to_dict(),
        "infrastructure": infrastructure.to_dict(),
        "casualties": casualties_to_dict(casualties),
        "tsunami": tsunami.to_dict() if tsunami is not None else None,
        "footprints": [footprint.to_dict() for footprint in footprints],
    }
