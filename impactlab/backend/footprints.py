"""Hazard ring descriptors for map rendering."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .casualties import CasualtyEstimate, InfrastructureEstimate
from .physics_engine import ImpactResult
from .tsunami import TsunamiResult
from .units import to_finite


@dataclass(frozen=True)
class FootprintStat:
    label: str
    value: float
    kind: str

    def to_dict(self) -> Dict[str, object]:
        return {"label": self.label, "value": self.value, "kind": self.kind}


@dataclass(frozen=True)
class Footprint:
    type: str
    title: str
    description: str
    label: str
    radius_meters: float
    stats: List[FootprintStat] = field(default_factory=list)
    inner_radius_meters: Optional[float] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "label": self.label,
            "radius_meters": self.radius_meters,
            "stats": [stat.to_dict() for stat in self.stats],
        }
        if self.inner_radius_meters is not None:
            payload["inner_radius_meters"] = self.inner_radius_meters
        return payload


def label_with_radius(title: str, radius_meters: Optional[float]) -> str:
    """Append a "(X km)" suffix when the radius is positive."""

    radius = to_finite(radius_meters)
    if not radius or radius <= 0:
        return title
    km = radius / 1000.0
    digits = 0 if km >= 100 else 1 if km >= 10 else 2
    return f"{title} ({km:.{digits}f} km)"


def _stat(label: str, value: object, kind: str) -> Optional[FootprintStat]:
    number = to_finite(value)
    if number is None:
        return None
    return FootprintStat(label=label, value=number, kind=kind)


def _positive_or_zero(value: Optional[float]) -> float:
    return value if value is not None and value > 0 else 0.0


def _footprint(
    kind: str,
    title: str,
    description: str,
    label_title: str,
    radius: Optional[float],
    stats: Sequence[Optional[FootprintStat]],
) -> Footprint:
    return Footprint(
        type=kind,
        title=title,
        description=description,
        label=label_with_radius(label_title, radius),
        radius_meters=_positive_or_zero(radius),
        stats=[stat for stat in stats if stat is not None],
    )


def build_footprints(
    impact: ImpactResult,
    casualties: CasualtyEstimate,
    infrastructure: InfrastructureEstimate,
    tsunami: Optional[TsunamiResult],
) -> List[Footprint]:
    """Crater, fireball, severe, wind and shockwave rings, plus tsunami if present.

    Rings whose underlying radius is missing or non-positive carry a radius of
    exactly 0; callers drop those before rendering (see
    ``renderable_footprints``). Stats with non-finite values are omitted.
    """

    crater_diameter = to_finite(impact.final_crater_diameter)
    crater_radius = crater_diameter / 2.0 if crater_diameter and crater_diameter > 0 else None
    fireball_radius = to_finite(impact.fireball_radius)
    severe_radius = to_finite(impact.severe_damage_radius)
    wind_radius = to_finite(impact.wind_damage_radius)
    shockwave_radius = to_finite(impact.shockwave_radius)
    energy_mt = impact.energy_mt

    def exposed(key: str) -> Optional[float]:
        entry = casualties.get(key)
        return entry.exposed if entry is not None else None

    def fatalities(key: str) -> Optional[float]:
        entry = casualties.get(key)
        return entry.fatalities if entry is not None else None

    footprints = [
        _footprint(
            "crater",
            "Crater rim",
            "Surface excavation and ejecta blanket",
            "Crater rim",
            crater_radius,
            [
                _stat("Diameter", crater_diameter, "distance"),
                _stat("Depth", impact.crater_depth, "distance"),
            ],
        ),
        _footprint(
            "fireball",
            "Thermal pulse",
            "Extreme heating and vaporization zone",
            "Thermal pulse",
            fireball_radius,
            [
                _stat("Radius", fireball_radius, "distance"),
                _stat("Population exposed", exposed("fireball"), "people"),
                _stat("Estimated casualties", fatalities("fireball"), "people"),
                _stat("Impact energy", energy_mt, "energy"),
            ],
        ),
        _footprint(
            "severe",
            "Severe blast",
            "High overpressure; structural collapse likely",
            "Severe blast damage",
            severe_radius,
            [
                _stat("Radius", severe_radius, "distance"),
                _stat("Population exposed", exposed("blast"), "people"),
                _stat("Estimated casualties", fatalities("blast"), "people"),
            ],
        ),
        _footprint(
            "wind",
            "Extreme winds",
            "Supersonic winds and airborne debris field",
            "Extreme wind field",
            wind_radius,
            [
                _stat("Radius", wind_radius, "distance"),
                _stat("Peak wind", impact.peak_wind, "wind"),
                _stat("Population exposed", exposed("wind"), "people"),
                _stat("Estimated casualties", fatalities("wind"), "people"),
            ],
        ),
        _footprint(
            "shockwave",
            "Shockwave front",
            "Acoustic wave and widespread damage",
            "Shockwave front",
            shockwave_radius,
            [
                _stat("Radius", shockwave_radius, "distance"),
                _stat("Window damage radius", infrastructure.window_damage_radius, "distance"),
                _stat("Population exposed", exposed("seismic"), "people"),
                _stat("Estimated casualties", fatalities("seismic"), "people"),
                _stat("Estimated economic loss", infrastructure.economic_loss, "currency"),
                _stat("Seismic magnitude", impact.richter_magnitude, "magnitude"),
                _stat("Impact energy", energy_mt, "energy"),
            ],
        ),
    ]

    if tsunami is not None:
        inundation_km = to_finite(tsunami.inundation_distance_km)
        inundation_radius = inundation_km * 1000.0 if inundation_km else None
        footprints.append(
            _footprint(
                "tsunami",
                "Tsunami inundation",
                "Wave run-up and coastal flooding extent",
                "Tsunami impact",
                inundation_radius,
                [
                    _stat("Source wave height", tsunami.source_wave_height, "height"),
                    _stat("Coastal wave height", tsunami.coastal_wave_height, "height"),
                    _stat("Run-up height", tsunami.runup_height, "height"),
                    _stat("Arrival time", tsunami.arrival_time_minutes, "time"),
                    _stat("Inundation reach", inundation_radius, "distance"),
                    _stat("Population exposed", tsunami.exposed_population, "people"),
                    _stat("Estimated casualties", tsunami.fatalities, "people"),
                ],
            )
        )

    return footprints


def renderable_footprints(footprints: Sequence[Footprint]) -> List[Footprint]:
    """Drop empty rings and order the rest outermost first.

    Each ring's inner boundary is the radius of the next smaller ring, so the
    rings tile into concentric annuli.
    """

    visible = sorted(
        (footprint for footprint in footprints if footprint.radius_meters > 0),
        key=lambda footprint: footprint.radius_meters,
        reverse=True,
    )
    rings: List[Footprint] = []
    for index, footprint in enumerate(visible):
        inner = visible[index + 1].radius_meters if index + 1 < len(visible) else 0.0
        rings.append(
            Footprint(
                type=footprint.type,
                title=footprint.title,
                description=footprint.description,
                label=footprint.label,
                radius_meters=footprint.radius_meters,
                stats=list(footprint.stats),
                inner_radius_meters=inner,
            )
        )
    return rings
