"""Physics utilities powering the Impact Lab simulation backend."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import math

from .terrain import DEFAULT_TERRAIN, get_terrain
from .units import MEGATON_TNT_JOULES, clamp, to_number_or_zero

# -----------------------------------------------------------------------------
# Shared constants
# -----------------------------------------------------------------------------
DIAMETER_RANGE_M = (5.0, 100_000.0)
VELOCITY_RANGE_KMS = (1.0, 150.0)
ANGLE_RANGE_DEG = (5.0, 90.0)
DENSITY_RANGE_KG_M3 = (500.0, 11_000.0)

MIN_SIN_ANGLE = 0.1
TRANSIENT_CRATER_PREFACTOR = 1.161
COMPLEX_CRATER_THRESHOLD_M = 3500.0
COMPLEX_CRATER_FACTOR = 1.28
SIMPLE_CRATER_FACTOR = 1.16
CRATER_DEPTH_RATIO = 0.19


@dataclass(frozen=True)
class ImpactParameters:
    """Kinematic and material inputs for a single impact."""

    diameter_m: float
    velocity_kms: float
    angle_deg: float
    density_kg_m3: float
    terrain: str = DEFAULT_TERRAIN

    @classmethod
    def clamped(
        cls,
        *,
        diameter_m: object,
        velocity_kms: object,
        angle_deg: object,
        density_kg_m3: object,
        terrain: str | None = None,
    ) -> "ImpactParameters":
        """Build parameters clamped to the practical input domain.

        Missing or non-numeric values are treated as zero and therefore land on
        the lower bound of their range.
        """

        return cls(
            diameter_m=clamp(to_number_or_zero(diameter_m), *DIAMETER_RANGE_M),
            velocity_kms=clamp(to_number_or_zero(velocity_kms), *VELOCITY_RANGE_KMS),
            angle_deg=clamp(to_number_or_zero(angle_deg), *ANGLE_RANGE_DEG),
            density_kg_m3=clamp(to_number_or_zero(density_kg_m3), *DENSITY_RANGE_KG_M3),
            terrain=terrain or DEFAULT_TERRAIN,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "diameter_m": self.diameter_m,
            "velocity_kms": self.velocity_kms,
            "angle_deg": self.angle_deg,
            "density_kg_m3": self.density_kg_m3,
            "terrain": self.terrain,
        }


@dataclass(frozen=True)
class ImpactResult:
    """Physical effect radii (m), peak wind (m/s), magnitude and yield (Mt)."""

    final_crater_diameter: float
    crater_depth: float
    fireball_radius: float
    shockwave_radius: float
    severe_damage_radius: float
    wind_damage_radius: float
    window_damage_radius: float
    peak_wind: float
    richter_magnitude: float
    energy_mt: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "crater_diameter": self.final_crater_diameter,
            "crater_depth": self.crater_depth,
            "fireball_radius": self.fireball_radius,
            "shockwave_radius": self.shockwave_radius,
            "wind_damage_radius": self.wind_damage_radius,
            "peak_wind": self.peak_wind,
            "energy_mt": self.energy_mt,
            "richter_magnitude": self.richter_magnitude,
            "severe_damage_radius": self.severe_damage_radius,
            "window_damage_radius": self.window_damage_radius,
        }


# -----------------------------------------------------------------------------
# Utility helpers
# -----------------------------------------------------------------------------
def _mass_kg(diameter_m: float, density_kg_m3: float) -> float:
    volume_m3 = (math.pi / 6.0) * diameter_m**3
    return volume_m3 * density_kg_m3


def _transient_crater_diameter_m(
    diameter_m: float,
    velocity_ms: float,
    sin_angle: float,
    density_kg_m3: float,
    target_density_kg_m3: float,
) -> float:
    velocity_component = (velocity_ms * sin_angle) ** 0.44
    density_ratio = (density_kg_m3 / target_density_kg_m3) ** 0.333
    size_component = diameter_m**0.78
    return TRANSIENT_CRATER_PREFACTOR * velocity_component * density_ratio * size_component


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------
def compute_impact(params: ImpactParameters) -> ImpactResult:
    """Turn impact kinematics into crater dimensions and hazard radii.

    Inputs are expected to be pre-clamped (see ``ImpactParameters.clamped``);
    the only guard applied here is a floor on sin(angle) so grazing impacts do
    not collapse to zero energy. The damage radii are built as nested maxima so
    that window >= wind >= severe for any input scale.
    """

    terrain = get_terrain(params.terrain)

    mass_kg = _mass_kg(params.diameter_m, params.density_kg_m3)
    velocity_ms = params.velocity_kms * 1000.0
    sin_angle = max(math.sin(math.radians(params.angle_deg)), MIN_SIN_ANGLE)

    kinetic_energy_j = 0.5 * mass_kg * velocity_ms**2
    effective_energy_j = kinetic_energy_j * sin_angle * terrain.dampening

    transient_diameter = _transient_crater_diameter_m(
        params.diameter_m,
        velocity_ms,
        sin_angle,
        params.density_kg_m3,
        terrain.target_density_kg_m3,
    )
    if transient_diameter > COMPLEX_CRATER_THRESHOLD_M:
        final_crater_diameter = transient_diameter * COMPLEX_CRATER_FACTOR
    else:
        final_crater_diameter = transient_diameter * SIMPLE_CRATER_FACTOR
    crater_depth = final_crater_diameter * CRATER_DEPTH_RATIO

    energy_mt = effective_energy_j / MEGATON_TNT_JOULES

    fireball_radius = energy_mt**0.4 * 1300.0
    shockwave_radius = energy_mt**0.33 * 4000.0
    severe_damage_radius = max(shockwave_radius * 0.35, final_crater_diameter * 0.4)
    wind_damage_radius = max(shockwave_radius * 0.58, severe_damage_radius * 1.1)
    window_damage_radius = max(shockwave_radius * 1.25, wind_damage_radius * 1.1)
    peak_wind = energy_mt**0.28 * 120.0
    richter_magnitude = math.log10(effective_energy_j) - 4.8

    return ImpactResult(
        final_crater_diameter=final_crater_diameter,
        crater_depth=crater_depth,
        fireball_radius=fireball_radius,
        shockwave_radius=shockwave_radius,
        severe_damage_radius=severe_damage_radius,
        wind_damage_radius=wind_damage_radius,
        window_damage_radius=window_damage_radius,
        peak_wind=peak_wind,
        richter_magnitude=richter_magnitude,
        energy_mt=energy_mt,
    )
