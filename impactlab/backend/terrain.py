"""Static target-material and impactor-composition tables."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class TerrainProfile:
    """Target material the impactor strikes."""

    label: str
    target_density_kg_m3: float
    dampening: float


TERRAIN: Dict[str, TerrainProfile] = {
    "land": TerrainProfile(label="continental crust", target_density_kg_m3=2600.0, dampening=1.0),
    "water": TerrainProfile(label="open ocean", target_density_kg_m3=1020.0, dampening=0.78),
    "ice": TerrainProfile(label="polar ice", target_density_kg_m3=930.0, dampening=0.62),
}
DEFAULT_TERRAIN = "land"

COMPOSITIONS = ("stony", "iron", "carbonaceous", "cometary", "unknown")

COMPOSITION_DENSITY: Dict[str, float] = {
    "iron": 7800.0,
    "stony": 3300.0,
    "carbonaceous": 1800.0,
    "cometary": 600.0,
    "unknown": 3200.0,
}

_COMPOSITION_LABELS = {
    "iron": "Iron-rich",
    "stony": "Stony",
    "carbonaceous": "Carbonaceous",
    "cometary": "Cometary",
}


def get_terrain(key: str | None) -> TerrainProfile:
    """Return the terrain profile for ``key``; unknown keys fall back to land."""

    return TERRAIN.get(str(key or "").lower(), TERRAIN[DEFAULT_TERRAIN])


def composition_density(composition: str | None) -> float:
    return COMPOSITION_DENSITY.get(composition or "unknown", COMPOSITION_DENSITY["unknown"])


def composition_label(composition: str | None) -> str:
    return _COMPOSITION_LABELS.get(composition or "", "Unknown")


def composition_from_density(density_kg_m3: float) -> str:
    """Coarse composition guess used when narrating a scenario."""

    if density_kg_m3 >= 7000:
        return "iron"
    if density_kg_m3 <= 600:
        return "cometary"
    if density_kg_m3 <= 2000:
        return "carbonaceous"
    return "stony"


def preset_composition_from_density(density_kg_m3: float) -> str:
    """Composition guess for offline presets, which only carry a bulk density."""

    if density_kg_m3 >= 6000:
        return "iron"
    if density_kg_m3 <= 800:
        return "cometary"
    if density_kg_m3 <= 1800:
        return "carbonaceous"
    return "stony"
