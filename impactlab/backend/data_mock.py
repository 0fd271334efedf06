"""Offline presets and heuristic stand-ins for the live data services.

Network look-ups are fragile, so the catalog ships with a small preset file and
these helpers emulate the subset of external data the simulation needs. The
rest of the stack treats them exactly like the live integrations.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import json
import logging

from .asteroids import (
    AliasLookup,
    AsteroidFilters,
    AsteroidRecord,
    build_fallback_asteroid_record,
    filter_asteroid_records,
)
from .errors import MalformedUpstreamError
from .geo_client import FALLBACK_POPULATION, coordinate_label
from .orbit import OrbitalElements

logger = logging.getLogger(__name__)


class FallbackCatalog:
    """Asteroid presets loaded once from a JSON file."""

    def __init__(self, dataset_path: str | Path) -> None:
        self.dataset_path = Path(dataset_path)
        self._presets: Tuple[Dict[str, Any], ...] = tuple(self._load(self.dataset_path))
        self.aliases = AliasLookup.from_presets(self._presets)
        self._records: Tuple[AsteroidRecord, ...] = tuple(
            build_fallback_asteroid_record(preset, self.aliases) for preset in self._presets
        )

    @staticmethod
    def _load(path: Path) -> List[Dict[str, Any]]:
        try:
            with path.open(encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load fallback asteroids from %s: %s", path, exc)
            return []
        if not isinstance(raw, list):
            logger.error("Fallback asteroid file %s must hold a list", path)
            return []
        return [item for item in raw if isinstance(item, dict)]

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------
    @property
    def records(self) -> List[AsteroidRecord]:
        return list(self._records)

    def offline_payload(self) -> Dict[str, Any]:
        records = self.records
        return {
            "asteroids": [record.to_dict() for record in records],
            "page": 0,
            "page_size": len(records),
            "total_pages": 1,
            "total_items": len(records),
            "has_more": False,
            "summary": f"Loaded offline asteroid presets ({len(records)} objects).",
            "source": "fallback",
            "filters": AsteroidFilters().to_dict(),
        }

    def search_payload(self, filters: AsteroidFilters, *, error: Optional[str] = None) -> Dict[str, Any]:
        """Filtered presets shaped like a catalog page, noting why NASA was skipped."""

        matches = filter_asteroid_records(self._records, filters)
        range_note = None
        if filters.start_date is not None:
            range_note = f"Requested range {filters.start_date.isoformat()}"
            if filters.end_date is not None and filters.end_date != filters.start_date:
                range_note += f" to {filters.end_date.isoformat()}"
            range_note += "."
        parts = [
            f"Using offline asteroid presets ({len(matches)} objects).",
            f"NASA catalog unavailable: {error}" if error else "NASA catalog unavailable.",
            range_note,
        ]
        payload: Dict[str, Any] = {
            "asteroids": [record.to_dict() for record in matches],
            "page": 0,
            "page_size": len(matches),
            "total_pages": 1,
            "total_items": len(matches),
            "has_more": False,
            "summary": " ".join(part for part in parts if part),
            "source": "fallback",
            "filters": filters.to_dict(),
        }
        if error:
            payload["error"] = error
        return payload

    # ------------------------------------------------------------------
    # Orbits
    # ------------------------------------------------------------------
    def find_preset(self, asteroid_id: str) -> Optional[Mapping[str, Any]]:
        key = str(asteroid_id).strip().lower()
        for preset, record in zip(self._presets, self._records):
            candidates = (record.id, record.name, record.official_name, record.designation)
            if any(candidate and str(candidate).lower() == key for candidate in candidates):
                return preset
        return None

    def orbit(self, asteroid_id: str) -> Optional[Tuple[OrbitalElements, Dict[str, Any]]]:
        preset = self.find_preset(asteroid_id)
        if preset is None or "orbit" not in preset:
            return None
        try:
            elements = OrbitalElements.from_nasa(preset["orbit"])
        except MalformedUpstreamError as exc:
            logger.warning("Preset orbit for %s is unusable: %s", asteroid_id, exc)
            return None
        record = build_fallback_asteroid_record(preset, self.aliases)
        metadata = {
            "id": record.id,
            "name": record.name,
            "designation": record.designation,
            "orbit_class": record.orbit_class,
            "hazardous": record.hazardous,
            "moid_au": None,
            "nasa_jpl_url": None,
            "source": "fallback",
        }
        return elements, metadata


# ------------------------------------------------------------------
# Heuristic location data
# ------------------------------------------------------------------
def fallback_population(reason: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "population": dict(FALLBACK_POPULATION),
        "source": "Heuristic fallback",
    }
    if reason:
        payload["error"] = reason
    return payload


def fallback_geology(lat: float, lng: float, reason: Optional[str] = None) -> Dict[str, Any]:
    return {
        "label": coordinate_label(lat, lng),
        "country": "Unknown location",
        "region": None,
        "continent": None,
        "elevation_meters": None,
        "surface_type": "Continental landmass",
        "landcover": None,
        "natural_feature": None,
        "water_body": None,
        "timezone": None,
        "highlights": [],
        "ocean": None,
        "fallback": True,
        "fallback_reason": reason or "Geocoding service unavailable",
    }
