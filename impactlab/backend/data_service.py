"""High-level data service combining NASA, location services, and offline fallbacks."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import logging

from .asteroids import AsteroidFilters, filter_asteroid_records
from .data_mock import FallbackCatalog, fallback_geology, fallback_population
from .errors import MalformedUpstreamError
from .geo_client import GeoClient, GeoServiceError
from .nasa_client import NASAAPIError, NASAClient
from .orbit import (
    OrbitalElements,
    approximate_moid_km,
    julian_date,
    orbital_position_from_true_anomaly,
    propagate_true_anomaly,
    sample_orbit_path,
)
from .simulation import SimulationRequest, run_simulation
from .tsunami import ARRIVAL_DEPTH_MODES

logger = logging.getLogger(__name__)


class OrbitNotFound(LookupError):
    """Raised when neither NASA nor the presets know an object's orbit."""


class ImpactDataService:
    """Coordinates live look-ups with deterministic fallbacks around the core."""

    def __init__(
        self,
        *,
        nasa_api_key: str,
        fallback_dataset: str,
        enable_live_apis: bool = True,
        timeout: float = 10.0,
        user_agent: Optional[str] = None,
        arrival_depth_mode: str = "resolved",
        orbit_sample_points: int = 180,
    ) -> None:
        self.enable_live_apis = enable_live_apis
        if arrival_depth_mode not in ARRIVAL_DEPTH_MODES:
            raise ValueError(
                f"Unknown tsunami arrival depth mode '{arrival_depth_mode}'; expected one of {', '.join(ARRIVAL_DEPTH_MODES)}."
            )
        self.arrival_depth_mode = arrival_depth_mode
        self.orbit_sample_points = orbit_sample_points
        self.fallback_catalog = FallbackCatalog(fallback_dataset)
        self.nasa_client = (
            NASAClient(nasa_api_key, aliases=self.fallback_catalog.aliases, timeout=timeout)
            if enable_live_apis
            else None
        )
        self.geo_client = GeoClient(timeout=timeout, user_agent=user_agent) if enable_live_apis else None

    # ------------------------------------------------------------------
    # Location look-ups
    # ------------------------------------------------------------------
    def get_population(self, lat: float, lng: float) -> Dict[str, Any]:
        if self.geo_client is None:
            return fallback_population("Live location services disabled")
        return self.geo_client.resolve_population(lat, lng)

    def get_geology(self, lat: float, lng: float) -> Dict[str, Any]:
        if self.geo_client is None:
            return fallback_geology(lat, lng, "Live location services disabled")
        return self.geo_client.resolve_geology(lat, lng)

    def geocode(self, query: str) -> List[Dict[str, Any]]:
        if self.geo_client is None:
            raise GeoServiceError("Live location services disabled")
        return self.geo_client.geocode(query)

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------
    def simulate(self, request: SimulationRequest) -> Dict[str, Any]:
        """Resolve population and geology concurrently, then run the core pipeline."""

        lat, lng = request.location.lat, request.location.lng
        with ThreadPoolExecutor(max_workers=2) as executor:
            population_future = executor.submit(self.get_population, lat, lng)
            geology_future = executor.submit(self.get_geology, lat, lng)
            population = population_future.result()
            geology = geology_future.result()
        return run_simulation(request, population, geology, arrival_depth_mode=self.arrival_depth_mode)

    # ------------------------------------------------------------------
    # Asteroid catalog
    # ------------------------------------------------------------------
    def offline_asteroids(self) -> Dict[str, Any]:
        return self.fallback_catalog.offline_payload()

    def search_asteroids(self, filters: AsteroidFilters, *, page: int = 0, size: int = 25) -> Dict[str, Any]:
        """NASA browse (or feed, when a date window is set) with preset fallback."""

        if self.nasa_client is None:
            return self.fallback_catalog.search_payload(filters, error="Live NASA API access disabled")

        try:
            if filters.start_date is not None:
                result = self.nasa_client.feed(
                    start_date=filters.start_date,
                    end_date=filters.end_date,
                    page=page,
                    size=size,
                )
            else:
                result = self.nasa_client.browse(page=page, size=size)
        except (NASAAPIError, MalformedUpstreamError) as exc:
            logger.warning("NASA asteroid catalog unavailable, using fallback dataset: %s", exc)
            return self.fallback_catalog.search_payload(filters, error=str(exc))

        matches = filter_asteroid_records(result.records, filters)
        return {
            "asteroids": [record.to_dict() for record in matches],
            "page": result.page,
            "page_size": result.size,
            "total_pages": result.total_pages,
            "total_items": result.total_items,
            "has_more": result.has_more,
            "summary": result.summary,
            "source": "nasa",
            "filters": filters.to_dict(),
        }

    # ------------------------------------------------------------------
    # Orbits
    # ------------------------------------------------------------------
    def get_orbit(self, asteroid_id: str, *, on_date: Optional[date] = None) -> Dict[str, Any]:
        elements, metadata = self._resolve_orbit(asteroid_id)
        jd = julian_date() if on_date is None else _julian_date_for(on_date)
        state = propagate_true_anomaly(elements, jd)
        path = sample_orbit_path(elements, self.orbit_sample_points)
        position = orbital_position_from_true_anomaly(elements, state.true_anomaly)
        metadata = {**metadata, "approximate_moid_km": approximate_moid_km(path)}
        return {
            "orbit": elements.to_dict(),
            "object": metadata,
            "state": state.to_dict(),
            "position": position,
            "path": path,
            "julian_date": jd,
        }

    def _resolve_orbit(self, asteroid_id: str) -> Tuple[OrbitalElements, Dict[str, Any]]:
        if self.nasa_client is not None:
            try:
                return self.nasa_client.fetch_orbit(asteroid_id)
            except (NASAAPIError, MalformedUpstreamError) as exc:
                logger.warning("NASA orbit lookup failed for %s: %s", asteroid_id, exc)
        preset = self.fallback_catalog.orbit(asteroid_id)
        if preset is None:
            raise OrbitNotFound(f"No orbital elements available for '{asteroid_id}'")
        return preset

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------
    def get_health_snapshot(self) -> Dict[str, object]:
        """Summarise the health of live integrations and fallbacks."""

        services: Dict[str, Dict[str, object]] = {}

        if self.nasa_client is None:
            services["nasa_neo_api"] = {
                "status": "disabled",
                "detail": "Live NASA API access disabled; using offline presets.",
            }
        else:
            try:
                self.nasa_client.browse(page=0, size=1)
                services["nasa_neo_api"] = {"status": "ok"}
            except (NASAAPIError, MalformedUpstreamError) as exc:
                services["nasa_neo_api"] = {"status": "degraded", "detail": str(exc)}

        if self.geo_client is None:
            services["location_services"] = {
                "status": "disabled",
                "detail": "Live location services disabled; using heuristic defaults.",
            }
        else:
            geology = self.geo_client.resolve_geology(0.0, 0.0)
            if geology.get("fallback"):
                services["location_services"] = {
                    "status": "degraded",
                    "detail": geology.get("fallback_reason"),
                }
            else:
                services["location_services"] = {"status": "ok"}

        preset_count = len(self.fallback_catalog.records)
        services["offline_presets"] = {
            "status": "ok" if preset_count else "error",
            "detail": f"{preset_count} offline asteroid presets available.",
        }

        return {
            "status": _aggregate_overall_status(services.values()),
            "services": services,
        }


def _julian_date_for(day: date) -> float:
    return julian_date(datetime(day.year, day.month, day.day, tzinfo=timezone.utc))


def _aggregate_overall_status(service_snapshots: Iterable[Dict[str, object]]) -> str:
    seen_statuses = {snapshot.get("status", "unknown") for snapshot in service_snapshots}
    if "error" in seen_statuses:
        return "error"
    if "degraded" in seen_statuses:
        return "degraded"
    if "ok" in seen_statuses and seen_statuses.issubset({"ok", "disabled", "unknown"}):
        return "ok"
    if seen_statuses.issubset({"disabled", "unknown"}):
        return "degraded"
    return "unknown"
