"""Backend package for Impact Lab.

Exposes the impact-effects engine and the data services around it.
"""
from __future__ import annotations

from .asteroids import AliasLookup, AsteroidFilters, AsteroidRecord
from .data_mock import FallbackCatalog
from .data_service import ImpactDataService, OrbitNotFound
from .errors import InvalidSimulationInput, MalformedUpstreamError
from .geo_client import GeoClient, GeoServiceError
from .nasa_client import NASAAPIError, NASAClient
from .physics_engine import ImpactParameters, ImpactResult, compute_impact
from .reporting import build_simulation_briefing, build_summary
from .simulation import SimulationRequest, run_simulation

__all__ = [
    "AliasLookup",
    "AsteroidFilters",
    "AsteroidRecord",
    "FallbackCatalog",
    "ImpactDataService",
    "OrbitNotFound",
    "InvalidSimulationInput",
    "MalformedUpstreamError",
    "GeoClient",
    "GeoServiceError",
    "NASAAPIError",
    "NASAClient",
    "ImpactParameters",
    "ImpactResult",
    "compute_impact",
    "build_simulation_briefing",
    "build_summary",
    "SimulationRequest",
    "run_simulation",
]
