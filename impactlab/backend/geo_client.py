"""Population, geology, ocean and geocoding look-ups for impact sites."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import logging
import math

import requests

from .units import to_finite


logger = logging.getLogger(__name__)

BIGDATACLOUD_REVERSE_ENDPOINT = "https://api.bigdatacloud.net/data/reverse-geocode-client"
OPEN_METEO_GEOCODING_ENDPOINT = "https://geocoding-api.open-meteo.com/v1/search"
OPEN_METEO_ELEVATION_ENDPOINT = "https://api.open-meteo.com/v1/elevation"
OPEN_METEO_LANDCOVER_ENDPOINT = "https://api.open-meteo.com/v1/landcover"
OPEN_METEO_MARINE_ENDPOINT = "https://marine-api.open-meteo.com/v1/marine"
OPENTOPODATA_GEBCO_ENDPOINT = "https://api.opentopodata.org/v1/gebco2020"
MAPS_CO_SEARCH_ENDPOINT = "https://geocode.maps.co/search"

DEFAULT_TIMEOUT = 10
REVERSE_GEOCODE_TIMEOUT = 6
EARTH_RADIUS_KM = 6371.0
DEFAULT_AREA_KM2 = 2500.0
DEFAULT_DENSITY = 50.0
FALLBACK_POPULATION = {"total": 0, "density": 10.0, "radius_km": 30.0}


class GeoServiceError(RuntimeError):
    """Raised when a location service cannot be reached."""


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = math.sin(d_lat / 2) ** 2 + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def coordinate_label(lat: float, lng: float) -> str:
    lat_hemisphere = "N" if lat >= 0 else "S"
    lng_hemisphere = "E" if lng >= 0 else "W"
    return f"{abs(lat):.2f}°{lat_hemisphere}, {abs(lng):.2f}°{lng_hemisphere}"


def infer_surface_type(reverse: Mapping[str, Any], elevation: Optional[float], landcover: Optional[str]) -> str:
    """Human-readable surface description from reverse-geocode hints."""

    if reverse.get("isOcean"):
        return f"Open ocean ({reverse['ocean']})" if reverse.get("ocean") else "Open ocean"
    if reverse.get("isLake"):
        return f"Lacustrine environment ({reverse['lake']})" if reverse.get("lake") else "Lacustrine environment"

    descriptors = [
        str(item.get("description") or item.get("name") or "").lower()
        for item in _locality_items(reverse)
    ]
    for keyword, label in (
        ("desert", "Arid desert terrain"),
        ("forest", "Forested terrain"),
        ("tundra", "Polar tundra"),
        ("mountain", "Mountainous terrain"),
        ("urban", "Urbanized landscape"),
    ):
        if any(keyword in text for text in descriptors):
            return label
    if landcover:
        return landcover
    if elevation is not None and elevation < -5:
        return "Below sea level basin"
    if elevation is not None and elevation > 3600:
        return "High alpine environment"
    return "Continental landmass"


def _locality_items(reverse: Mapping[str, Any], kind: Optional[str] = None) -> List[Mapping[str, Any]]:
    info = reverse.get("localityInfo")
    if not isinstance(info, Mapping):
        return []
    kinds = (kind,) if kind else ("natural", "informative")
    items: List[Mapping[str, Any]] = []
    for key in kinds:
        entries = info.get(key)
        if isinstance(entries, list):
            items.extend(entry for entry in entries if isinstance(entry, Mapping))
    return items


def _first_value(value: Any) -> Optional[float]:
    if isinstance(value, list):
        return to_finite(value[0]) if value else None
    return to_finite(value)


class GeoClient:
    """Wrapper around the public location services used by Impact Lab."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: Optional[str] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        if user_agent:
            self.session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------
    def resolve_population(self, lat: float, lng: float) -> Dict[str, Any]:
        """Population context for the site, with a heuristic fallback on failure."""

        try:
            reverse = self._reverse_geocode(lat, lng, timeout=self.timeout)
            city = reverse.get("city") or reverse.get("locality") or reverse.get("principalSubdivision") or reverse.get("countryName")
            area_km2 = self._bounding_box_area_km2(reverse.get("boundingbox"))

            population = None
            if city:
                search = self._get_json(OPEN_METEO_GEOCODING_ENDPOINT, {"name": city, "count": 1})
                results = search.get("results") if isinstance(search, Mapping) else None
                candidate = results[0] if isinstance(results, list) and results else {}
                population = to_finite(candidate.get("population")) if isinstance(candidate, Mapping) else None
        except (GeoServiceError, ValueError) as exc:
            logger.warning("Population lookup failed for (%.3f, %.3f): %s", lat, lng, exc)
            return {
                "population": dict(FALLBACK_POPULATION),
                "source": "Heuristic fallback",
                "error": str(exc),
            }

        estimated_area = area_km2 if area_km2 and area_km2 > 1 else DEFAULT_AREA_KM2
        radius_km = math.sqrt(estimated_area / math.pi)
        density = population / estimated_area if population else DEFAULT_DENSITY
        return {
            "population": {"total": population or 0, "density": density, "radius_km": radius_km},
            "source": f"Open-Meteo and BigDataCloud ({city})" if population else "BigDataCloud approximation",
            "meta": {
                "city": city,
                "country": reverse.get("countryName"),
                "subdivision": reverse.get("principalSubdivision"),
            },
        }

    # ------------------------------------------------------------------
    # Geology
    # ------------------------------------------------------------------
    def resolve_geology(self, lat: float, lng: float) -> Dict[str, Any]:
        """Surface description, elevation, landcover and ocean context.

        Each sub-lookup degrades independently; a failed reverse geocode leaves
        a coordinate label and a ``fallback`` flag with the reason.
        """

        fallback_reason = None
        try:
            reverse = self._reverse_geocode(lat, lng, timeout=REVERSE_GEOCODE_TIMEOUT)
        except (GeoServiceError, ValueError) as exc:
            logger.debug("Reverse geocode failed for (%.3f, %.3f): %s", lat, lng, exc)
            reverse = {}
            fallback_reason = str(exc) or "Geocoding service unavailable"

        elevation = self._fetch_elevation(lat, lng)
        landcover = self._fetch_landcover(lat, lng)
        ocean = self.resolve_ocean_context(lat, lng)

        labels = [reverse.get(key) for key in ("city", "locality", "principalSubdivision", "countryName")]
        label = next((value for value in labels if value), None) or coordinate_label(lat, lng)
        natural = _locality_items(reverse, "natural")
        informative = _locality_items(reverse, "informative")
        highlights = [item.get("description") or item.get("name") for item in informative[:3]]
        highlights = [text for text in highlights if text]
        if not highlights and natural:
            first = natural[0].get("description") or natural[0].get("name")
            if first:
                highlights.append(first)

        if reverse.get("isOcean"):
            water_body = reverse.get("ocean") or "Open ocean"
        elif reverse.get("isLake"):
            water_body = reverse.get("lake") or "Lake"
        else:
            water_body = None

        geology: Dict[str, Any] = {
            "label": label,
            "country": reverse.get("countryName") or "Unknown location",
            "region": reverse.get("principalSubdivision"),
            "continent": reverse.get("continent"),
            "elevation_meters": elevation,
            "surface_type": infer_surface_type(reverse, elevation, landcover),
            "landcover": landcover,
            "natural_feature": natural[0].get("name") if natural else None,
            "water_body": water_body,
            "timezone": reverse.get("timezone") if isinstance(reverse.get("timezone"), str) else None,
            "highlights": highlights,
            "ocean": ocean,
            "fallback": fallback_reason is not None,
        }
        if fallback_reason is not None:
            geology["fallback_reason"] = fallback_reason
        return geology

    def resolve_ocean_context(self, lat: float, lng: float) -> Dict[str, Any]:
        context: Dict[str, Any] = {
            "depth_meters": None,
            "elevation_meters": None,
            "wave_height_meters": None,
            "wave_period_seconds": None,
            "surface_temperature_c": None,
        }
        sources: List[str] = []

        try:
            bathymetry = self._get_json(OPENTOPODATA_GEBCO_ENDPOINT, {"locations": f"{lat},{lng}"})
            results = bathymetry.get("results") if isinstance(bathymetry, Mapping) else None
            first = results[0] if isinstance(results, list) and results and isinstance(results[0], Mapping) else {}
            elevation = to_finite(first.get("elevation"))
            if elevation is not None:
                context["elevation_meters"] = elevation
                context["depth_meters"] = abs(elevation) if elevation < 0 else 0.0
                sources.append("GEBCO 2020 via OpenTopoData")
        except (GeoServiceError, ValueError) as exc:
            logger.debug("Bathymetry lookup failed: %s", exc)

        try:
            marine = self._get_json(
                OPEN_METEO_MARINE_ENDPOINT,
                {
                    "latitude": lat,
                    "longitude": lng,
                    "hourly": "wave_height,sea_surface_temperature,wave_period",
                    "length": 1,
                    "timezone": "UTC",
                },
            )
            hourly = marine.get("hourly") if isinstance(marine, Mapping) else None
            if isinstance(hourly, Mapping):
                context["wave_height_meters"] = _first_value(hourly.get("wave_height"))
                context["wave_period_seconds"] = _first_value(hourly.get("wave_period"))
                context["surface_temperature_c"] = _first_value(hourly.get("sea_surface_temperature"))
                sources.append("Open-Meteo Marine")
        except (GeoServiceError, ValueError) as exc:
            logger.debug("Marine lookup failed: %s", exc)

        context["source"] = "; ".join(sources) if sources else None
        return context

    # ------------------------------------------------------------------
    # Forward geocoding
    # ------------------------------------------------------------------
    def geocode(self, query: str) -> List[Dict[str, Any]]:
        results = self._get_json(MAPS_CO_SEARCH_ENDPOINT, {"q": query})
        mapped: List[Dict[str, Any]] = []
        for item in (results if isinstance(results, list) else [])[:10]:
            if not isinstance(item, Mapping):
                continue
            lat = to_finite(item.get("lat"))
            lng = to_finite(item.get("lon"))
            if lat is None or lng is None:
                continue
            mapped.append({"label": item.get("display_name"), "lat": lat, "lng": lng})
        return mapped

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _reverse_geocode(self, lat: float, lng: float, *, timeout: float) -> Dict[str, Any]:
        payload = self._get_json(
            BIGDATACLOUD_REVERSE_ENDPOINT,
            {"latitude": lat, "longitude": lng, "localityLanguage": "en"},
            timeout=timeout,
        )
        if not isinstance(payload, dict):
            raise ValueError("reverse geocode response must be an object")
        return payload

    def _fetch_elevation(self, lat: float, lng: float) -> Optional[float]:
        try:
            data = self._get_json(OPEN_METEO_ELEVATION_ENDPOINT, {"latitude": lat, "longitude": lng})
        except (GeoServiceError, ValueError) as exc:
            logger.debug("Elevation lookup failed: %s", exc)
            return None
        return _first_value(data.get("elevation")) if isinstance(data, Mapping) else None

    def _fetch_landcover(self, lat: float, lng: float) -> Optional[str]:
        try:
            data = self._get_json(OPEN_METEO_LANDCOVER_ENDPOINT, {"latitude": lat, "longitude": lng})
        except (GeoServiceError, ValueError) as exc:
            logger.debug("Landcover lookup failed: %s", exc)
            return None
        entries = data.get("landcover") if isinstance(data, Mapping) else None
        candidates = [entry for entry in (entries or []) if isinstance(entry, Mapping)]
        if not candidates:
            return None
        dominant = max(candidates, key=_landcover_fraction)
        return dominant.get("label") or dominant.get("class_name") or dominant.get("name")

    @staticmethod
    def _bounding_box_area_km2(bounds: Any) -> Optional[float]:
        if not isinstance(bounds, list) or len(bounds) != 4:
            return None
        values = [to_finite(value) for value in bounds]
        if any(value is None for value in values):
            return None
        south, north, west, east = values
        height = haversine_km(south, west, north, west)
        width = haversine_km(south, west, south, east)
        return height * width

    def _get_json(self, url: str, params: Dict[str, Any], *, timeout: Optional[float] = None) -> Any:
        try:
            response = self.session.get(url, params=params, timeout=timeout or self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise GeoServiceError(str(exc)) from exc


def _landcover_fraction(entry: Mapping[str, Any]) -> float:
    for key in ("fraction", "share", "value"):
        value = to_finite(entry.get(key))
        if value is not None:
            return value
    return 0.0

