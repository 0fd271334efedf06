"""NASA Near-Earth Object API integration helpers."""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

import logging

import requests

from .asteroids import EMPTY_ALIASES, AliasLookup, AsteroidRecord, build_asteroid_record
from .errors import MalformedUpstreamError
from .orbit import OrbitalElements
from .units import clamp, to_finite


logger = logging.getLogger(__name__)

NASA_API_ROOT = "https://api.nasa.gov/neo/rest/v1"
DEFAULT_TIMEOUT = 12
MAX_BROWSE_PAGE = 2000
NEO_CACHE_SIZE = 256


class NASAAPIError(RuntimeError):
    """Raised when the NASA NEO API request fails."""


@dataclass(frozen=True)
class CatalogPage:
    """One page of normalised asteroid records."""

    records: List[AsteroidRecord]
    page: int
    size: int
    total_pages: int
    total_items: int
    summary: str

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages - 1


class NASAClient:
    """Lightweight NASA NEO API wrapper with caching."""

    def __init__(
        self,
        api_key: str,
        session: Optional[requests.Session] = None,
        *,
        aliases: AliasLookup = EMPTY_ALIASES,
        timeout: float = DEFAULT_TIMEOUT,
        cache_size: int = NEO_CACHE_SIZE,
    ) -> None:
        self.api_key = api_key or "DEMO_KEY"
        self.session = session or requests.Session()
        self.aliases = aliases
        self.timeout = timeout
        self.cache_size = max(int(cache_size), 1)
        self._neo_cache: OrderedDict[str, Dict[str, Any]] = OrderedDict()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def fetch_neo(self, asteroid_id: str) -> Dict[str, Any]:
        """Return the raw NASA payload for the requested asteroid."""

        if asteroid_id in self._neo_cache:
            self._neo_cache.move_to_end(asteroid_id)
            return self._neo_cache[asteroid_id]
        payload = self._request_json(f"/neo/{asteroid_id}")
        self._neo_cache[asteroid_id] = payload
        # Least recently used entries go first.
        while len(self._neo_cache) > self.cache_size:
            self._neo_cache.popitem(last=False)
        return payload

    def browse(self, *, page: int = 0, size: int = 25) -> CatalogPage:
        """Page through the full NEO catalog."""

        safe_page = int(clamp(page, 0, MAX_BROWSE_PAGE))
        safe_size = int(clamp(size or 25, 1, 100))
        payload = self._request_json("/neo/browse", params={"page": safe_page, "size": safe_size})

        objects = payload.get("near_earth_objects", [])
        if not isinstance(objects, list):
            raise MalformedUpstreamError("near_earth_objects must be a list")
        records = [build_asteroid_record(item, self.aliases) for item in objects]
        logger.debug("NASA browse page %s returned %d objects", safe_page, len(records))

        page_info = payload.get("page") if isinstance(payload.get("page"), Mapping) else {}
        number = _int_or(page_info.get("number"), safe_page)
        page_size = _int_or(page_info.get("size"), safe_size)
        total_pages = _int_or(page_info.get("total_pages"), 0)
        total_items = _int_or(page_info.get("total_elements"), len(records))

        summary = (
            f"Fetched {len(records):,} objects from NASA's Near-Earth Object catalog "
            f"(page {number + 1} of {total_pages or 1})."
        )
        return CatalogPage(records, number, page_size, total_pages, total_items, summary)

    def feed(self, *, start_date: date, end_date: Optional[date] = None, page: int = 0, size: int = 25) -> CatalogPage:
        """Objects approaching Earth in a date window, sorted by approach date and paged locally."""

        safe_size = int(clamp(size or 25, 1, 100))
        params: Dict[str, Any] = {"start_date": start_date.isoformat()}
        if end_date is not None:
            params["end_date"] = end_date.isoformat()
        payload = self._request_json("/feed", params=params)

        by_date = payload.get("near_earth_objects", {})
        if not isinstance(by_date, Mapping):
            raise MalformedUpstreamError("near_earth_objects must be an object keyed by date")

        records: List[Tuple[str, AsteroidRecord]] = []
        for date_key in sorted(by_date):
            items = by_date[date_key]
            if not isinstance(items, list):
                raise MalformedUpstreamError(f"near_earth_objects[{date_key}] must be a list")
            for item in items:
                record = build_asteroid_record(item, self.aliases)
                records.append((record.approach_date_iso or date_key, record))

        records.sort(key=lambda pair: pair[0])
        ordered = [_with_approach_date(record, approach) for approach, record in records]

        total_items = len(ordered)
        total_pages = max(-(-total_items // safe_size), 1)
        safe_page = int(clamp(page, 0, total_pages - 1))
        start = safe_page * safe_size
        end_label = (end_date or start_date).isoformat()
        summary = (
            f"Fetched {total_items:,} objects approaching Earth between "
            f"{start_date.isoformat()} and {end_label}."
        )
        return CatalogPage(ordered[start:start + safe_size], safe_page, safe_size, total_pages, total_items, summary)

    def fetch_orbit(self, asteroid_id: str) -> Tuple[OrbitalElements, Dict[str, Any]]:
        """Orbital elements plus display metadata for a single object."""

        payload = self.fetch_neo(asteroid_id)
        orbital_data = payload.get("orbital_data")
        elements = OrbitalElements.from_nasa(orbital_data)
        record = build_asteroid_record(payload, self.aliases)
        metadata = {
            "id": record.id,
            "name": record.name,
            "designation": record.designation,
            "orbit_class": record.orbit_class,
            "hazardous": record.hazardous,
            "moid_au": to_finite(orbital_data.get("minimum_orbit_intersection")),
            "nasa_jpl_url": record.nasa_jpl_url,
            "source": "nasa",
        }
        return elements, metadata

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _request_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{NASA_API_ROOT}{path}"
        merged_params: Dict[str, Any] = {"api_key": self.api_key}
        if params:
            merged_params.update(params)
        try:
            response = self.session.get(url, params=merged_params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise NASAAPIError(str(exc)) from exc
        except ValueError as exc:
            raise MalformedUpstreamError(f"NASA response was not JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise MalformedUpstreamError("NASA response must be a JSON object")
        return payload


def _int_or(value: Any, fallback: int) -> int:
    number = to_finite(value)
    return int(number) if number is not None else fallback


def _with_approach_date(record: AsteroidRecord, approach_date: str) -> AsteroidRecord:
    if record.approach_date_iso and record.approach_date:
        return record
    return replace(
        record,
        approach_date_iso=record.approach_date_iso or approach_date,
        approach_date=record.approach_date or approach_date,
    )
