"""Normalisation of NASA NEO entries and offline presets into asteroid records."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

import re
import uuid

from .errors import MalformedUpstreamError
from .terrain import (
    COMPOSITIONS,
    composition_density,
    composition_label,
    preset_composition_from_density,
)
from .units import clamp, to_finite

DEFAULT_IMPACT_ANGLE_DEG = 45.0
DEFAULT_PRESET_VELOCITY_KMS = 22.0
MAX_FEED_SPAN_DAYS = 7
UNNAMED_OBJECT = "Unnamed near-Earth object"

_COMET_PREFIX = re.compile(r"^(c|p)/")
# NeoWs orbit_class_type codes for Apollo and Aten orbits.
_EARTH_CROSSING_CODES = frozenset({"apo", "ate"})
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LEADING_GROUP = re.compile(r"^\([^)]*\)\s*(.*)$")
_TRAILING_GROUP = re.compile(r"\s*\([^)]*\)\s*$")


@dataclass(frozen=True)
class AsteroidRecord:
    """Normalised asteroid descriptor used to pre-fill simulation inputs."""

    id: str
    name: str
    official_name: Optional[str]
    alias: Optional[str]
    designation: Optional[str]
    diameter: Optional[float]
    diameter_min: Optional[float]
    diameter_max: Optional[float]
    velocity: Optional[float]
    impact_angle: float
    density: float
    absolute_magnitude: Optional[float]
    composition: str
    composition_label: str
    hazardous: bool
    approach_date: Optional[str]
    approach_date_iso: Optional[str]
    approach_body: Optional[str]
    approach_relative_velocity: Optional[float]
    approach_miss_distance_km: Optional[float]
    approach_miss_distance_lunar: Optional[float]
    orbit_class: Optional[str]
    nasa_jpl_url: Optional[str]
    source: str

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class AliasLookup:
    """Read-only map from official names and designations to friendly names."""

    def __init__(self, aliases: Optional[Mapping[str, str]] = None) -> None:
        self._aliases = MappingProxyType({_alias_key(k): v for k, v in (aliases or {}).items() if k and v})

    @classmethod
    def from_presets(cls, presets: Iterable[Mapping[str, object]]) -> "AliasLookup":
        aliases: Dict[str, str] = {}
        for preset in presets:
            name = str(preset.get("name") or "").strip()
            friendly = derive_friendly_alias(name) or name
            if not friendly:
                continue
            for key in (preset.get("name"), preset.get("designation")):
                if key:
                    aliases[str(key)] = friendly
        return cls(aliases)

    def lookup(self, *keys: Optional[str]) -> Optional[str]:
        for key in keys:
            if key:
                alias = self._aliases.get(_alias_key(key))
                if alias:
                    return alias
        return None

    def __len__(self) -> int:
        return len(self._aliases)


EMPTY_ALIASES = AliasLookup()


def _alias_key(value: str) -> str:
    return re.sub(r"[()]", "", str(value)).strip().lower()


# -----------------------------------------------------------------------------
# Names and composition
# -----------------------------------------------------------------------------
def derive_friendly_alias(raw_name: Optional[str]) -> Optional[str]:
    """Strip the leading designation token: "(2023 XA) Apophis" -> "Apophis"."""

    if not raw_name:
        return None
    text = str(raw_name).strip()
    leading = _LEADING_GROUP.match(text)
    if leading:
        candidate = leading.group(1)
    else:
        parts = text.split(None, 1)
        if len(parts) <= 1:
            return None
        candidate = parts[1]
    # "99942 Apophis (2004 MN4)" carries its provisional designation at the end.
    candidate = _TRAILING_GROUP.sub("", candidate)
    candidate = re.sub(r"[()]", "", candidate).strip()
    if not candidate or candidate[0].isdigit():
        return None
    if not re.search(r"[a-zA-Z]", candidate):
        return None
    return candidate


def resolve_asteroid_names(
    raw_name: Optional[str],
    designation: Optional[str],
    aliases: AliasLookup = EMPTY_ALIASES,
) -> Tuple[str, Optional[str], Optional[str]]:
    """Return ``(display_name, official_name, alias)``."""

    name = str(raw_name or "").strip()
    designation = str(designation or "").strip()
    alias = aliases.lookup(name, designation) or derive_friendly_alias(name)
    official_name = name or designation or None
    display_name = alias or official_name or UNNAMED_OBJECT
    return display_name, official_name, alias


def estimate_composition(
    name: Optional[str] = None,
    absolute_magnitude: Optional[float] = None,
    orbit_class: Optional[str] = None,
    diameter_m: Optional[float] = None,
) -> str:
    """Heuristic composition class from name, brightness, orbit and size."""

    lowered = str(name or "").lower()
    if _COMET_PREFIX.match(lowered) or "comet" in lowered:
        return "cometary"

    orbit = str(orbit_class or "").strip().lower()
    earth_crossing = orbit in _EARTH_CROSSING_CODES or "aten" in orbit or "apollo" in orbit
    if earth_crossing and absolute_magnitude is not None and absolute_magnitude <= 17.5:
        return "iron"

    if absolute_magnitude is not None and absolute_magnitude >= 22.2:
        return "carbonaceous"

    if diameter_m is not None:
        if diameter_m >= 1000 and (absolute_magnitude is None or absolute_magnitude <= 19.5):
            return "iron"
        if diameter_m <= 150 and (absolute_magnitude is None or absolute_magnitude >= 21):
            return "carbonaceous"

    return "stony"


# -----------------------------------------------------------------------------
# NASA boundary parsing
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class NeoEntry:
    """Validated subset of a NeoWs near-Earth object."""

    id: Optional[str]
    name: Optional[str]
    designation: Optional[str]
    absolute_magnitude: Optional[float]
    diameter_min: Optional[float]
    diameter_max: Optional[float]
    hazardous: bool
    orbit_class: Optional[str]
    nasa_jpl_url: Optional[str]
    close_approaches: Tuple[Mapping[str, object], ...] = field(default_factory=tuple)


def _optional_mapping(parent: Mapping[str, object], key: str, context: str) -> Mapping[str, object]:
    value = parent.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise MalformedUpstreamError(f"{context}.{key} must be an object")
    return value


def _optional_text(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_neo_entry(raw: object) -> NeoEntry:
    """Validate a NeoWs entry, raising ``MalformedUpstreamError`` on bad shapes."""

    if not isinstance(raw, Mapping):
        raise MalformedUpstreamError("near-Earth object entry must be an object")

    diameter = _optional_mapping(_optional_mapping(raw, "estimated_diameter", "neo"), "meters", "estimated_diameter")
    orbital_data = _optional_mapping(raw, "orbital_data", "neo")
    orbit_class = _optional_mapping(orbital_data, "orbit_class", "orbital_data")

    approaches = raw.get("close_approach_data")
    if approaches is None:
        approaches = []
    if not isinstance(approaches, list):
        raise MalformedUpstreamError("close_approach_data must be a list")
    if any(not isinstance(entry, Mapping) for entry in approaches):
        raise MalformedUpstreamError("close_approach_data entries must be objects")

    return NeoEntry(
        id=_optional_text(raw.get("id")) or _optional_text(raw.get("neo_reference_id")),
        name=_optional_text(raw.get("name")),
        designation=_optional_text(raw.get("designation")) or _optional_text(raw.get("neo_reference_id")),
        absolute_magnitude=to_finite(raw.get("absolute_magnitude_h")),
        diameter_min=to_finite(diameter.get("estimated_diameter_min")),
        diameter_max=to_finite(diameter.get("estimated_diameter_max")),
        hazardous=bool(raw.get("is_potentially_hazardous_asteroid", False)),
        orbit_class=_optional_text(orbit_class.get("orbit_class_type")),
        nasa_jpl_url=_optional_text(raw.get("nasa_jpl_url")),
        close_approaches=tuple(approaches),
    )


def _first_approach_with_velocity(approaches: Sequence[Mapping[str, object]]) -> Mapping[str, object]:
    for approach in approaches:
        velocity = approach.get("relative_velocity")
        if isinstance(velocity, Mapping) and to_finite(velocity.get("kilometers_per_second")) is not None:
            return approach
    return {}


def _nested_number(parent: Mapping[str, object], key: str, field_name: str) -> Optional[float]:
    block = parent.get(key)
    if not isinstance(block, Mapping):
        return None
    return to_finite(block.get(field_name))


def _generated_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def build_asteroid_record(raw: object, aliases: AliasLookup = EMPTY_ALIASES) -> AsteroidRecord:
    """Normalise a NeoWs browse/feed entry."""

    neo = parse_neo_entry(raw)
    display_name, official_name, alias = resolve_asteroid_names(neo.name, neo.designation, aliases)

    if neo.diameter_min is not None and neo.diameter_max is not None:
        avg_diameter: Optional[float] = (neo.diameter_min + neo.diameter_max) / 2.0
    else:
        avg_diameter = neo.diameter_min if neo.diameter_min is not None else neo.diameter_max

    approach = _first_approach_with_velocity(neo.close_approaches)
    approach_velocity = _nested_number(approach, "relative_velocity", "kilometers_per_second")
    approach_date_iso = _optional_text(approach.get("close_approach_date"))
    approach_date_full = _optional_text(approach.get("close_approach_date_full"))

    composition = estimate_composition(neo.name, neo.absolute_magnitude, neo.orbit_class, avg_diameter)

    return AsteroidRecord(
        id=neo.id or neo.designation or neo.name or _generated_id("neo"),
        name=display_name,
        official_name=official_name,
        alias=alias,
        designation=neo.designation,
        diameter=clamp(avg_diameter, 5.0, 100_000.0) if avg_diameter is not None else None,
        diameter_min=neo.diameter_min,
        diameter_max=neo.diameter_max,
        velocity=clamp(approach_velocity, 1.0, 150.0) if approach_velocity is not None else None,
        impact_angle=DEFAULT_IMPACT_ANGLE_DEG,
        density=composition_density(composition),
        absolute_magnitude=neo.absolute_magnitude,
        composition=composition,
        composition_label=composition_label(composition),
        hazardous=neo.hazardous,
        approach_date=approach_date_full or approach_date_iso,
        approach_date_iso=approach_date_iso,
        approach_body=_optional_text(approach.get("orbiting_body")),
        approach_relative_velocity=approach_velocity,
        approach_miss_distance_km=_nested_number(approach, "miss_distance", "kilometers"),
        approach_miss_distance_lunar=_nested_number(approach, "miss_distance", "lunar"),
        orbit_class=neo.orbit_class,
        nasa_jpl_url=neo.nasa_jpl_url,
        source="nasa",
    )


def build_fallback_asteroid_record(raw: object, aliases: AliasLookup = EMPTY_ALIASES) -> AsteroidRecord:
    """Normalise an offline preset, which carries physical values directly."""

    if not isinstance(raw, Mapping):
        raise MalformedUpstreamError("asteroid preset must be an object")

    name = _optional_text(raw.get("name"))
    designation = _optional_text(raw.get("designation"))
    alias = aliases.lookup(name, designation) or derive_friendly_alias(name)
    display_name = alias or name or "Unknown object"

    diameter = clamp(to_finite(raw.get("diameter")) or 0.0, 5.0, 100_000.0)
    density = clamp(to_finite(raw.get("density")) or composition_density("unknown"), 500.0, 11_000.0)
    velocity = clamp(to_finite(raw.get("velocity")) or DEFAULT_PRESET_VELOCITY_KMS, 1.0, 150.0)
    impact_angle = clamp(to_finite(raw.get("impactAngle")) or DEFAULT_IMPACT_ANGLE_DEG, 5.0, 90.0)
    composition = preset_composition_from_density(density)
    is_comet = raw.get("source") == "comet"

    return AsteroidRecord(
        id=designation or name or _generated_id("fallback"),
        name=display_name,
        official_name=name or display_name,
        alias=alias,
        designation=designation,
        diameter=diameter,
        diameter_min=diameter,
        diameter_max=diameter,
        velocity=velocity,
        impact_angle=impact_angle,
        density=density,
        absolute_magnitude=to_finite(raw.get("absoluteMagnitude")),
        composition=composition,
        composition_label=composition_label(composition),
        hazardous=not is_comet,
        approach_date=None,
        approach_date_iso=None,
        approach_body=None,
        approach_relative_velocity=velocity,
        approach_miss_distance_km=None,
        approach_miss_distance_lunar=None,
        orbit_class="Comet" if is_comet else "Near-Earth Object",
        nasa_jpl_url=None,
        source="fallback",
    )


# -----------------------------------------------------------------------------
# Search filters
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class AsteroidFilters:
    query: str = ""
    min_diameter: Optional[float] = None
    max_diameter: Optional[float] = None
    compositions: FrozenSet[str] = frozenset()
    hazardous_only: bool = False
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "query": self.query,
            "min_diameter": self.min_diameter,
            "max_diameter": self.max_diameter,
            "compositions": sorted(self.compositions),
            "hazardous_only": self.hazardous_only,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


def parse_composition_filters(values: Iterable[str]) -> FrozenSet[str]:
    selected = set()
    for value in values:
        for item in str(value).split(","):
            item = item.strip().lower()
            if item in COMPOSITIONS:
                selected.add(item)
    return frozenset(selected)


def parse_date_param(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    text = str(value).strip()
    if not _ISO_DATE.match(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def resolve_date_range(start: Optional[str], end: Optional[str]) -> Tuple[Optional[date], Optional[date]]:
    """Normalise a feed date window: one bound mirrors the other, span <= 7 days."""

    parsed_start = parse_date_param(start)
    parsed_end = parse_date_param(end)
    if parsed_start is None and parsed_end is None:
        return None, None

    start_date = parsed_start or parsed_end
    end_date = parsed_end or start_date
    if end_date < start_date:
        end_date = start_date
    if end_date - start_date > timedelta(days=MAX_FEED_SPAN_DAYS):
        end_date = start_date + timedelta(days=MAX_FEED_SPAN_DAYS)
    return start_date, end_date


def _record_date(record: AsteroidRecord) -> Optional[date]:
    raw = record.approach_date_iso or record.approach_date
    if not raw:
        return None
    try:
        return datetime.fromisoformat(str(raw)[:10]).date()
    except ValueError:
        return None


def filter_asteroid_records(records: Iterable[AsteroidRecord], filters: AsteroidFilters) -> List[AsteroidRecord]:
    query = filters.query.strip().lower()
    date_window = filters.start_date is not None or filters.end_date is not None
    selected: List[AsteroidRecord] = []

    for record in records:
        if filters.hazardous_only and not record.hazardous:
            continue
        if filters.compositions and record.composition not in filters.compositions:
            continue
        if filters.min_diameter is not None and record.diameter is not None and record.diameter < filters.min_diameter:
            continue
        if filters.max_diameter is not None and record.diameter is not None and record.diameter > filters.max_diameter:
            continue
        if query:
            haystack = " ".join(
                str(value).lower()
                for value in (record.name, record.official_name, record.alias, record.designation)
                if value
            )
            if query not in haystack:
                continue
        if date_window:
            approach = _record_date(record)
            if approach is None:
                continue
            if filters.start_date is not None and approach < filters.start_date:
                continue
            if filters.end_date is not None and approach > filters.end_date:
                continue
        selected.append(record)

    return selected
