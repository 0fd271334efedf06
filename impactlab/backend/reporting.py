"""Scenario narration and presentation export for Impact Lab briefings."""
from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pptx import Presentation
from pptx.util import Inches, Pt

from .casualties import PopulationContext
from .physics_engine import ImpactParameters, ImpactResult
from .terrain import composition_from_density, get_terrain
from .tsunami import TsunamiResult


# ---------------------------------------------------------------------------
# Narration
# ---------------------------------------------------------------------------

def describe_place(location: Mapping[str, Any]) -> str:
    description = location.get("description")
    if description:
        return f"near {description}"
    return f"at ({float(location['lat']):.2f}, {float(location['lng']):.2f})"


def build_summary(
    params: ImpactParameters,
    impact: ImpactResult,
    location: Mapping[str, Any],
    population: PopulationContext,
    tsunami: Optional[TsunamiResult],
) -> str:
    """One-paragraph plain-language description of the scenario."""

    terrain = get_terrain(params.terrain)
    composition = composition_from_density(params.density_kg_m3)
    energy_text = f"{impact.energy_mt:.2f} megatons of TNT"

    if population.total:
        population_text = f"The nearby population is roughly {population.total:,.0f}."
    else:
        population_text = "Population data was estimated heuristically."

    tsunami_text = ""
    if tsunami is not None:
        coastal_height = max(tsunami.coastal_wave_height / 1000.0, 0.0)
        tsunami_text = (
            f" Tsunami modelling projects coastal wave heights near {coastal_height:.1f} m"
            f" with inundation reaching about {tsunami.inundation_distance_km:.1f} km inland."
        )

    return (
        f"A {composition} asteroid {params.diameter_m:.0f} meters across strikes {terrain.label}"
        f" {describe_place(location)} at an angle of {params.angle_deg:.0f}°"
        f" and {params.velocity_kms:.0f} km/s, releasing about {energy_text}."
        f" {population_text}{tsunami_text}"
    )


# ---------------------------------------------------------------------------
# Briefing deck
# ---------------------------------------------------------------------------

TITLE_LAYOUT = 0
BULLETS_LAYOUT = 1
TITLE_ONLY_LAYOUT = 5

_MAGNITUDE_SUFFIXES = ((1e9, "B"), (1e6, "M"), (1e3, "k"))
_MISSING = "n/a"


def build_simulation_briefing(
    simulation: Dict[str, Any],
    *,
    generated_at: Optional[datetime] = None,
    author: Optional[str] = None,
) -> bytes:
    """Render a simulation payload (as returned by ``run_simulation``) to a .pptx deck."""

    generated_at = generated_at or datetime.now(timezone.utc)

    deck = Presentation()
    _add_cover(deck, simulation, generated_at, author)
    _add_bullets(deck, "Snapshot", [simulation.get("summary", "")])
    _add_metric_table(deck, "Impact Metrics", ("Metric", "Value"), _impact_rows(simulation))
    _add_metric_table(deck, "Hazard Rings", ("Ring", "Radius"), _ring_rows(simulation))
    _add_bullets(deck, "Environment", _environment_lines(simulation))

    buffer = BytesIO()
    deck.save(buffer)
    return buffer.getvalue()


def _add_cover(deck: Presentation, simulation: Dict[str, Any], generated_at: datetime, author: Optional[str]) -> None:
    slide = deck.slides.add_slide(deck.slide_layouts[TITLE_LAYOUT])
    location = simulation.get("location") or {}
    geology = simulation.get("geology") or {}
    place = location.get("description") or geology.get("label") or "Selected location"
    slide.shapes.title.text = f"Impact Briefing: {place}"

    details = [
        f"Coordinates: {_coordinates(location.get('lat'), location.get('lng'))}",
        generated_at.strftime("Generated %Y-%m-%d %H:%M UTC"),
    ]
    if author:
        details.append(f"Prepared for {author}")
    slide.placeholders[1].text = "\n".join(details)


def _add_bullets(deck: Presentation, heading: str, lines: List[str]) -> None:
    slide = deck.slides.add_slide(deck.slide_layouts[BULLETS_LAYOUT])
    slide.shapes.title.text = heading
    frame = slide.placeholders[1].text_frame
    frame.text = lines[0] if lines else ""
    for line in lines[1:]:
        frame.add_paragraph().text = line


def _add_metric_table(deck: Presentation, heading: str, header: Tuple[str, str], rows: List[Tuple[str, str]]) -> None:
    slide = deck.slides.add_slide(deck.slide_layouts[TITLE_ONLY_LAYOUT])
    slide.shapes.title.text = heading

    shape = slide.shapes.add_table(len(rows) + 1, 2, Inches(0.5), Inches(1.5), Inches(9.0), Inches(0.4) * (len(rows) + 1))
    grid = shape.table
    grid.columns[0].width = Inches(4.5)
    grid.columns[1].width = Inches(4.5)
    for row_index, cells in enumerate([header, *rows]):
        for column_index, text in enumerate(cells):
            cell = grid.cell(row_index, column_index)
            cell.text = text
            cell.text_frame.paragraphs[0].font.size = Pt(14)


def _impact_rows(simulation: Dict[str, Any]) -> List[Tuple[str, str]]:
    impact = simulation.get("impact") or {}
    infrastructure = simulation.get("infrastructure") or {}
    casualties = simulation.get("casualties") or {}
    fatalities = sum((hazard or {}).get("fatalities", 0) for hazard in casualties.values())
    return [
        ("Impact energy", _quantity(impact.get("energy_mt"), "Mt TNT")),
        ("Crater diameter", _quantity(impact.get("crater_diameter"), "m")),
        ("Crater depth", _quantity(impact.get("crater_depth"), "m")),
        ("Seismic magnitude", _quantity(impact.get("richter_magnitude"))),
        ("Peak wind", _quantity(impact.get("peak_wind"), "m/s")),
        ("Estimated fatalities", _quantity(fatalities, digits=1)),
        ("Economic loss", _quantity(infrastructure.get("economic_loss"), "USD")),
        ("Tsunami", "Yes" if simulation.get("tsunami") else "No"),
    ]


def _ring_rows(simulation: Dict[str, Any]) -> List[Tuple[str, str]]:
    rows = []
    for footprint in simulation.get("footprints") or []:
        radius = footprint.get("radius_meters") or 0
        if radius > 0:
            rows.append((footprint.get("title") or footprint.get("type", ""), _quantity(radius, "m")))
    return rows


def _environment_lines(simulation: Dict[str, Any]) -> List[str]:
    geology = simulation.get("geology") or {}
    density = ((simulation.get("population") or {}).get("population") or {}).get("density")
    tsunami = simulation.get("tsunami") or {}

    lines = [
        f"Surface: {geology.get('surface_type') or 'Unknown'}",
        f"Elevation: {_quantity(geology.get('elevation_meters'), 'm')}",
        f"Population density: {_quantity(density, 'people/km²')}",
        f"Coastal wave height: {_quantity(tsunami.get('coastal_wave_height'), 'm')}",
        f"Tsunami arrival: {_quantity(tsunami.get('arrival_time_minutes'), 'min')}",
    ]
    if geology.get("fallback"):
        lines.append(f"Location lookup degraded: {geology.get('fallback_reason') or 'service unavailable'}")
    return lines


def _quantity(value: Any, units: Optional[str] = None, digits: int = 2) -> str:
    """Compact rendering, e.g. 12500 -> "12.50k"."""

    if value is None:
        return _MISSING
    try:
        number = float(value)
    except (TypeError, ValueError):
        return _MISSING

    text = f"{number:.{digits}f}"
    for threshold, suffix in _MAGNITUDE_SUFFIXES:
        if abs(number) >= threshold:
            text = f"{number / threshold:.{digits}f}{suffix}"
            break
    return f"{text} {units}" if units else text


def _coordinates(lat: Any, lng: Any) -> str:
    try:
        return f"{float(lat):.2f}°, {float(lng):.2f}°"
    except (TypeError, ValueError):
        return _MISSING
