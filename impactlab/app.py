"""Impact Lab Flask application entrypoint."""
from __future__ import annotations

from io import BytesIO
from typing import Any, Optional, Tuple

import logging

from flask import Flask, jsonify, request, send_file
from flask_cors import CORS

from .backend import (
    AsteroidFilters,
    GeoServiceError,
    ImpactDataService,
    InvalidSimulationInput,
    OrbitNotFound,
    SimulationRequest,
    build_simulation_briefing,
)
from .backend.asteroids import parse_composition_filters, resolve_date_range
from .backend.units import to_finite
from .config import get_settings

logger = logging.getLogger(__name__)

PPTX_MIMETYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

settings = get_settings()
app = Flask(__name__)
app.json.sort_keys = False
CORS(app)

data_service = ImpactDataService(
    nasa_api_key=settings.nasa_api_key,
    fallback_dataset=settings.fallback_dataset,
    enable_live_apis=settings.use_live_apis,
    timeout=settings.http_timeout_s,
    user_agent=settings.user_agent,
    arrival_depth_mode=settings.tsunami_arrival_depth_mode,
    orbit_sample_points=settings.orbit_sample_points,
)


def _coordinates_from_args() -> Optional[Tuple[float, float]]:
    lat = to_finite(request.args.get("lat", type=float))
    lng = to_finite(request.args.get("lng", type=float))
    if lat is None or lng is None:
        return None
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
        return None
    return lat, lng


def _optional_float_arg(name: str) -> Optional[float]:
    return to_finite(request.args.get(name, type=float))


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

@app.route("/api/simulate", methods=["POST"])
def simulate() -> Any:
    payload = request.get_json(silent=True)
    try:
        simulation_request = SimulationRequest.from_payload(payload)
    except InvalidSimulationInput as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(data_service.simulate(simulation_request))


@app.route("/api/briefing", methods=["POST"])
def briefing() -> Any:
    payload = request.get_json(silent=True)
    try:
        simulation_request = SimulationRequest.from_payload(payload)
    except InvalidSimulationInput as exc:
        return jsonify({"error": str(exc)}), 400

    simulation = data_service.simulate(simulation_request)
    deck = build_simulation_briefing(simulation)
    return send_file(
        BytesIO(deck),
        mimetype=PPTX_MIMETYPE,
        as_attachment=True,
        download_name="impact-briefing.pptx",
    )


# ---------------------------------------------------------------------------
# Location look-ups
# ---------------------------------------------------------------------------

@app.route("/api/population", methods=["GET"])
def population() -> Any:
    coordinates = _coordinates_from_args()
    if coordinates is None:
        return jsonify({"error": "Invalid latitude or longitude."}), 400
    return jsonify(data_service.get_population(*coordinates))


@app.route("/api/geology", methods=["GET"])
def geology() -> Any:
    coordinates = _coordinates_from_args()
    if coordinates is None:
        return jsonify({"error": "Invalid latitude or longitude."}), 400
    return jsonify(data_service.get_geology(*coordinates))


@app.route("/api/geocode", methods=["GET"])
def geocode() -> Any:
    query = (request.args.get("query") or "").strip()
    if not query:
        return jsonify({"error": "Missing query parameter."}), 400
    try:
        results = data_service.geocode(query)
    except GeoServiceError as exc:
        logger.warning("Geocoding failed for %r: %s", query, exc)
        return jsonify({"error": "Geocoding service unavailable.", "detail": str(exc)}), 502
    return jsonify({"results": results})


# ---------------------------------------------------------------------------
# Asteroid catalog
# ---------------------------------------------------------------------------

@app.route("/api/asteroids/search", methods=["GET"])
def asteroid_search() -> Any:
    page = request.args.get("page", default=0, type=int)
    size = request.args.get("size", default=25, type=int)
    start_date, end_date = resolve_date_range(request.args.get("startDate"), request.args.get("endDate"))
    hazardous = (request.args.get("hazardous") or "").strip().lower()

    filters = AsteroidFilters(
        query=(request.args.get("q") or "").strip(),
        min_diameter=_optional_float_arg("minDiameter"),
        max_diameter=_optional_float_arg("maxDiameter"),
        compositions=parse_composition_filters(request.args.getlist("composition")),
        hazardous_only=hazardous in {"1", "true", "yes"},
        start_date=start_date,
        end_date=end_date,
    )
    return jsonify(data_service.search_asteroids(filters, page=page, size=size))


@app.route("/api/asteroids/offline", methods=["GET"])
def asteroid_offline() -> Any:
    return jsonify(data_service.offline_asteroids())


@app.route("/api/orbit/<path:asteroid_id>", methods=["GET"])
def orbit(asteroid_id: str) -> Any:
    try:
        return jsonify(data_service.get_orbit(asteroid_id))
    except OrbitNotFound as exc:
        return jsonify({"error": str(exc)}), 404


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.route("/api/health", methods=["GET"])
def health() -> Any:
    return jsonify(data_service.get_health_snapshot())


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    app.run(debug=settings.debug, port=settings.port)
