import math
import unittest

import requests

from impactlab.backend import geo_client
from impactlab.backend.geo_client import (
    GeoClient,
    GeoServiceError,
    coordinate_label,
    haversine_km,
    infer_surface_type,
)


class FakeResponse:

    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        return None

    def json(self):
        return self._payload


class RoutingSession:
    """Answers each endpoint with a canned payload; unknown endpoints fail."""

    def __init__(self, routes):
        self.routes = routes
        self.headers = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append(url)
        payload = self.routes.get(url, requests.ConnectionError(f"no route for {url}"))
        if isinstance(payload, Exception):
            raise payload
        return FakeResponse(payload)


REVERSE_PARIS = {
    "city": "Paris",
    "countryName": "France",
    "principalSubdivision": "Ile-de-France",
    "continent": "Europe",
    "localityInfo": {
        "informative": [{"name": "Paris Basin", "description": "sedimentary basin"}],
        "natural": [{"name": "Seine", "description": "river"}],
    },
}


class TestHelpers(unittest.TestCase):

    def test_haversine(self):
        self.assertAlmostEqual(haversine_km(0, 0, 0, 1), 2 * math.pi * 6371.0 / 360.0, delta=0.01)
        self.assertEqual(haversine_km(10, 10, 10, 10), 0.0)

    def test_coordinate_label(self):
        self.assertEqual(coordinate_label(-33.8688, 151.2093), "33.87°S, 151.21°E")

    def test_infer_surface_type(self):
        self.assertEqual(infer_surface_type({"isOcean": True, "ocean": "Atlantic Ocean"}, None, None), "Open ocean (Atlantic Ocean)")
        self.assertEqual(infer_surface_type({"isLake": True}, None, None), "Lacustrine environment")
        desert = {"localityInfo": {"natural": [{"name": "Sahara", "description": "desert in Africa"}]}}
        self.assertEqual(infer_surface_type(desert, 300.0, None), "Arid desert terrain")
        self.assertEqual(infer_surface_type({}, 10.0, "Cropland"), "Cropland")
        self.assertEqual(infer_surface_type({}, -30.0, None), "Below sea level basin")
        self.assertEqual(infer_surface_type({}, 4000.0, None), "High alpine environment")
        self.assertEqual(infer_surface_type({}, None, None), "Continental landmass")


class TestPopulation(unittest.TestCase):

    def test_resolved_population(self):
        session = RoutingSession(
            {
                geo_client.BIGDATACLOUD_REVERSE_ENDPOINT: REVERSE_PARIS,
                geo_client.OPEN_METEO_GEOCODING_ENDPOINT: {"results": [{"name": "Paris", "population": 2_138_551}]},
            }
        )
        payload = GeoClient(session).resolve_population(48.8566, 2.3522)
        population = payload["population"]
        self.assertEqual(population["total"], 2_138_551)
        self.assertAlmostEqual(population["density"], 2_138_551 / 2500.0)
        self.assertAlmostEqual(population["radius_km"], math.sqrt(2500.0 / math.pi))
        self.assertEqual(payload["meta"]["city"], "Paris")
        self.assertIn("Paris", payload["source"])

    def test_population_without_match_uses_default_density(self):
        session = RoutingSession(
            {
                geo_client.BIGDATACLOUD_REVERSE_ENDPOINT: REVERSE_PARIS,
                geo_client.OPEN_METEO_GEOCODING_ENDPOINT: {"results": []},
            }
        )
        payload = GeoClient(session).resolve_population(48.8566, 2.3522)
        self.assertEqual(payload["population"]["total"], 0)
        self.assertEqual(payload["population"]["density"], 50.0)
        self.assertEqual(payload["source"], "BigDataCloud approximation")

    def test_population_failure_falls_back(self):
        with self.assertLogs("impactlab.backend.geo_client", level="WARNING"):
            payload = GeoClient(RoutingSession({})).resolve_population(0.0, 0.0)
        self.assertEqual(payload["population"], {"total": 0, "density": 10.0, "radius_km": 30.0})
        self.assertEqual(payload["source"], "Heuristic fallback")
        self.assertIn("error", payload)


class TestGeology(unittest.TestCase):

    def test_land_geology(self):
        session = RoutingSession(
            {
                geo_client.BIGDATACLOUD_REVERSE_ENDPOINT: REVERSE_PARIS,
                geo_client.OPEN_METEO_ELEVATION_ENDPOINT: {"elevation": [35.0]},
                geo_client.OPEN_METEO_LANDCOVER_ENDPOINT: {
                    "landcover": [{"label": "Urban", "fraction": 0.7}, {"label": "Cropland", "fraction": 0.2}]
                },
                geo_client.OPENTOPODATA_GEBCO_ENDPOINT: {"results": [{"elevation": 35.0}]},
            }
        )
        geology = GeoClient(session).resolve_geology(48.8566, 2.3522)
        self.assertEqual(geology["label"], "Paris")
        self.assertEqual(geology["country"], "France")
        self.assertEqual(geology["elevation_meters"], 35.0)
        self.assertEqual(geology["landcover"], "Urban")
        self.assertEqual(geology["natural_feature"], "Seine")
        self.assertEqual(geology["highlights"], ["sedimentary basin"])
        self.assertEqual(geology["ocean"]["depth_meters"], 0.0)
        self.assertFalse(geology["fallback"])
        self.assertNotIn("fallback_reason", geology)

    def test_ocean_geology(self):
        session = RoutingSession(
            {
                geo_client.BIGDATACLOUD_REVERSE_ENDPOINT: {"isOcean": True, "ocean": "North Atlantic Ocean"},
                geo_client.OPENTOPODATA_GEBCO_ENDPOINT: {"results": [{"elevation": -4321.0}]},
                geo_client.OPEN_METEO_MARINE_ENDPOINT: {
                    "hourly": {"wave_height": [2.1], "wave_period": [9.5], "sea_surface_temperature": [19.0]}
                },
            }
        )
        geology = GeoClient(session).resolve_geology(30.0, -40.0)
        ocean = geology["ocean"]
        self.assertEqual(geology["water_body"], "North Atlantic Ocean")
        self.assertEqual(geology["surface_type"], "Open ocean (North Atlantic Ocean)")
        self.assertEqual(ocean["depth_meters"], 4321.0)
        self.assertEqual(ocean["elevation_meters"], -4321.0)
        self.assertEqual(ocean["wave_height_meters"], 2.1)
        self.assertEqual(ocean["wave_period_seconds"], 9.5)
        self.assertEqual(ocean["surface_temperature_c"], 19.0)
        self.assertEqual(ocean["source"], "GEBCO 2020 via OpenTopoData; Open-Meteo Marine")
        self.assertIsNone(geology["elevation_meters"])

    def test_everything_down(self):
        geology = GeoClient(RoutingSession({})).resolve_geology(-12.0, 130.5)
        self.assertTrue(geology["fallback"])
        self.assertEqual(geology["label"], "12.00°S, 130.50°E")
        self.assertIn("no route", geology["fallback_reason"])
        self.assertIsNone(geology["ocean"]["depth_meters"])
        self.assertIsNone(geology["ocean"]["source"])


class TestGeocode(unittest.TestCase):

    def test_results(self):
        results = [{"display_name": f"Place {index}", "lat": "1.5", "lon": "2.5"} for index in range(12)]
        results.insert(0, {"display_name": "Broken", "lat": "x", "lon": "2"})
        session = RoutingSession({geo_client.MAPS_CO_SEARCH_ENDPOINT: results})
        mapped = GeoClient(session).geocode("Place")
        self.assertEqual(len(mapped), 9)
        self.assertEqual(mapped[0], {"label": "Place 0", "lat": 1.5, "lng": 2.5})

    def test_failure_raises(self):
        with self.assertRaises(GeoServiceError):
            GeoClient(RoutingSession({})).geocode("Atlantis")

    def test_user_agent_header(self):
        session = RoutingSession({})
        GeoClient(session, user_agent="ImpactLab/test")
        self.assertEqual(session.headers["User-Agent"], "ImpactLab/test")


if __name__ == "__main__":
    unittest.main()
