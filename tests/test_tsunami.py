import math
import unittest

from impactlab.backend.casualties import PopulationContext
from impactlab.backend.physics_engine import ImpactParameters, compute_impact
from impactlab.backend.tsunami import OceanContext, compute_tsunami_impact


class TestTsunamiImpact(unittest.TestCase):

    def setUp(self):
        self.impact = compute_impact(ImpactParameters(1000.0, 20.0, 45.0, 3300.0, terrain="water"))
        self.population = PopulationContext(total=0.0, density=50.0, radius_km=30.0)
        self.ocean = OceanContext(
            depth_meters=4000.0,
            wave_height_meters=1.4,
            wave_period_seconds=8.0,
            surface_temperature_c=18.5,
            source="GEBCO 2020 & Open-Meteo Marine",
        )

    def _travel_distance_km(self):
        crater_radius_km = self.impact.final_crater_diameter / 2.0 / 1000.0
        return max(self.population.radius_km, crater_radius_km * 2.0 + 30.0)

    def test_not_oceanic(self):
        for depth in (None, 5.0, 3.0, -100.0, float("nan")):
            ocean = OceanContext(depth_meters=depth)
            self.assertIsNone(compute_tsunami_impact(self.impact, ocean, self.population))
        self.assertIsNone(compute_tsunami_impact(self.impact, None, self.population))

    def test_deep_ocean_values(self):
        tsunami = compute_tsunami_impact(self.impact, self.ocean, self.population)
        self.assertIsNotNone(tsunami)
        for value in (
            tsunami.source_wave_height,
            tsunami.coastal_wave_height,
            tsunami.runup_height,
            tsunami.inundation_distance_km,
            tsunami.arrival_time_minutes,
            tsunami.exposed_population,
        ):
            self.assertTrue(math.isfinite(value))
        self.assertGreaterEqual(tsunami.inundation_distance_km, 1.0)
        self.assertAlmostEqual(tsunami.runup_height, tsunami.coastal_wave_height * 1.35)
        self.assertAlmostEqual(tsunami.fatalities, tsunami.exposed_population * 0.45)
        self.assertEqual(tsunami.depth_meters, 4000.0)
        self.assertEqual(tsunami.wave_period_seconds, 8.0)
        self.assertEqual(tsunami.source, "GEBCO 2020 & Open-Meteo Marine")

    def test_source_wave_height_formula(self):
        tsunami = compute_tsunami_impact(self.impact, self.ocean, self.population)
        crater_radius_km = self.impact.final_crater_diameter / 2000.0
        depth_factor = max(math.sqrt(4.0 + 0.05), 0.35)
        expected_km = min(self.impact.energy_mt**0.28 * 6.0 / depth_factor, crater_radius_km * 800.0)
        self.assertAlmostEqual(tsunami.source_wave_height, expected_km * 1000.0, delta=1e-6)

    def test_resolved_arrival_uses_lookup_depth(self):
        tsunami = compute_tsunami_impact(self.impact, self.ocean, self.population)
        expected = self._travel_distance_km() * 1000.0 / math.sqrt(9.81 * 4000.0) / 60.0
        self.assertAlmostEqual(tsunami.arrival_time_minutes, expected)

    def test_resolved_arrival_floors_depth(self):
        ocean = OceanContext(depth_meters=8.0)
        tsunami = compute_tsunami_impact(self.impact, ocean, self.population)
        expected = self._travel_distance_km() * 1000.0 / math.sqrt(9.81 * 10.0) / 60.0
        self.assertAlmostEqual(tsunami.arrival_time_minutes, expected)

    def test_fixed_arrival_depth(self):
        tsunami = compute_tsunami_impact(self.impact, self.ocean, self.population, arrival_depth_mode="fixed")
        expected = self._travel_distance_km() * 1000.0 / math.sqrt(9.81 * 50.0) / 60.0
        self.assertAlmostEqual(tsunami.arrival_time_minutes, expected)

    def test_unknown_arrival_mode(self):
        with self.assertRaises(ValueError):
            compute_tsunami_impact(self.impact, self.ocean, self.population, arrival_depth_mode="guess")

    def test_explicit_population_caps_exposure(self):
        dense = PopulationContext(total=0.0, density=5000.0, radius_km=30.0)
        tsunami = compute_tsunami_impact(self.impact, self.ocean, dense, explicit_population=250.0)
        self.assertEqual(tsunami.exposed_population, 250.0)

    def test_ocean_context_from_dict(self):
        ocean = OceanContext.from_dict({"depth_meters": "120", "wave_height_meters": "n/a", "source": None})
        self.assertEqual(ocean.depth_meters, 120.0)
        self.assertIsNone(ocean.wave_height_meters)
        self.assertIsNone(ocean.source)
        self.assertEqual(OceanContext.from_dict(None), OceanContext())


if __name__ == "__main__":
    unittest.main()
