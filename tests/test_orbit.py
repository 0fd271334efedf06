import math
import unittest
from datetime import datetime, timezone

from impactlab.backend.errors import MalformedUpstreamError
from impactlab.backend.orbit import (
    AU_IN_KM,
    J2000_JULIAN_DATE,
    OrbitalElements,
    approximate_moid_km,
    julian_date,
    orbital_position_from_true_anomaly,
    propagate_true_anomaly,
    sample_orbit_path,
    solve_kepler,
)


def _elements(**overrides):
    values = dict(
        semi_major_axis_au=1.0,
        eccentricity=0.0,
        inclination_deg=0.0,
        ascending_node_deg=0.0,
        arg_perihelion_deg=0.0,
        mean_anomaly_deg=90.0,
    )
    values.update(overrides)
    return OrbitalElements(**values)


class TestKepler(unittest.TestCase):

    def test_circular_orbit(self):
        self.assertEqual(solve_kepler(1.25, 0.0), 1.25)

    def test_residual_within_tolerance(self):
        for eccentricity in (0.1, 0.5, 0.79, 0.9, 0.99):
            for mean_anomaly in (0.1, 1.0, 3.0, 5.5):
                E = solve_kepler(mean_anomaly, eccentricity)
                self.assertAlmostEqual(E - eccentricity * math.sin(E), mean_anomaly, delta=1e-6)

    def test_moderate_eccentricity_converges_within_iteration_cap(self):
        E = solve_kepler(2.0, 0.6, max_iterations=30)
        self.assertLess(abs(E - 0.6 * math.sin(E) - 2.0), 1e-6)
        self.assertAlmostEqual(solve_kepler(2.0, 0.6, max_iterations=5), E, delta=1e-6)


class TestPropagation(unittest.TestCase):

    def test_epoch_state(self):
        state = propagate_true_anomaly(_elements())
        self.assertAlmostEqual(state.mean_anomaly, math.pi / 2.0)
        self.assertAlmostEqual(state.true_anomaly, math.pi / 2.0)
        self.assertAlmostEqual(state.radius_au, 1.0)

    def test_full_period_returns_to_start(self):
        elements = _elements(eccentricity=0.3, period_days=400.0, epoch_julian=2460000.5)
        start = propagate_true_anomaly(elements, 2460000.5)
        later = propagate_true_anomaly(elements, 2460400.5)
        self.assertAlmostEqual(start.mean_anomaly, later.mean_anomaly, places=9)
        self.assertAlmostEqual(start.true_anomaly, later.true_anomaly, places=6)

    def test_anomalies_wrapped(self):
        elements = _elements(mean_anomaly_deg=350.0, mean_motion_deg_per_day=1.0)
        state = propagate_true_anomaly(elements, J2000_JULIAN_DATE + 20.0)
        self.assertAlmostEqual(state.mean_anomaly, math.radians(10.0))
        self.assertGreaterEqual(state.true_anomaly, 0.0)
        self.assertLess(state.true_anomaly, 2.0 * math.pi)

    def test_mean_motion_sources(self):
        self.assertAlmostEqual(
            _elements(mean_motion_deg_per_day=0.5, period_days=10.0).mean_motion_rad_per_day(),
            math.radians(0.5),
        )
        self.assertAlmostEqual(_elements(period_days=100.0).mean_motion_rad_per_day(), 2.0 * math.pi / 100.0)
        self.assertAlmostEqual(_elements().mean_motion_rad_per_day(), 2.0 * math.pi / 365.25)


class TestPositions(unittest.TestCase):

    def test_radius_identity(self):
        elements = _elements(
            semi_major_axis_au=1.46,
            eccentricity=0.22,
            inclination_deg=10.8,
            ascending_node_deg=304.3,
            arg_perihelion_deg=178.9,
        )
        for nu in (0.0, 1.0, 2.5, 4.0):
            position = orbital_position_from_true_anomaly(elements, nu)
            expected = 1.46 * (1 - 0.22**2) / (1 + 0.22 * math.cos(nu))
            self.assertAlmostEqual(position["radius"], expected)
            self.assertAlmostEqual(
                math.sqrt(position["x"] ** 2 + position["y"] ** 2 + position["z"] ** 2), expected
            )

    def test_flat_orbit_stays_in_plane(self):
        position = orbital_position_from_true_anomaly(_elements(), math.pi / 2.0)
        self.assertAlmostEqual(position["x"], 0.0)
        self.assertAlmostEqual(position["y"], 1.0)
        self.assertAlmostEqual(position["z"], 0.0)

    def test_sample_orbit_path(self):
        self.assertEqual(len(sample_orbit_path(_elements())), 180)
        self.assertEqual(len(sample_orbit_path(_elements(), 3)), 12)

    def test_approximate_moid(self):
        self.assertAlmostEqual(approximate_moid_km(sample_orbit_path(_elements())), 0.0)
        moid = approximate_moid_km(sample_orbit_path(_elements(semi_major_axis_au=1.1)))
        self.assertAlmostEqual(moid, 0.1 * AU_IN_KM, delta=1.0)


class TestElements(unittest.TestCase):

    def test_from_nasa(self):
        elements = OrbitalElements.from_nasa(
            {
                "semi_major_axis": "0.9224",
                "eccentricity": "1.5",
                "inclination": "3.339",
                "ascending_node_longitude": "203.96",
                "perihelion_argument": "126.6",
                "mean_anomaly": "142.4",
                "epoch_osculation": "2460600.5",
                "orbital_period": "323.6",
            }
        )
        self.assertEqual(elements.semi_major_axis_au, 0.9224)
        self.assertEqual(elements.eccentricity, 0.999999)
        self.assertEqual(elements.epoch_julian, 2460600.5)
        self.assertEqual(elements.period_days, 323.6)
        self.assertIsNone(elements.mean_motion_deg_per_day)

    def test_from_nasa_rejects_missing(self):
        with self.assertRaises(MalformedUpstreamError):
            OrbitalElements.from_nasa({"semi_major_axis": "1.0"})
        with self.assertRaises(MalformedUpstreamError):
            OrbitalElements.from_nasa(None)

    def test_julian_date(self):
        self.assertAlmostEqual(julian_date(datetime(2000, 1, 1, 12, tzinfo=timezone.utc)), J2000_JULIAN_DATE)
        self.assertAlmostEqual(julian_date(datetime(2000, 1, 1, 12)), J2000_JULIAN_DATE)


if __name__ == "__main__":
    unittest.main()
