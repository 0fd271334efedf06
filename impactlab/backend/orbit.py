"""Keplerian orbit propagation for the orbit viewer."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional

import math

from scipy import constants

from .errors import MalformedUpstreamError
from .units import clamp, to_finite

AU_IN_KM = constants.astronomical_unit / 1000.0
DAYS_PER_JULIAN_YEAR = constants.Julian_year / constants.day
UNIX_EPOCH_JULIAN_DATE = 2440587.5
J2000_JULIAN_DATE = 2451545.0

MAX_ECCENTRICITY = 0.999999
KEPLER_TOLERANCE = 1e-6
KEPLER_MAX_ITERATIONS = 30
HIGH_ECCENTRICITY_SEED = 0.8


@dataclass(frozen=True)
class OrbitalElements:
    """Heliocentric Keplerian elements (AU / degrees / days)."""

    semi_major_axis_au: float
    eccentricity: float
    inclination_deg: float
    ascending_node_deg: float
    arg_perihelion_deg: float
    mean_anomaly_deg: float
    epoch_julian: float = J2000_JULIAN_DATE
    period_days: Optional[float] = None
    mean_motion_deg_per_day: Optional[float] = None

    @classmethod
    def from_nasa(cls, orbital_data: Mapping[str, object]) -> "OrbitalElements":
        """Parse the ``orbital_data`` block of a NeoWs lookup response."""

        if not isinstance(orbital_data, Mapping):
            raise MalformedUpstreamError("orbital_data must be an object")

        required = {
            "semi_major_axis": "semi_major_axis_au",
            "eccentricity": "eccentricity",
            "inclination": "inclination_deg",
            "ascending_node_longitude": "ascending_node_deg",
            "perihelion_argument": "arg_perihelion_deg",
            "mean_anomaly": "mean_anomaly_deg",
        }
        values: Dict[str, float] = {}
        for source_key, field_name in required.items():
            value = to_finite(orbital_data.get(source_key))
            if value is None:
                raise MalformedUpstreamError(f"orbital_data.{source_key} is missing or not numeric")
            values[field_name] = value

        if values["semi_major_axis_au"] <= 0:
            raise MalformedUpstreamError("orbital_data.semi_major_axis must be positive")
        values["eccentricity"] = clamp(values["eccentricity"], 0.0, MAX_ECCENTRICITY)

        epoch = to_finite(orbital_data.get("epoch_osculation"))
        return cls(
            epoch_julian=epoch if epoch is not None else J2000_JULIAN_DATE,
            period_days=to_finite(orbital_data.get("orbital_period")),
            mean_motion_deg_per_day=to_finite(orbital_data.get("mean_motion")),
            **values,
        )

    def mean_motion_rad_per_day(self) -> float:
        if self.mean_motion_deg_per_day:
            return math.radians(self.mean_motion_deg_per_day)
        if self.period_days:
            return 2.0 * math.pi / self.period_days
        # Kepler's third law for a heliocentric orbit.
        period = DAYS_PER_JULIAN_YEAR * self.semi_major_axis_au**1.5
        return 2.0 * math.pi / period

    def to_dict(self) -> Dict[str, Optional[float]]:
        return asdict(self)


@dataclass(frozen=True)
class OrbitState:
    true_anomaly: float
    radius_au: float
    mean_anomaly: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def julian_date(moment: Optional[datetime] = None) -> float:
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp() / constants.day + UNIX_EPOCH_JULIAN_DATE


def solve_kepler(
    mean_anomaly: float,
    eccentricity: float,
    *,
    tolerance: float = KEPLER_TOLERANCE,
    max_iterations: int = KEPLER_MAX_ITERATIONS,
) -> float:
    """Solve ``E - e*sin(E) = M`` for the eccentric anomaly E (radians).

    Newton-Raphson seeded with M, or with pi for e >= 0.8 where the M seed can
    overshoot. The iteration count is capped; the last iterate is returned if
    the tolerance was not reached.
    """

    e = clamp(eccentricity, 0.0, MAX_ECCENTRICITY)
    E = mean_anomaly if e < HIGH_ECCENTRICITY_SEED else math.pi
    for _ in range(max_iterations):
        residual = E - e * math.sin(E) - mean_anomaly
        if abs(residual) < tolerance:
            break
        E -= residual / (1.0 - e * math.cos(E))
    return E


def _wrap_angle(angle_rad: float) -> float:
    return angle_rad % (2.0 * math.pi)


def propagate_true_anomaly(elements: OrbitalElements, at_julian_date: Optional[float] = None) -> OrbitState:
    """Locate the body along its ellipse at the epoch or at ``at_julian_date``."""

    mean_anomaly = math.radians(elements.mean_anomaly_deg)
    if at_julian_date is not None:
        mean_anomaly += elements.mean_motion_rad_per_day() * (at_julian_date - elements.epoch_julian)
    mean_anomaly = _wrap_angle(mean_anomaly)

    e = clamp(elements.eccentricity, 0.0, MAX_ECCENTRICITY)
    eccentric_anomaly = solve_kepler(mean_anomaly, e)
    true_anomaly = 2.0 * math.atan2(
        math.sqrt(1.0 + e) * math.sin(eccentric_anomaly / 2.0),
        math.sqrt(1.0 - e) * math.cos(eccentric_anomaly / 2.0),
    )
    radius_au = elements.semi_major_axis_au * (1.0 - e * math.cos(eccentric_anomaly))
    return OrbitState(
        true_anomaly=_wrap_angle(true_anomaly),
        radius_au=radius_au,
        mean_anomaly=mean_anomaly,
    )


def orbital_position_from_true_anomaly(elements: OrbitalElements, true_anomaly_rad: float) -> Dict[str, float]:
    """Heliocentric ecliptic position (AU) for a given true anomaly."""

    e = clamp(elements.eccentricity, 0.0, MAX_ECCENTRICITY)
    a = elements.semi_major_axis_au
    r = a * (1.0 - e**2) / (1.0 + e * math.cos(true_anomaly_rad))

    node = math.radians(elements.ascending_node_deg)
    inc = math.radians(elements.inclination_deg)
    argument_of_latitude = math.radians(elements.arg_perihelion_deg) + true_anomaly_rad

    cos_O = math.cos(node)
    sin_O = math.sin(node)
    cos_i = math.cos(inc)
    sin_i = math.sin(inc)
    cos_u = math.cos(argument_of_latitude)
    sin_u = math.sin(argument_of_latitude)

    x = r * (cos_O * cos_u - sin_O * sin_u * cos_i)
    y = r * (sin_O * cos_u + cos_O * sin_u * cos_i)
    z = r * (sin_u * sin_i)
    return {"x": x, "y": y, "z": z, "radius": r}


def sample_orbit_path(elements: OrbitalElements, sample_points: int = 180) -> List[Dict[str, float]]:
    sample_points = max(sample_points, 12)
    step = 2.0 * math.pi / sample_points
    return [orbital_position_from_true_anomaly(elements, i * step) for i in range(sample_points)]


def approximate_moid_km(path: Iterable[Mapping[str, float]]) -> float:
    """Approximate MOID by minimising radial distance from Earth's orbit (1 AU)."""

    min_difference = float("inf")
    for point in path:
        difference = abs(point["radius"] - 1.0)
        if difference < min_difference:
            min_difference = difference
    return min_difference * AU_IN_KM
