"""
Cloud instance power and embodied-emissions model.

This module holds the numerical core:
- PowerProfile: wattage-vs-utilization curve points plus the embodied
  emissions and vCPU data for one instance type
- NaturalCubicSpline: the interpolating curve fitted through a profile
- energy_kwh / embodied_share: per-observation estimators

Energy for one observation:

    E (kWh) = ((W(cpu * 100) * duration) / 3600) / 1000

Embodied emissions allocated to one observation:

    M = TE * (TR / EL) * (RR / TR_total)

where TE is the instance's total lifecycle embodied emissions, TR the time
reserved in hours, EL the expected lifespan in hours, RR the vCPUs reserved
and TR_total the vCPUs of the host platform.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import math

import numpy as np

from .errors import (
    CatalogError,
    InvalidObservationError,
    MissingObservationFieldError,
)


SECONDS_PER_HOUR = 3600
WH_PER_KWH = 1000
HOURS_PER_YEAR = 8760  # Non-leap year, not calendar-aware
DEFAULT_EXPECTED_LIFESPAN_YEARS = 4

AWS_LOAD_POINTS = (0.0, 10.0, 50.0, 100.0)
MIN_MAX_LOAD_POINTS = (0.0, 100.0)

REQUIRED_OBSERVATION_FIELDS = ('duration', 'cpu', 'datetime')


class NaturalCubicSpline:
    """
    Natural cubic spline through a set of knots.

    The curve passes through every (x, y) knot, is C2 continuous across
    segments and has zero second derivative at both ends. With exactly two
    knots the solved second derivatives are zero and the curve is the
    straight line between them.

    Evaluation outside [x_0, x_n] is clamped to the boundary knot value.
    """

    def __init__(self, xs: Sequence[float], ys: Sequence[float]):
        x = np.asarray(xs, dtype=float)
        y = np.asarray(ys, dtype=float)
        if x.ndim != 1 or x.shape != y.shape:
            raise ValueError("xs and ys must be 1-D sequences of equal length")
        if len(x) < 2:
            raise ValueError("A spline needs at least two knots")
        h = np.diff(x)
        if np.any(h <= 0):
            raise ValueError("Spline knots must be strictly increasing in x")

        self.xs = x
        self.ys = y
        self.second_derivatives = self._solve_second_derivatives(x, y, h)

        m = self.second_derivatives
        slopes = np.diff(y) / h
        # Per-segment polynomial a + b*t + c*t^2 + d*t^3, t = x - x_i
        self._b = slopes - h * (2 * m[:-1] + m[1:]) / 6
        self._c = m[:-1] / 2
        self._d = np.diff(m) / (6 * h)

    @staticmethod
    def _solve_second_derivatives(x: np.ndarray, y: np.ndarray, h: np.ndarray) -> np.ndarray:
        """
        Second derivatives at the knots.

        The natural boundary fixes M_0 = M_{n-1} = 0 exactly; only the
        interior knots are solved for (an empty system for two knots).
        """
        n = len(x)
        m = np.zeros(n)
        k = n - 2
        if k == 0:
            return m

        a = np.zeros((k, k))
        rhs = 6 * (np.diff(y)[1:] / h[1:] - np.diff(y)[:-1] / h[:-1])
        for j in range(k):
            a[j, j] = 2 * (h[j] + h[j + 1])
            if j > 0:
                a[j, j - 1] = h[j]
            if j < k - 1:
                a[j, j + 1] = h[j + 1]

        m[1:-1] = np.linalg.solve(a, rhs)
        return m

    def at(self, x: float) -> float:
        """Evaluate the spline at x (clamped to the knot domain)."""
        if x <= self.xs[0]:
            return float(self.ys[0])
        if x >= self.xs[-1]:
            return float(self.ys[-1])

        i = int(np.searchsorted(self.xs, x, side='right')) - 1
        t = x - self.xs[i]
        return float(self.ys[i] + t * (self._b[i] + t * (self._c[i] + t * self._d[i])))

    def __call__(self, x: float) -> float:
        return self.at(x)


@dataclass(frozen=True)
class PowerProfile:
    """
    Power and embodied-emissions data for one instance type.

    curve_points are (utilization %, watts) pairs spanning 0..100.
    max_vcpus is None when the host platform size is unknown; see
    resource_share() for how that is handled.
    """
    name: str
    curve_points: Tuple[Tuple[float, float], ...]
    embodied_emission_total: Optional[float] = None
    vcpus: Optional[int] = None
    max_vcpus: Optional[int] = None
    architecture: Optional[str] = None
    _spline: NaturalCubicSpline = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        points = tuple((float(u), float(w)) for u, w in self.curve_points)
        if len(points) < 2:
            raise CatalogError(f"Instance '{self.name}' needs at least two curve points")
        utils = [u for u, _ in points]
        if any(b <= a for a, b in zip(utils, utils[1:])):
            raise CatalogError(
                f"Instance '{self.name}' curve points must be strictly increasing "
                f"in utilization, got {utils}"
            )
        if utils[0] != 0.0 or utils[-1] != 100.0:
            raise CatalogError(
                f"Instance '{self.name}' curve points must span 0-100% utilization, "
                f"got {utils[0]}-{utils[-1]}"
            )
        object.__setattr__(self, 'curve_points', points)
        object.__setattr__(
            self, '_spline',
            NaturalCubicSpline([u for u, _ in points], [w for _, w in points]),
        )

    @property
    def spline(self) -> NaturalCubicSpline:
        return self._spline

    @property
    def idle_watts(self) -> float:
        return self.curve_points[0][1]

    @property
    def max_watts(self) -> float:
        return self.curve_points[-1][1]

    def resource_share(self) -> float:
        """
        Fraction of the host platform reserved by this instance type.

        Unknown vcpus or max_vcpus count as 1, so an instance with no platform
        data is allocated vcpus/1 of the host's embodied emissions.
        """
        reserved = self.vcpus if self.vcpus is not None else 1
        total = self.max_vcpus if self.max_vcpus else 1
        return reserved / total

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'curve_points': [list(p) for p in self.curve_points],
            'embodied_emission_total': self.embodied_emission_total,
            'vcpus': self.vcpus,
            'max_vcpus': self.max_vcpus,
            'architecture': self.architecture,
        }


@dataclass
class Observation:
    """One usage-window sample."""
    duration: float        # seconds
    cpu: float             # utilization fraction [0, 1]
    datetime: Any = None   # identification only; None counts as missing

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Observation":
        missing = _missing_fields(data)
        if missing:
            raise MissingObservationFieldError(missing)
        return cls(duration=data['duration'], cpu=data['cpu'], datetime=data['datetime'])


ObservationLike = Union[Observation, Mapping[str, Any]]


def _has_field(observation: ObservationLike, name: str) -> bool:
    if isinstance(observation, Mapping):
        return name in observation
    return hasattr(observation, name)


def _get_field(observation: ObservationLike, name: str) -> Any:
    if isinstance(observation, Mapping):
        return observation[name]
    return getattr(observation, name)


def _missing_fields(observation: ObservationLike) -> List[str]:
    missing = []
    for name in REQUIRED_OBSERVATION_FIELDS:
        if not _has_field(observation, name):
            missing.append(name)
        # An unset datetime counts as absent
        elif name == 'datetime' and _get_field(observation, name) is None:
            missing.append(name)
    return missing


def _as_number(value: Any, name: str, index: Optional[int]) -> float:
    where = f" in observation {index}" if index is not None else ""
    if isinstance(value, bool):
        raise InvalidObservationError(f"'{name}' must be a number{where}, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidObservationError(
            f"'{name}' must be a number{where}, got {value!r}"
        ) from None
    if not math.isfinite(number):
        raise InvalidObservationError(f"'{name}' must be finite{where}, got {value!r}")
    return number


def validate_observation(observation: ObservationLike, index: Optional[int] = None) -> Tuple[float, float]:
    """
    Check an observation and return its (duration_s, cpu_fraction).

    Raises:
        MissingObservationFieldError: If duration, cpu or datetime is absent
        InvalidObservationError: If duration or cpu is not a finite number,
            or duration is negative
    """
    if observation is None:
        raise MissingObservationFieldError(REQUIRED_OBSERVATION_FIELDS, index)
    missing = _missing_fields(observation)
    if missing:
        raise MissingObservationFieldError(missing, index)

    duration = _as_number(_get_field(observation, 'duration'), 'duration', index)
    cpu = _as_number(_get_field(observation, 'cpu'), 'cpu', index)
    if duration < 0:
        where = f" in observation {index}" if index is not None else ""
        raise InvalidObservationError(f"'duration' must be non-negative{where}, got {duration}")
    return duration, cpu


def as_batch(observations: Union[ObservationLike, Iterable[ObservationLike]]) -> List[ObservationLike]:
    """
    Normalize one observation or an iterable of them into a list.

    A mapping or Observation is a one-element batch; generators are
    consumed once.
    """
    if isinstance(observations, (Mapping, Observation)):
        return [observations]
    if isinstance(observations, Iterable) and not isinstance(observations, str):
        return list(observations)
    raise InvalidObservationError(
        f"observations must be an observation or a sequence of them, got {observations!r}"
    )


def estimate_wattage(profile: PowerProfile, utilization_pct: float) -> float:
    """
    Estimate instantaneous wattage of an instance at a CPU utilization.

    Args:
        profile: Power profile of the instance type
        utilization_pct: CPU utilization percentage (0-100). Values outside
            the range are clamped to the 0% / 100% wattage.

    Returns:
        Estimated power draw in watts
    """
    return profile.spline.at(utilization_pct)


def energy_kwh(observation: ObservationLike, profile: PowerProfile) -> float:
    """
    Energy consumed during one observation window, in kWh.

    e.g. 30 W for 300 s = 9000 J = 2.5 Wh = 0.0025 kWh
    """
    duration, cpu = validate_observation(observation)
    wattage = estimate_wattage(profile, cpu * 100.0)
    return ((wattage * duration) / SECONDS_PER_HOUR) / WH_PER_KWH


def embodied_share(
    observation: ObservationLike,
    profile: PowerProfile,
    expected_lifespan: float = DEFAULT_EXPECTED_LIFESPAN_YEARS,
) -> float:
    """
    Share of the instance's lifecycle embodied emissions allocated to one observation.

    Args:
        observation: Observation with a duration in seconds
        profile: Power profile carrying embodied_emission_total and vCPU data
        expected_lifespan: Expected hardware lifespan in years

    Returns:
        Allocated embodied emissions, in the unit of embodied_emission_total
        (0 when the instance has no embodied data)
    """
    duration, _ = validate_observation(observation)
    total_emissions = profile.embodied_emission_total or 0.0
    time_reserved = duration / SECONDS_PER_HOUR
    expected_lifespan_hours = HOURS_PER_YEAR * expected_lifespan
    return total_emissions * (time_reserved / expected_lifespan_hours) * profile.resource_share()
