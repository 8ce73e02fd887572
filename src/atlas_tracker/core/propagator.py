"""
Fixed-step two-body propagation for trail and projection sampling.

Sun-only gravity with explicit Euler steps of one sample interval. Good enough
at 1-2 day sampling for visualization; not an ephemeris-grade integrator.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Tuple

from atlas_tracker.core.constants import MU_SUN_AU3_DAY2
from atlas_tracker.core.frames import Vector3, add, norm, scale
from atlas_tracker.core.timescale import add_days, days_between, ensure_utc
from atlas_tracker.physics.orbit import StateVector

if TYPE_CHECKING:
    from atlas_tracker.config import TrackerSettings

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_INTERVAL_DAYS = 2.0
DEFAULT_MAX_DISTANCE_AU = 100.0


@dataclass(frozen=True)
class TrajectoryPoint:
    """One sample of a trail or projection. distance_from_sun is derived from position."""
    timestamp: datetime
    position: Vector3
    distance_from_sun: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "distance_from_sun", norm(self.position))


def two_body_acceleration(r: Vector3, mu: float = MU_SUN_AU3_DAY2) -> Vector3:
    """a = -mu * r / |r|^3"""
    r_mag = norm(r)
    if r_mag == 0.0:
        raise ValueError("Two-body acceleration undefined at the origin.")
    return scale(r, -mu / r_mag**3)


def euler_step(r: Vector3, v: Vector3, dt: float, mu: float = MU_SUN_AU3_DAY2) -> Tuple[Vector3, Vector3]:
    """
    Single explicit Euler step: velocity first, then position with the new velocity.
    A negative dt steps backward in time.
    """
    acc = two_body_acceleration(r, mu)
    v_new = add(v, scale(acc, dt))
    r_new = add(r, scale(v_new, dt))
    return r_new, v_new


def _check_interval(sample_interval_days: float) -> None:
    if not (math.isfinite(sample_interval_days) and sample_interval_days > 0):
        raise ValueError("sample_interval_days must be positive.")


def project_forward(state: StateVector, start_time: datetime, total_days: float,
                    sample_interval_days: float = DEFAULT_SAMPLE_INTERVAL_DAYS,
                    max_distance_au: float = DEFAULT_MAX_DISTANCE_AU,
                    mu: float = MU_SUN_AU3_DAY2) -> List[TrajectoryPoint]:
    """
    Integrate forward from `state` at `start_time`, one point per sample interval.

    Stops early, after recording the first point beyond max_distance_au; the
    partial list is the normal result for an object leaving the solar system.
    """
    _check_interval(sample_interval_days)
    if total_days < 0:
        raise ValueError("total_days must be >= 0.")

    start_time = ensure_utc(start_time)
    steps = int(math.floor(total_days / sample_interval_days + 1e-9))

    points: List[TrajectoryPoint] = []
    r, v = state.position, state.velocity
    for k in range(steps + 1):
        point = TrajectoryPoint(add_days(start_time, k * sample_interval_days), r)
        points.append(point)

        if point.distance_from_sun > max_distance_au:
            logger.info("Projection stopped at %.1f AU (cap %.1f AU) after %d points",
                        point.distance_from_sun, max_distance_au, len(points))
            break

        if k < steps:
            r, v = euler_step(r, v, sample_interval_days, mu)

    logger.debug("Projected %d points forward from %s", len(points), start_time.isoformat())
    return points


def integrate_backward(state: StateVector, now: datetime, trail_days: float,
                       sample_interval_days: float = DEFAULT_SAMPLE_INTERVAL_DAYS,
                       earliest_allowed_time: Optional[datetime] = None,
                       mu: float = MU_SUN_AU3_DAY2) -> List[TrajectoryPoint]:
    """
    Integrate backward from `state` at `now` to build a historical trail.

    The span is clipped so no point precedes earliest_allowed_time. Points are
    collected newest first and returned oldest first.
    """
    _check_interval(sample_interval_days)
    if trail_days < 0:
        raise ValueError("trail_days must be >= 0.")

    now = ensure_utc(now)
    effective_days = trail_days
    if earliest_allowed_time is not None:
        available = days_between(earliest_allowed_time, now)
        if available < 0:
            logger.warning("Trail requested at %s, before the floor %s; returning no points",
                           now.isoformat(), ensure_utc(earliest_allowed_time).isoformat())
            return []
        effective_days = min(trail_days, math.floor(available))
        if effective_days < trail_days:
            logger.debug("Trail clipped from %.1f to %.1f days by floor %s",
                         trail_days, effective_days, ensure_utc(earliest_allowed_time).isoformat())

    steps = int(math.floor(effective_days / sample_interval_days + 1e-9))

    trail: List[TrajectoryPoint] = []
    r, v = state.position, state.velocity
    for k in range(steps + 1):
        trail.append(TrajectoryPoint(add_days(now, -k * sample_interval_days), r))
        if k < steps:
            r, v = euler_step(r, v, -sample_interval_days, mu)

    trail.reverse()
    logger.debug("Integrated %d trail points back from %s", len(trail), now.isoformat())
    return trail


class TrajectoryIntegrator:
    """
    Holds the sampling policy for trails and projections.
    """

    def __init__(self,
                 sample_interval_days: float = DEFAULT_SAMPLE_INTERVAL_DAYS,
                 max_distance_au: float = DEFAULT_MAX_DISTANCE_AU,
                 earliest_allowed_time: Optional[datetime] = None,
                 mu: float = MU_SUN_AU3_DAY2):
        """
        Args:
            sample_interval_days: Step and sample spacing (days)
            max_distance_au: Projection stops beyond this heliocentric distance
            earliest_allowed_time: Floor for backward integration
            mu: Gravitational parameter (AU^3/day^2)
        """
        _check_interval(sample_interval_days)
        self.sample_interval_days = sample_interval_days
        self.max_distance_au = max_distance_au
        self.earliest_allowed_time = earliest_allowed_time
        self.mu = mu

    @classmethod
    def from_settings(cls, settings: "TrackerSettings") -> "TrajectoryIntegrator":
        return cls(
            sample_interval_days=settings.sample_interval_days,
            max_distance_au=settings.max_distance_au,
            earliest_allowed_time=settings.trail_floor,
        )

    def project_forward(self, state: StateVector, start_time: datetime, total_days: float) -> List[TrajectoryPoint]:
        return project_forward(state, start_time, total_days,
                               self.sample_interval_days, self.max_distance_au, self.mu)

    def integrate_backward(self, state: StateVector, now: datetime, trail_days: float) -> List[TrajectoryPoint]:
        return integrate_backward(state, now, trail_days,
                                  self.sample_interval_days, self.earliest_allowed_time, self.mu)
