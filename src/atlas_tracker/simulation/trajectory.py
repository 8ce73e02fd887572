from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from atlas_tracker.config import TrackerSettings
from atlas_tracker.core.propagator import DEFAULT_MAX_DISTANCE_AU, TrajectoryIntegrator, TrajectoryPoint
from atlas_tracker.core.timescale import add_days, ensure_utc
from atlas_tracker.physics.orbit import OrbitalElements, StateVector, solve_position

logger = logging.getLogger(__name__)


@dataclass
class Trajectory:
    """
    Trail (past) and projection (future) around one reference instant.
    Both lists are time-ascending; the reference point opens the projection
    and closes the trail.
    """
    reference_time: datetime
    trail: List[TrajectoryPoint] = field(default_factory=list)
    projection: List[TrajectoryPoint] = field(default_factory=list)

    def points(self) -> List[TrajectoryPoint]:
        """Trail and projection joined without repeating the reference point."""
        if self.trail and self.projection and self.trail[-1].timestamp == self.projection[0].timestamp:
            return self.trail + self.projection[1:]
        return self.trail + self.projection


def build_trajectory(state: StateVector, now: datetime, trail_days: float, projection_days: float,
                     integrator: Optional[TrajectoryIntegrator] = None) -> Trajectory:
    """
    Trail and projection integrated from a measured (or merged) state vector.
    """
    integrator = integrator or TrajectoryIntegrator()
    now = ensure_utc(now)
    return Trajectory(
        reference_time=now,
        trail=integrator.integrate_backward(state, now, trail_days),
        projection=integrator.project_forward(state, now, projection_days),
    )


def configured_trajectory(state: StateVector, now: datetime,
                          settings: Optional[TrackerSettings] = None) -> Trajectory:
    """build_trajectory with the configured spans, sampling, distance cap and discovery floor."""
    settings = settings or TrackerSettings()
    return build_trajectory(state, now, settings.trail_days, settings.projection_days,
                            TrajectoryIntegrator.from_settings(settings))


def sample_elements(elements: OrbitalElements, times: Iterable[datetime],
                    max_distance_au: float = DEFAULT_MAX_DISTANCE_AU) -> List[TrajectoryPoint]:
    """
    Kepler positions at the given instants. Points beyond max_distance_au are
    dropped since the solver itself does not cap distance.
    """
    out: List[TrajectoryPoint] = []
    for t in times:
        point = TrajectoryPoint(ensure_utc(t), solve_position(elements.days_from_perihelion(t), elements))
        if point.distance_from_sun <= max_distance_au:
            out.append(point)
    return out


def trajectory_from_elements(elements: OrbitalElements, now: datetime, trail_days: float, projection_days: float,
                             sample_interval_days: float = 2.0,
                             earliest_allowed_time: Optional[datetime] = None,
                             max_distance_au: float = DEFAULT_MAX_DISTANCE_AU) -> Trajectory:
    """
    Trail and projection straight from published elements (no integration).
    """
    if sample_interval_days <= 0:
        raise ValueError("sample_interval_days must be positive.")
    now = ensure_utc(now)

    start = add_days(now, -trail_days)
    if earliest_allowed_time is not None and start < ensure_utc(earliest_allowed_time):
        start = ensure_utc(earliest_allowed_time)

    trail_times = []
    t = now
    while t >= start:
        trail_times.append(t)
        t = add_days(t, -sample_interval_days)
    trail_times.reverse()

    steps = int(projection_days // sample_interval_days)
    proj_times = [add_days(now, k * sample_interval_days) for k in range(steps + 1)]

    trajectory = Trajectory(
        reference_time=now,
        trail=sample_elements(elements, trail_times, max_distance_au),
        projection=sample_elements(elements, proj_times, max_distance_au),
    )
    logger.debug("Sampled %d trail and %d projection points from elements",
                 len(trajectory.trail), len(trajectory.projection))
    return trajectory
