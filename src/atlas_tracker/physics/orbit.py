# src/atlas_tracker/physics/orbit.py

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from atlas_tracker.core.constants import AU_KM, MU_SUN_AU3_DAY2, MU_SUN_KM3_S2, au_per_day_to_km_s
from atlas_tracker.core.errors import CriticalDataError
from atlas_tracker.core.frames import Vector3, is_finite_vector, norm, perifocal_to_ecliptic
from atlas_tracker.core.timescale import days_between, ensure_utc
from atlas_tracker.physics.kepler import hyperbolic_true_anomaly, solve_hyperbolic_keplers_equation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrbitalElements:
    """
    Perihelion-referenced elements of a hyperbolic (unbound) heliocentric orbit.

    Units:
        e: eccentricity (> 1)
        q_au: perihelion distance in AU
        inc_deg: inclination in degrees
        argp_deg: argument of periapsis in degrees
        node_deg: longitude of ascending node in degrees
        perihelion_time: time of perihelion passage (UTC)
        epoch: osculation epoch of the solution, if published
    """
    e: float
    q_au: float
    inc_deg: float
    argp_deg: float
    node_deg: float
    perihelion_time: datetime
    epoch: Optional[datetime] = None

    def __post_init__(self):
        if not (math.isfinite(self.e) and self.e > 1.0):
            raise ValueError(f"Hyperbolic orbit requires e > 1. Got: {self.e}")
        if not (math.isfinite(self.q_au) and self.q_au > 0.0):
            raise ValueError(f"Perihelion distance must be positive. Got: {self.q_au}")
        if not (0.0 <= self.inc_deg <= 180.0):
            raise ValueError(f"Inclination must be in range [0, 180] degrees. Got: {self.inc_deg}")
        if not math.isfinite(self.argp_deg):
            raise ValueError(f"Argument of periapsis must be finite. Got: {self.argp_deg}")
        if not math.isfinite(self.node_deg):
            raise ValueError(f"Ascending node must be finite. Got: {self.node_deg}")
        object.__setattr__(self, "perihelion_time", ensure_utc(self.perihelion_time))
        if self.epoch is not None:
            object.__setattr__(self, "epoch", ensure_utc(self.epoch))

    @property
    def semi_major_axis_au(self) -> float:
        """a = q / (1 - e), negative for e > 1."""
        return self.q_au / (1.0 - self.e)

    def days_from_perihelion(self, when: datetime) -> float:
        return days_between(self.perihelion_time, when)


@dataclass(frozen=True)
class StateVector:
    """
    Heliocentric ecliptic J2000 state. Position in AU, velocity in AU/day.
    """
    position: Vector3
    velocity: Vector3

    def __post_init__(self):
        if len(self.position) != 3 or not is_finite_vector(self.position):
            raise ValueError(f"Position must be a finite 3-vector. Got: {self.position}")
        if len(self.velocity) != 3 or not is_finite_vector(self.velocity):
            raise ValueError(f"Velocity must be a finite 3-vector. Got: {self.velocity}")
        object.__setattr__(self, "position", tuple(float(c) for c in self.position))
        object.__setattr__(self, "velocity", tuple(float(c) for c in self.velocity))

    @property
    def distance_au(self) -> float:
        return norm(self.position)

    @property
    def speed_au_day(self) -> float:
        return norm(self.velocity)

    @property
    def speed_km_s(self) -> float:
        return au_per_day_to_km_s(self.speed_au_day)


def mean_motion_rad_day(elements: OrbitalElements, mu: float = MU_SUN_AU3_DAY2) -> float:
    """n = sqrt(|mu / a^3|)."""
    a = elements.semi_major_axis_au
    return math.sqrt(abs(mu / (a * a * a)))


def _orbital_plane(days_from_perihelion: float, elements: OrbitalElements, mu: float):
    if not math.isfinite(days_from_perihelion):
        raise ValueError(f"days_from_perihelion must be finite. Got: {days_from_perihelion}")

    e = elements.e
    a = elements.semi_major_axis_au
    M = mean_motion_rad_day(elements, mu) * days_from_perihelion

    anomaly = solve_hyperbolic_keplers_equation(M, e)
    if not anomaly.converged:
        logger.warning(
            "Kepler solver did not converge: days=%.1f M=%.4f H=%.4f after %d iterations",
            days_from_perihelion, M, anomaly.value, anomaly.iterations,
        )

    H = anomaly.value
    nu = hyperbolic_true_anomaly(H, e)

    denom = 1.0 + e * math.cos(nu)
    if denom > 1e-12:
        r = a * (1.0 - e * e) / denom
    else:
        # ν has reached the asymptote in floating point; same radius from H directly
        r = a * (1.0 - e * math.cosh(H))
    return r, nu


def solve_position(days_from_perihelion: float, elements: OrbitalElements,
                   mu: float = MU_SUN_AU3_DAY2) -> Vector3:
    """
    Heliocentric ecliptic position (AU) at a time offset from perihelion.

    Output is not capped: far from perihelion r grows without bound and callers
    limit by distance themselves.
    """
    r, nu = _orbital_plane(days_from_perihelion, elements, mu)
    r_pqw: Vector3 = (r * math.cos(nu), r * math.sin(nu), 0.0)
    return perifocal_to_ecliptic(
        r_pqw,
        math.radians(elements.node_deg),
        math.radians(elements.inc_deg),
        math.radians(elements.argp_deg),
    )


def state_from_elements(days_from_perihelion: float, elements: OrbitalElements,
                        mu: float = MU_SUN_AU3_DAY2) -> StateVector:
    """
    Full heliocentric state (AU, AU/day) from elements.
    """
    r, nu = _orbital_plane(days_from_perihelion, elements, mu)
    e = elements.e
    p = elements.q_au * (1.0 + e)  # semi-latus rectum, = a(1-e^2)
    k = math.sqrt(mu / p)

    r_pqw: Vector3 = (r * math.cos(nu), r * math.sin(nu), 0.0)
    v_pqw: Vector3 = (-k * math.sin(nu), k * (e + math.cos(nu)), 0.0)

    node = math.radians(elements.node_deg)
    inc = math.radians(elements.inc_deg)
    argp = math.radians(elements.argp_deg)
    return StateVector(
        position=perifocal_to_ecliptic(r_pqw, node, inc, argp),
        velocity=perifocal_to_ecliptic(v_pqw, node, inc, argp),
    )


def state_at(elements: OrbitalElements, when: datetime) -> StateVector:
    return state_from_elements(elements.days_from_perihelion(when), elements)


def vis_viva_speed_km_s(distance_au: float, elements: OrbitalElements, mu_km3_s2: float = MU_SUN_KM3_S2) -> float:
    """
    Orbital speed from v^2 = mu (2/r - 1/a), a = q/(1-e).

    A validated positive distance with valid hyperbolic elements always yields a
    real speed, so any failure here means the inputs were corrupted upstream.
    """
    r_km = distance_au * AU_KM
    a_km = elements.semi_major_axis_au * AU_KM
    if not (math.isfinite(r_km) and r_km > 0.0):
        logger.error("vis-viva fallback received invalid distance %r AU", distance_au)
        raise CriticalDataError(f"vis-viva fallback requires a positive finite distance, got {distance_au!r} AU")

    v_squared = mu_km3_s2 * (2.0 / r_km - 1.0 / a_km)
    if not (math.isfinite(v_squared) and v_squared > 0.0):
        logger.error("vis-viva fallback produced v^2=%r for r=%r AU, a=%r AU",
                     v_squared, distance_au, elements.semi_major_axis_au)
        raise CriticalDataError(f"vis-viva fallback produced non-physical v^2={v_squared!r}")
    return math.sqrt(v_squared)
