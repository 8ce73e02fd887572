"""
Earth ephemeris backed by astronomy-engine (VSOP87 truncated series).

astronomy-engine reports heliocentric vectors in the J2000 mean equator frame
(EQJ); they are rotated into the ecliptic J2000 frame the rest of the package
works in.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

import astronomy

from atlas_tracker.core.frames import Vector3, ecliptic_to_equatorial, equatorial_to_ecliptic
from atlas_tracker.core.timescale import days_since_j2000
from atlas_tracker.physics.orbit import StateVector

# Heliocentric ecliptic state of the Earth at a given instant
EarthEphemeris = Callable[[datetime], StateVector]


def astronomy_time(when: datetime) -> astronomy.Time:
    # astronomy.Time takes UT days since 2000-01-01T12:00Z
    return astronomy.Time(days_since_j2000(when))


def earth_state(when: datetime) -> StateVector:
    """Heliocentric ecliptic J2000 state of the Earth (AU, AU/day)."""
    s = astronomy.HelioState(astronomy.Body.Earth, astronomy_time(when))
    return StateVector(
        position=equatorial_to_ecliptic(s.x, s.y, s.z),
        velocity=equatorial_to_ecliptic(s.vx, s.vy, s.vz),
    )


def earth_helio_equatorial(when: datetime, ephemeris: EarthEphemeris = earth_state) -> Vector3:
    return ecliptic_to_equatorial(*ephemeris(when).position)
