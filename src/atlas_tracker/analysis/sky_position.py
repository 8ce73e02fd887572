from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from atlas_tracker.core.frames import (
    angular_separation_arcsec,
    angular_to_linear_distance_au,
    geocentric_equatorial,
    heliocentric_to_radec,
    norm,
)
from atlas_tracker.core.timescale import ensure_utc
from atlas_tracker.physics.orbit import OrbitalElements, solve_position
from atlas_tracker.physics.planets import EarthEphemeris, earth_helio_equatorial, earth_state


@dataclass(frozen=True)
class SkyPosition:
    ra_deg: float
    dec_deg: float
    geocentric_distance_au: float
    heliocentric_distance_au: float
    when: datetime


@dataclass(frozen=True)
class PredictionOffset:
    separation_arcsec: float
    linear_offset_au: float


def predicted_sky_position(elements: OrbitalElements, when: datetime,
                           earth_ephemeris: EarthEphemeris = earth_state) -> SkyPosition:
    """
    Where the elements put the comet on the sky as seen from Earth.
    """
    when = ensure_utc(when)
    comet = solve_position(elements.days_from_perihelion(when), elements)
    earth_eq = earth_helio_equatorial(when, earth_ephemeris)
    ra, dec = heliocentric_to_radec(comet, earth_eq)
    return SkyPosition(
        ra_deg=ra,
        dec_deg=dec,
        geocentric_distance_au=norm(geocentric_equatorial(comet, earth_eq)),
        heliocentric_distance_au=norm(comet),
        when=when,
    )


def prediction_offset(observed_ra_deg: float, observed_dec_deg: float, predicted: SkyPosition) -> PredictionOffset:
    """Angular and linear miss between an observed position and a prediction."""
    sep = angular_separation_arcsec(observed_ra_deg, observed_dec_deg, predicted.ra_deg, predicted.dec_deg)
    return PredictionOffset(
        separation_arcsec=sep,
        linear_offset_au=angular_to_linear_distance_au(sep, predicted.geocentric_distance_au),
    )
