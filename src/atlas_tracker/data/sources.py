"""
External data sources as seen by the orchestrator.

Fetchers are injected async callables that return already-parsed payloads
(or None when the provider had nothing usable). Transport and response
parsing live with the callers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from atlas_tracker.config import TrackerSettings
from atlas_tracker.core.timescale import ensure_utc
from atlas_tracker.physics.orbit import OrbitalElements, StateVector

# Reported r may be rounded independently of the state vector
DISTANCE_AGREEMENT_REL = 1e-3


class SourceName(str, Enum):
    JPL_HORIZONS = "jpl_horizons"
    THESKYLIVE = "theskylive"
    COBS = "cobs"
    MPC = "mpc"


def _check_distance(value: Optional[float], label: str, required: bool = True) -> None:
    if value is None and not required:
        return
    if value is None or not (math.isfinite(value) and value > 0.0):
        raise ValueError(f"{label} must be a positive finite distance. Got: {value}")


def _check_radec(ra_deg: Optional[float], dec_deg: Optional[float]) -> None:
    if (ra_deg is None) != (dec_deg is None):
        raise ValueError("RA and Dec must be given together.")
    if ra_deg is None:
        return
    if not math.isfinite(ra_deg):
        raise ValueError(f"Right ascension must be finite. Got: {ra_deg}")
    if not (math.isfinite(dec_deg) and -90.0 <= dec_deg <= 90.0):
        raise ValueError(f"Declination must be in range [-90, 90] degrees. Got: {dec_deg}")


@dataclass(frozen=True)
class PreciseEphemeris:
    """Measured heliocentric state plus observer-centric quantities (JPL Horizons)."""
    state: StateVector
    heliocentric_distance_au: float
    geocentric_distance_au: Optional[float] = None
    ra_deg: Optional[float] = None
    dec_deg: Optional[float] = None
    uncertainty_arcsec: Optional[float] = None
    magnitude: Optional[float] = None
    last_updated: Optional[datetime] = None

    def __post_init__(self):
        _check_distance(self.heliocentric_distance_au, "Heliocentric distance")
        if not math.isclose(self.heliocentric_distance_au, self.state.distance_au, rel_tol=DISTANCE_AGREEMENT_REL):
            raise ValueError(
                f"Heliocentric distance {self.heliocentric_distance_au} AU disagrees with the state vector "
                f"({self.state.distance_au} AU)")
        _check_distance(self.geocentric_distance_au, "Geocentric distance", required=False)
        _check_radec(self.ra_deg, self.dec_deg)
        if self.uncertainty_arcsec is not None and not (self.uncertainty_arcsec >= 0):
            raise ValueError(f"Uncertainty must be non-negative. Got: {self.uncertainty_arcsec}")


@dataclass(frozen=True)
class ObservationalParams:
    """Sky position, distances and velocity hints from an observational feed (TheSkyLive)."""
    ra_deg: float
    dec_deg: float
    heliocentric_distance_au: float
    geocentric_distance_au: float
    heliocentric_velocity_km_s: Optional[float] = None
    angular_velocity_arcsec_day: Optional[float] = None
    magnitude_estimate: Optional[float] = None
    last_updated: Optional[datetime] = None

    def __post_init__(self):
        _check_radec(self.ra_deg, self.dec_deg)
        _check_distance(self.heliocentric_distance_au, "Heliocentric distance")
        _check_distance(self.geocentric_distance_au, "Geocentric distance")


@dataclass(frozen=True)
class LightCurvePoint:
    date: datetime
    magnitude: float

    def __post_init__(self):
        object.__setattr__(self, "date", ensure_utc(self.date))


@dataclass(frozen=True)
class CommunityBrightness:
    """Community photometry (COBS)."""
    magnitude: Optional[float] = None
    light_curve: Tuple[LightCurvePoint, ...] = field(default_factory=tuple)
    observation_count: int = 0
    last_updated: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "light_curve", tuple(sorted(self.light_curve, key=lambda p: p.date)))


Fetcher = Callable[[], Awaitable[Optional[Any]]]


@dataclass(frozen=True)
class DataSource:
    name: SourceName
    fetcher: Fetcher
    ttl_s: float
    timeout_s: float

    def __post_init__(self):
        if self.ttl_s <= 0:
            raise ValueError(f"ttl_s must be positive. Got: {self.ttl_s}")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive. Got: {self.timeout_s}")


# Expected payload type per source
PAYLOAD_TYPES = {
    SourceName.JPL_HORIZONS: PreciseEphemeris,
    SourceName.THESKYLIVE: ObservationalParams,
    SourceName.COBS: CommunityBrightness,
    SourceName.MPC: OrbitalElements,
}


def build_sources(settings: TrackerSettings,
                  jpl_horizons: Optional[Fetcher] = None,
                  theskylive: Optional[Fetcher] = None,
                  cobs: Optional[Fetcher] = None,
                  mpc: Optional[Fetcher] = None) -> List[DataSource]:
    """
    Wire the configured fetchers to their TTLs and timeouts. Sources without a
    fetcher are left out.
    """
    table = [
        (SourceName.JPL_HORIZONS, jpl_horizons, settings.jpl_horizons_ttl_s, settings.jpl_horizons_timeout_s),
        (SourceName.THESKYLIVE, theskylive, settings.theskylive_ttl_s, settings.theskylive_timeout_s),
        (SourceName.COBS, cobs, settings.cobs_ttl_s, settings.cobs_timeout_s),
        (SourceName.MPC, mpc, settings.mpc_ttl_s, settings.mpc_timeout_s),
    ]
    return [
        DataSource(name=name, fetcher=fetcher, ttl_s=ttl, timeout_s=timeout)
        for name, fetcher, ttl, timeout in table
        if fetcher is not None
    ]
