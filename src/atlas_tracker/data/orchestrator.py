"""
Multi-source orchestration: parallel cached fetches merged into one orbital state.

Every configured source gets its own task, cache slot and timeout. A failing
or slow source only degrades the merge; it never blocks the other sources or
raises to the caller. Merge priorities:

    distances  JPL Horizons > MPC elements (Kepler) > TheSkyLive > published elements
    velocity   JPL state vector > vis-viva from merged distance and elements
    magnitude  COBS > TheSkyLive > JPL Horizons
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from atlas_tracker.analysis.validation import cross_validate_elements
from atlas_tracker.config import TrackerSettings
from atlas_tracker.core.constants import au_per_day_to_km_s, km_s_to_au_per_day
from atlas_tracker.core.frames import Vector3, ecliptic_to_equatorial, heliocentric_to_radec, norm, radec_to_heliocentric, scale, sub
from atlas_tracker.core.errors import SourceFetchError
from atlas_tracker.core.timescale import days_between, ensure_utc, utc_now
from atlas_tracker.data.cache import EntryInfo, Failed, Fresh, SourceCache, cache_key
from atlas_tracker.data.sources import (
    PAYLOAD_TYPES,
    CommunityBrightness,
    DataSource,
    ObservationalParams,
    PreciseEphemeris,
    SourceName,
)
from atlas_tracker.objects.comet import ATLAS_3I_ELEMENTS
from atlas_tracker.physics.orbit import OrbitalElements, StateVector, state_at, vis_viva_speed_km_s
from atlas_tracker.physics.planets import EarthEphemeris, earth_state

logger = logging.getLogger(__name__)

# (uncertainty arcsec, prediction confidence) by best responding source
ACCURACY_TABLE = {
    SourceName.JPL_HORIZONS: (1.0, 0.95),
    SourceName.THESKYLIVE: (3.0, 0.85),
    SourceName.MPC: (5.0, 0.80),
}
DEFAULT_ACCURACY = (10.0, 0.70)

DISTANCE_FROM_PUBLISHED = "published_elements"
VELOCITY_FROM_VIS_VIVA = "vis_viva"


@dataclass(frozen=True)
class SourceStatus:
    active: bool
    last_updated: Optional[datetime] = None
    error: Optional[str] = None
    cached: bool = False


@dataclass(frozen=True)
class OrbitalState:
    """
    Merged physical state for one orchestration cycle. Distances in AU,
    velocities in km/s.
    """
    heliocentric_velocity_km_s: float
    geocentric_velocity_km_s: float
    heliocentric_distance_au: float
    geocentric_distance_au: float
    position_uncertainty_arcsec: float
    prediction_confidence: float
    source_statuses: Mapping[SourceName, SourceStatus]
    captured_at: datetime
    distance_source: str
    velocity_source: str
    heliocentric_state: Optional[StateVector] = None
    ra_deg: Optional[float] = None
    dec_deg: Optional[float] = None
    visual_magnitude: Optional[float] = None
    brightness_change_rate: float = 0.0
    magnitude_estimates: Mapping[SourceName, float] = field(default_factory=dict)

    @property
    def active_sources(self) -> List[SourceName]:
        return [name for name, status in self.source_statuses.items() if status.active]


@dataclass(frozen=True)
class _Fetched:
    payload: Any
    fetched_at: datetime


@dataclass(frozen=True)
class _Outcome:
    """Per-source result slot for one cycle."""
    name: SourceName
    payload: Optional[Any]
    status: SourceStatus


class DataSourceOrchestrator:
    """
    Fans out one fetch task per source, waits for all of them, and merges.
    """

    def __init__(self,
                 sources: Iterable[DataSource],
                 cache: Optional[SourceCache] = None,
                 settings: Optional[TrackerSettings] = None,
                 published_elements: OrbitalElements = ATLAS_3I_ELEMENTS,
                 earth_ephemeris: EarthEphemeris = earth_state,
                 now: Callable[[], datetime] = utc_now):
        """
        Args:
            sources: Configured sources; names must be unique
            cache: Shared cache; a private one is created if omitted
            settings: TTL/timeout policy (failed-request TTL is read from here)
            published_elements: Reference elements, the floor of service
            earth_ephemeris: Heliocentric ecliptic Earth state provider
            now: Wall clock, UTC
        """
        self.sources: List[DataSource] = list(sources)
        names = [s.name for s in self.sources]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate source names: {names}")

        self.settings = settings or TrackerSettings()
        self.cache = cache if cache is not None else SourceCache()
        self.published_elements = published_elements
        self.earth_ephemeris = earth_ephemeris
        self._now = now
        # Fetches still running, per cache key; overlapping cycles await the same task
        self._in_flight: Dict[str, "asyncio.Future[_Outcome]"] = {}

    # ------------------------------------------------------------------ fetch

    async def fetch_orbital_state(self) -> OrbitalState:
        """
        One orchestration cycle. Returns a best-effort state even when every
        source is down; only a critical data inconsistency raises.
        """
        now = ensure_utc(self._now())
        logger.debug("Starting fetch cycle for %d sources", len(self.sources))

        outcomes = await asyncio.gather(*(self._fetch_with_cache(source) for source in self.sources))
        slots = {outcome.name: outcome for outcome in outcomes}

        logger.info("Source results: %s", ", ".join(
            f"{o.name.value}={'ok' if o.status.active else 'failed'}" for o in outcomes))
        return self._merge(slots, now)

    def fetch_orbital_state_sync(self) -> OrbitalState:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.fetch_orbital_state())

    async def _fetch_with_cache(self, source: DataSource) -> _Outcome:
        key = cache_key(source.name.value)
        entry = self.cache.get(key)

        if isinstance(entry, Fresh):
            logger.debug("Cache hit for %s", source.name.value)
            fetched: _Fetched = entry.data
            return _Outcome(source.name, fetched.payload,
                            SourceStatus(active=True, last_updated=fetched.fetched_at, cached=True))
        if isinstance(entry, Failed):
            logger.debug("Cached failure for %s: %s", source.name.value, entry.reason)
            return _Outcome(source.name, None, SourceStatus(active=False, error=entry.reason, cached=True))

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_fresh(source, key))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._forget_in_flight(key, done))
        else:
            logger.debug("Joining in-flight fetch for %s", source.name.value)
        # Shielded so one cancelled cycle does not cancel the fetch for the others
        return await asyncio.shield(task)

    def _forget_in_flight(self, key: str, task: "asyncio.Future[_Outcome]") -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _fetch_fresh(self, source: DataSource, key: str) -> _Outcome:
        logger.debug("Fetching fresh data for %s", source.name.value)
        try:
            payload = await asyncio.wait_for(source.fetcher(), timeout=source.timeout_s)
            self._check_payload(source.name, payload)
        except SourceFetchError as exc:
            reason = exc.reason
        except asyncio.TimeoutError:
            reason = f"timed out after {source.timeout_s:g}s"
        except Exception as exc:
            reason = f"{type(exc).__name__}: {exc}"
        else:
            fetched = _Fetched(payload=payload, fetched_at=ensure_utc(self._now()))
            self.cache.set(key, fetched, source.ttl_s)
            return _Outcome(source.name, payload,
                            SourceStatus(active=True, last_updated=fetched.fetched_at))

        logger.warning("Failed to fetch %s: %s", source.name.value, reason)
        self.cache.set_failed(key, reason, self.settings.failed_request_ttl_s)
        return _Outcome(source.name, None, SourceStatus(active=False, error=reason))

    @staticmethod
    def _check_payload(name: SourceName, payload: Any) -> None:
        if payload is None:
            raise SourceFetchError(name.value, "returned no data")
        expected = PAYLOAD_TYPES.get(name)
        if expected is not None and not isinstance(payload, expected):
            raise SourceFetchError(name.value, f"expected {expected.__name__}, got {type(payload).__name__}")

    # ------------------------------------------------------------------ merge

    def _merge(self, slots: Mapping[SourceName, _Outcome], now: datetime) -> OrbitalState:
        def payload(name: SourceName):
            outcome = slots.get(name)
            return outcome.payload if outcome is not None else None

        jpl: Optional[PreciseEphemeris] = payload(SourceName.JPL_HORIZONS)
        sky: Optional[ObservationalParams] = payload(SourceName.THESKYLIVE)
        cobs: Optional[CommunityBrightness] = payload(SourceName.COBS)
        mpc: Optional[OrbitalElements] = payload(SourceName.MPC)

        elements = self._reference_elements(mpc)
        earth = self.earth_ephemeris(now)
        earth_eq = ecliptic_to_equatorial(*earth.position)

        helio_au, geo_au, helio_state, position, distance_source = self._merge_distances(
            jpl, sky, mpc, earth, earth_eq, now)

        helio_v, geo_v, velocity_source = self._merge_velocity(jpl, helio_au, elements, earth, now)

        ra_deg, dec_deg = self._merge_sky_position(jpl, sky, position, earth_eq)

        estimates = self._magnitude_estimates(jpl, sky, cobs)
        visual_magnitude = next(
            (estimates[name] for name in (SourceName.COBS, SourceName.THESKYLIVE, SourceName.JPL_HORIZONS)
             if name in estimates),
            None,
        )

        uncertainty, confidence = DEFAULT_ACCURACY
        for name in (SourceName.JPL_HORIZONS, SourceName.THESKYLIVE, SourceName.MPC):
            if payload(name) is not None:
                uncertainty, confidence = ACCURACY_TABLE[name]
                break
        if jpl is not None and jpl.uncertainty_arcsec is not None:
            uncertainty = jpl.uncertainty_arcsec

        statuses = {name: outcome.status for name, outcome in slots.items()}

        return OrbitalState(
            heliocentric_velocity_km_s=helio_v,
            geocentric_velocity_km_s=geo_v,
            heliocentric_distance_au=helio_au,
            geocentric_distance_au=geo_au,
            position_uncertainty_arcsec=uncertainty,
            prediction_confidence=confidence,
            source_statuses=MappingProxyType(statuses),
            captured_at=now,
            distance_source=distance_source,
            velocity_source=velocity_source,
            heliocentric_state=helio_state,
            ra_deg=ra_deg,
            dec_deg=dec_deg,
            visual_magnitude=visual_magnitude,
            brightness_change_rate=brightness_change_rate(cobs),
            magnitude_estimates=MappingProxyType(estimates),
        )

    def _reference_elements(self, mpc: Optional[OrbitalElements]) -> OrbitalElements:
        if mpc is None:
            return self.published_elements
        report = cross_validate_elements(self.published_elements, mpc)
        for warning in report.warnings:
            logger.warning("MPC elements disagree with published solution: %s", warning)
        return mpc

    def _merge_distances(self, jpl: Optional[PreciseEphemeris], sky: Optional[ObservationalParams],
                         mpc: Optional[OrbitalElements], earth: StateVector, earth_eq: Vector3,
                         now: datetime) -> Tuple[float, float, Optional[StateVector], Optional[Vector3], str]:
        if jpl is not None:
            position = jpl.state.position
            geo = jpl.geocentric_distance_au
            if geo is None:
                geo = norm(sub(position, earth.position))
            return jpl.heliocentric_distance_au, geo, jpl.state, position, SourceName.JPL_HORIZONS.value

        if mpc is not None:
            state = state_at(mpc, now)
            return (state.distance_au, norm(sub(state.position, earth.position)),
                    state, state.position, SourceName.MPC.value)

        if sky is not None:
            position = radec_to_heliocentric(sky.ra_deg, sky.dec_deg, sky.geocentric_distance_au, earth_eq)
            return (sky.heliocentric_distance_au, sky.geocentric_distance_au,
                    None, position, SourceName.THESKYLIVE.value)

        logger.info("No live distance source; using published elements")
        state = state_at(self.published_elements, now)
        return (state.distance_au, norm(sub(state.position, earth.position)),
                state, state.position, DISTANCE_FROM_PUBLISHED)

    def _merge_velocity(self, jpl: Optional[PreciseEphemeris], helio_au: float,
                        elements: OrbitalElements, earth: StateVector,
                        now: datetime) -> Tuple[float, float, str]:
        if jpl is not None:
            helio_v = jpl.state.speed_km_s
            geo_v = au_per_day_to_km_s(norm(sub(jpl.state.velocity, earth.velocity)))
            return helio_v, geo_v, SourceName.JPL_HORIZONS.value

        # Raises CriticalDataError; deliberately not caught here
        helio_v = vis_viva_speed_km_s(helio_au, elements)

        # Direction of motion from the elements, magnitude from vis-viva
        model = state_at(elements, now)
        direction = scale(model.velocity, 1.0 / model.speed_au_day)
        helio_v_au_day = km_s_to_au_per_day(helio_v)
        relative = sub(scale(direction, helio_v_au_day), earth.velocity)
        return helio_v, au_per_day_to_km_s(norm(relative)), VELOCITY_FROM_VIS_VIVA

    @staticmethod
    def _merge_sky_position(jpl: Optional[PreciseEphemeris], sky: Optional[ObservationalParams],
                            position: Optional[Vector3], earth_eq: Vector3) -> Tuple[Optional[float], Optional[float]]:
        if jpl is not None and jpl.ra_deg is not None:
            return jpl.ra_deg, jpl.dec_deg
        if sky is not None:
            return sky.ra_deg, sky.dec_deg
        if position is not None:
            return heliocentric_to_radec(position, earth_eq)
        return None, None

    @staticmethod
    def _magnitude_estimates(jpl: Optional[PreciseEphemeris], sky: Optional[ObservationalParams],
                             cobs: Optional[CommunityBrightness]) -> Dict[SourceName, float]:
        estimates: Dict[SourceName, float] = {}
        if cobs is not None:
            magnitude = latest_magnitude(cobs)
            if magnitude is not None:
                estimates[SourceName.COBS] = magnitude
        if sky is not None and sky.magnitude_estimate is not None:
            estimates[SourceName.THESKYLIVE] = sky.magnitude_estimate
        if jpl is not None and jpl.magnitude is not None:
            estimates[SourceName.JPL_HORIZONS] = jpl.magnitude
        return estimates

    # ------------------------------------------------------------------ cache admin

    def clear_cache(self) -> None:
        """Force every source to refetch on the next cycle."""
        self.cache.clear()
        logger.info("All source caches cleared")

    def cache_status(self) -> Dict[SourceName, EntryInfo]:
        return {s.name: self.cache.describe(cache_key(s.name.value)) for s in self.sources}

    def close(self) -> None:
        self.cache.close()


def latest_magnitude(cobs: CommunityBrightness) -> Optional[float]:
    """Reported magnitude, else the most recent light-curve point."""
    if cobs.magnitude is not None:
        return cobs.magnitude
    if cobs.light_curve:
        return cobs.light_curve[-1].magnitude
    return None


def brightness_change_rate(cobs: Optional[CommunityBrightness]) -> float:
    """mag/day between the last two light-curve points (0.0 when undefined)."""
    if cobs is None or len(cobs.light_curve) < 2:
        return 0.0
    previous, latest = cobs.light_curve[-2], cobs.light_curve[-1]
    span_days = days_between(previous.date, latest.date)
    if span_days <= 0:
        return 0.0
    return (latest.magnitude - previous.magnitude) / span_days
