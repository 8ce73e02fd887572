"""
Runtime settings for the tracker core.

Defaults are the production values; each can be overridden through an
ATLAS_TRACKER_* environment variable.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Mapping, Optional

from atlas_tracker.core.timescale import ensure_utc
from atlas_tracker.objects.comet import ATLAS_3I_DISCOVERY

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

ENV_PREFIX = "ATLAS_TRACKER_"


def parse_timestamp(raw: str) -> datetime:
    """ISO 8601 instant; a trailing Z (UTC) is accepted on every supported Python."""
    text = raw.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class TrackerSettings:
    # Cache lifetimes, seconds
    cobs_ttl_s: float = 5 * 60
    theskylive_ttl_s: float = 15 * 60
    jpl_horizons_ttl_s: float = 30 * 60
    mpc_ttl_s: float = 24 * 60 * 60
    failed_request_ttl_s: float = 10 * 60

    # Per-source fetch timeouts, seconds
    cobs_timeout_s: float = 15.0
    theskylive_timeout_s: float = 15.0
    jpl_horizons_timeout_s: float = 30.0
    mpc_timeout_s: float = 20.0

    # Trajectory sampling
    trail_days: float = 180.0
    projection_days: float = 365.0
    sample_interval_days: float = 2.0
    max_distance_au: float = 100.0
    trail_floor: datetime = ATLAS_3I_DISCOVERY

    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self):
        for f in fields(self):
            if f.name.endswith("_s") or f.name.endswith("_days") or f.name == "max_distance_au":
                value = getattr(self, f.name)
                if not value > 0:
                    raise ValueError(f"{f.name} must be positive. Got: {value}")
        object.__setattr__(self, "trail_floor", ensure_utc(self.trail_floor))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TrackerSettings":
        """Build settings, letting ATLAS_TRACKER_<FIELD> variables override defaults."""
        env = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            if f.name == "log_level":
                overrides[f.name] = raw.upper()
            elif f.name == "trail_floor":
                overrides[f.name] = parse_timestamp(raw)
            else:
                try:
                    overrides[f.name] = float(raw)
                except ValueError:
                    raise ValueError(f"{ENV_PREFIX}{f.name.upper()} must be a number. Got: {raw!r}") from None
        return cls(**overrides)


def configure_logging(level: Optional[str] = None, fmt: str = DEFAULT_LOG_FORMAT) -> None:
    logging.basicConfig(level=(level or DEFAULT_LOG_LEVEL).upper(), format=fmt)
