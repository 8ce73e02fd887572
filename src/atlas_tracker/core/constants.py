from __future__ import annotations

# Solar gravitational parameter (GM) in AU^3/day^2, used for orbital-plane mechanics
MU_SUN_AU3_DAY2: float = 2.9591220828559115e-4

# Solar gravitational parameter in km^3/s^2, used for the vis-viva velocity fallback
MU_SUN_KM3_S2: float = 1.32712440018e11

# Astronomical unit in km (IAU 2012)
AU_KM: float = 149597870.7

SECONDS_PER_DAY: float = 86400.0

# Mean obliquity of the ecliptic at J2000, degrees
OBLIQUITY_J2000_DEG: float = 23.4392811

ARCSEC_PER_RAD: float = 206264.806247


def au_per_day_to_km_s(v_au_day: float) -> float:
    """AU/day -> km/s."""
    return v_au_day * AU_KM / SECONDS_PER_DAY


def km_s_to_au_per_day(v_km_s: float) -> float:
    """km/s -> AU/day."""
    return v_km_s * SECONDS_PER_DAY / AU_KM
