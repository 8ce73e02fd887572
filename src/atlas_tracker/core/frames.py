from __future__ import annotations

import math
from typing import Tuple

from atlas_tracker.core.constants import ARCSEC_PER_RAD, OBLIQUITY_J2000_DEG

Vector3 = Tuple[float, float, float]

_OBLIQUITY_RAD = math.radians(OBLIQUITY_J2000_DEG)


def rot3(angle_rad: float, v: Vector3) -> Vector3:
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    x, y, z = v
    return (c * x - s * y, s * x + c * y, z)


def rot1(angle_rad: float, v: Vector3) -> Vector3:
    c = math.cos(angle_rad)
    s = math.sin(angle_rad)
    x, y, z = v
    return (x, c * y - s * z, s * y + c * z)


def dot(a: Vector3, b: Vector3) -> float:
    return a[0]*b[0] + a[1]*b[1] + a[2]*b[2]


def add(a: Vector3, b: Vector3) -> Vector3:
    return (a[0]+b[0], a[1]+b[1], a[2]+b[2])


def sub(a: Vector3, b: Vector3) -> Vector3:
    return (a[0]-b[0], a[1]-b[1], a[2]-b[2])


def scale(v: Vector3, k: float) -> Vector3:
    return (v[0]*k, v[1]*k, v[2]*k)


def norm(a: Vector3) -> float:
    return math.sqrt(dot(a, a))


def is_finite_vector(v: Vector3) -> bool:
    return all(math.isfinite(c) for c in v)


def _require_finite(v: Vector3, label: str) -> None:
    if len(v) != 3 or not is_finite_vector(v):
        raise ValueError(f"{label} must be a finite 3-vector. Got: {v}")


def equatorial_to_ecliptic(x: float, y: float, z: float) -> Vector3:
    """
    J2000 equatorial -> ecliptic: rotation by -obliquity about the X axis.
    Magnitude is preserved.
    """
    return rot1(-_OBLIQUITY_RAD, (x, y, z))


def ecliptic_to_equatorial(x: float, y: float, z: float) -> Vector3:
    """Inverse of equatorial_to_ecliptic."""
    return rot1(_OBLIQUITY_RAD, (x, y, z))


def perifocal_to_ecliptic(r_pqw: Vector3, node_rad: float, inc_rad: float, argp_rad: float) -> Vector3:
    """
    Rotate an orbital-plane (PQW) vector into the heliocentric ecliptic frame.

    Args:
        r_pqw: Vector in the perifocal frame (x towards periapsis)
        node_rad: Longitude of the ascending node (radians)
        inc_rad: Inclination (radians)
        argp_rad: Argument of periapsis (radians)

    Returns:
        Vector in ecliptic XYZ, R3(node) * R1(inc) * R3(argp) * r_pqw
    """
    v = rot3(argp_rad, r_pqw)
    v = rot1(inc_rad, v)
    return rot3(node_rad, v)


def _validate_radec(ra_deg: float, dec_deg: float) -> None:
    if not math.isfinite(ra_deg):
        raise ValueError(f"Right ascension must be finite. Got: {ra_deg}")
    if not math.isfinite(dec_deg) or not (-90.0 <= dec_deg <= 90.0):
        raise ValueError(f"Declination must be in range [-90, 90] degrees. Got: {dec_deg}")


def geocentric_equatorial(comet_helio_ecliptic: Vector3, earth_helio_equatorial: Vector3) -> Vector3:
    """Earth -> comet vector in the equatorial frame (AU)."""
    _require_finite(comet_helio_ecliptic, "Comet position")
    _require_finite(earth_helio_equatorial, "Earth position")
    comet_eq = ecliptic_to_equatorial(*comet_helio_ecliptic)
    return sub(comet_eq, earth_helio_equatorial)


def heliocentric_to_radec(comet_helio_ecliptic: Vector3, earth_helio_equatorial: Vector3) -> Tuple[float, float]:
    """
    Observer-centric sky position of a comet seen from Earth.

    Args:
        comet_helio_ecliptic: Comet heliocentric position, ecliptic J2000 (AU)
        earth_helio_equatorial: Earth heliocentric position, equatorial J2000 (AU)

    Returns:
        (ra_deg, dec_deg) with RA wrapped to [0, 360)
    """
    geo = geocentric_equatorial(comet_helio_ecliptic, earth_helio_equatorial)
    distance = norm(geo)
    if distance == 0.0:
        raise ValueError("Comet and Earth positions coincide; RA/Dec undefined.")

    ra = math.degrees(math.atan2(geo[1], geo[0])) % 360.0
    dec = math.degrees(math.asin(max(-1.0, min(1.0, geo[2] / distance))))
    return ra, dec


def radec_to_heliocentric(ra_deg: float, dec_deg: float, geocentric_distance_au: float,
                          earth_helio_equatorial: Vector3) -> Vector3:
    """
    Sky position + range -> heliocentric ecliptic position (AU).
    """
    _validate_radec(ra_deg, dec_deg)
    if not math.isfinite(geocentric_distance_au) or geocentric_distance_au <= 0.0:
        raise ValueError(f"Geocentric distance must be positive. Got: {geocentric_distance_au}")
    _require_finite(earth_helio_equatorial, "Earth position")

    ra = math.radians(ra_deg)
    dec = math.radians(dec_deg)
    unit: Vector3 = (math.cos(dec) * math.cos(ra), math.cos(dec) * math.sin(ra), math.sin(dec))

    helio_eq = add(earth_helio_equatorial, scale(unit, geocentric_distance_au))
    return equatorial_to_ecliptic(*helio_eq)


def angular_separation_arcsec(ra1_deg: float, dec1_deg: float, ra2_deg: float, dec2_deg: float) -> float:
    """Great-circle separation by the spherical law of cosines."""
    _validate_radec(ra1_deg, dec1_deg)
    _validate_radec(ra2_deg, dec2_deg)

    ra1, dec1 = math.radians(ra1_deg), math.radians(dec1_deg)
    ra2, dec2 = math.radians(ra2_deg), math.radians(dec2_deg)

    cos_angle = math.sin(dec1) * math.sin(dec2) + math.cos(dec1) * math.cos(dec2) * math.cos(ra1 - ra2)
    cos_angle = max(-1.0, min(1.0, cos_angle))
    return math.acos(cos_angle) * ARCSEC_PER_RAD


def angular_to_linear_distance_au(separation_arcsec: float, distance_au: float) -> float:
    """Small-angle approximation: linear offset at the given range."""
    if distance_au < 0:
        raise ValueError(f"Distance must be non-negative. Got: {distance_au}")
    return distance_au * (separation_arcsec / ARCSEC_PER_RAD)
