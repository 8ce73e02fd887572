"""
Tests for coordinate frame transformations.
"""
import math
import random

import pytest

from atlas_tracker.core.frames import (
    rot1, rot3,
    dot, add, sub, scale, norm,
    equatorial_to_ecliptic, ecliptic_to_equatorial,
    perifocal_to_ecliptic,
    heliocentric_to_radec, radec_to_heliocentric,
    angular_separation_arcsec, angular_to_linear_distance_au,
)
from atlas_tracker.core.constants import OBLIQUITY_J2000_DEG


OBL = math.radians(OBLIQUITY_J2000_DEG)


class TestVectorOperations:
    def test_dot_product(self):
        a = (1.0, 2.0, 3.0)
        b = (4.0, 5.0, 6.0)
        assert dot(a, b) == 32.0

    def test_add_and_sub(self):
        a = (5.0, 7.0, 9.0)
        b = (2.0, 3.0, 4.0)
        assert sub(a, b) == (3.0, 4.0, 5.0)
        assert add(a, b) == (7.0, 10.0, 13.0)

    def test_scale(self):
        assert scale((1.0, -2.0, 0.5), 2.0) == (2.0, -4.0, 1.0)

    def test_norm(self):
        assert norm((3.0, 4.0, 0.0)) == 5.0
        assert norm((1.0, 0.0, 0.0)) == 1.0


class TestRotations:
    def test_rot3_90_degrees(self):
        result = rot3(math.pi / 2, (1.0, 0.0, 0.0))
        assert abs(result[0]) < 1e-10
        assert abs(result[1] - 1.0) < 1e-10
        assert abs(result[2]) < 1e-10

    def test_rot1_90_degrees(self):
        result = rot1(math.pi / 2, (0.0, 1.0, 0.0))
        assert abs(result[0]) < 1e-10
        assert abs(result[1]) < 1e-10
        assert abs(result[2] - 1.0) < 1e-10

    def test_identity(self):
        v = (1.0, 2.0, 3.0)
        assert rot1(0.0, v) == v
        assert rot3(0.0, v) == v


class TestEquatorialEcliptic:
    def test_x_axis_unchanged(self):
        x, y, z = equatorial_to_ecliptic(1.0, 0.0, 0.0)
        assert x == pytest.approx(1.0)
        assert y == pytest.approx(0.0, abs=1e-12)
        assert z == pytest.approx(0.0, abs=1e-12)

    def test_y_axis(self):
        x, y, z = equatorial_to_ecliptic(0.0, 1.0, 0.0)
        assert x == pytest.approx(0.0, abs=1e-12)
        assert y == pytest.approx(math.cos(OBL))
        assert z == pytest.approx(-math.sin(OBL))

    def test_z_axis(self):
        x, y, z = equatorial_to_ecliptic(0.0, 0.0, 1.0)
        assert y == pytest.approx(math.sin(OBL))
        assert z == pytest.approx(math.cos(OBL))

    def test_preserves_magnitude(self):
        rng = random.Random(7)
        for _ in range(50):
            v = (rng.uniform(-10, 10), rng.uniform(-10, 10), rng.uniform(-10, 10))
            assert norm(equatorial_to_ecliptic(*v)) == pytest.approx(norm(v), rel=1e-12)

    def test_inverse(self):
        v = (1.5, 2.3, -0.8)
        back = equatorial_to_ecliptic(*ecliptic_to_equatorial(*v))
        for a, b in zip(back, v):
            assert a == pytest.approx(b, abs=1e-12)


class TestPerifocal:
    def test_matches_closed_form_rotation(self):
        node, inc, argp = math.radians(322.27219), math.radians(175.11669), math.radians(127.79317)
        x_orb, y_orb = 1.2, -0.4

        x, y, z = perifocal_to_ecliptic((x_orb, y_orb, 0.0), node, inc, argp)

        co, so = math.cos(argp), math.sin(argp)
        cn, sn = math.cos(node), math.sin(node)
        ci, si = math.cos(inc), math.sin(inc)
        assert x == pytest.approx((cn*co - sn*so*ci) * x_orb + (-cn*so - sn*co*ci) * y_orb)
        assert y == pytest.approx((sn*co + cn*so*ci) * x_orb + (-sn*so + cn*co*ci) * y_orb)
        assert z == pytest.approx((so*si) * x_orb + (co*si) * y_orb)


class TestRaDec:
    EARTH_EQ = (0.3, -0.87, -0.38)

    def test_round_trip(self):
        for ra, dec in [(123.456, -12.34), (0.5, 45.0), (359.9, -89.0), (270.0, 0.0)]:
            helio = radec_to_heliocentric(ra, dec, 2.5, self.EARTH_EQ)
            ra2, dec2 = heliocentric_to_radec(helio, self.EARTH_EQ)
            assert abs(((ra2 - ra) + 180.0) % 360.0 - 180.0) < 1e-6
            assert abs(dec2 - dec) < 1e-6

    def test_ra_normalized(self):
        earth = (0.0, 0.0, 0.0)
        # Straight down -Y in equatorial coordinates => RA 270
        comet_ecl = equatorial_to_ecliptic(0.0, -2.0, 0.0)
        ra, dec = heliocentric_to_radec(comet_ecl, earth)
        assert 0.0 <= ra < 360.0
        assert ra == pytest.approx(270.0)
        assert dec == pytest.approx(0.0, abs=1e-9)

    def test_rejects_invalid_declination(self):
        with pytest.raises(ValueError, match="Declination must be in range"):
            radec_to_heliocentric(10.0, 95.0, 1.0, self.EARTH_EQ)

    def test_rejects_non_positive_distance(self):
        with pytest.raises(ValueError, match="Geocentric distance must be positive"):
            radec_to_heliocentric(10.0, 10.0, 0.0, self.EARTH_EQ)

    def test_rejects_nan_ra(self):
        with pytest.raises(ValueError, match="Right ascension must be finite"):
            radec_to_heliocentric(float("nan"), 10.0, 1.0, self.EARTH_EQ)

    def test_rejects_non_finite_vectors(self):
        with pytest.raises(ValueError, match="finite 3-vector"):
            heliocentric_to_radec((float("inf"), 0.0, 0.0), self.EARTH_EQ)

    def test_coincident_positions(self):
        earth_eq = (1.0, 0.0, 0.0)
        with pytest.raises(ValueError, match="coincide"):
            heliocentric_to_radec(equatorial_to_ecliptic(*earth_eq), earth_eq)


class TestAngularSeparation:
    def test_same_point_is_zero(self):
        # acos near 1 resolves no better than ~1.5e-8 rad (about 3 mas) in doubles
        assert angular_separation_arcsec(218.5, -11.43, 218.5, -11.43) == pytest.approx(0.0, abs=0.01)

    def test_one_degree_on_equator(self):
        assert angular_separation_arcsec(10.0, 0.0, 11.0, 0.0) == pytest.approx(3600.0, rel=1e-6)

    def test_pole_to_pole(self):
        assert angular_separation_arcsec(0.0, 90.0, 0.0, -90.0) == pytest.approx(648000.0, rel=1e-9)

    def test_never_nan(self):
        value = angular_separation_arcsec(45.0, 30.0, 45.0 + 1e-12, 30.0)
        assert not math.isnan(value)

    def test_rejects_invalid_input(self):
        with pytest.raises(ValueError):
            angular_separation_arcsec(0.0, 91.0, 0.0, 0.0)

    def test_linear_distance(self):
        # 1 radian at 2 AU -> 2 AU
        assert angular_to_linear_distance_au(206264.806247, 2.0) == pytest.approx(2.0)
