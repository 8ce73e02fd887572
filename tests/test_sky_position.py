"""
Tests for predicted sky positions and prediction offsets.
"""
from datetime import datetime, timezone

import pytest

from atlas_tracker.analysis.sky_position import predicted_sky_position, prediction_offset
from atlas_tracker.objects.comet import ATLAS_3I_ELEMENTS
from atlas_tracker.physics.orbit import StateVector


DISCOVERY_NIGHT = datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc)


def test_discovery_position_in_sagittarius():
    sky = predicted_sky_position(ATLAS_3I_ELEMENTS, DISCOVERY_NIGHT)
    assert 260.0 < sky.ra_deg < 282.0
    assert -28.0 < sky.dec_deg < -10.0
    assert sky.heliocentric_distance_au == pytest.approx(4.45, abs=0.15)
    assert 3.0 < sky.geocentric_distance_au < 3.9
    assert sky.when == DISCOVERY_NIGHT


def test_custom_earth_ephemeris():
    def earth(when):
        return StateVector((1.0, 0.0, 0.0), (0.0, 0.0172, 0.0))

    sky = predicted_sky_position(ATLAS_3I_ELEMENTS, ATLAS_3I_ELEMENTS.perihelion_time, earth_ephemeris=earth)
    assert sky.heliocentric_distance_au == pytest.approx(ATLAS_3I_ELEMENTS.q_au, rel=1e-9)
    assert 0.0 <= sky.ra_deg < 360.0


def test_offset_against_itself_is_zero():
    sky = predicted_sky_position(ATLAS_3I_ELEMENTS, DISCOVERY_NIGHT)
    offset = prediction_offset(sky.ra_deg, sky.dec_deg, sky)
    assert offset.separation_arcsec == pytest.approx(0.0, abs=1e-2)
    assert offset.linear_offset_au == pytest.approx(0.0, abs=1e-6)


def test_offset_one_arcminute():
    sky = predicted_sky_position(ATLAS_3I_ELEMENTS, DISCOVERY_NIGHT)
    offset = prediction_offset(sky.ra_deg, sky.dec_deg + 1.0 / 60.0, sky)
    assert offset.separation_arcsec == pytest.approx(60.0, rel=1e-4)
    assert offset.linear_offset_au == pytest.approx(sky.geocentric_distance_au * 60.0 / 206264.806, rel=1e-4)
