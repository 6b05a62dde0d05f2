import datetime
import math

import pytest

from skyplan.engine.astro import local_sidereal_time_deg
from skyplan.engine.frames import (
    angular_separation,
    ecliptic_to_equatorial,
    equatorial_to_ecliptic,
    equatorial_to_galactic,
    galactic_to_equatorial,
    midpoint,
    to_equatorial,
    to_horizontal,
    transform_coordinates,
)
from skyplan.errors import InvalidInput
from skyplan.types import (
    CoordinateType,
    EclipticCoord,
    Epoch,
    EquatorialCoord,
    GalacticCoord,
    GeoObserver,
    HorizontalCoord,
    Instant,
)

INSTANT = Instant(datetime.datetime(2024, 3, 20, 3, 0, tzinfo=datetime.timezone.utc))
OBSERVER = GeoObserver(40.0, -74.0)


def _meridian_ra_hours(observer, instant):
    return local_sidereal_time_deg(instant.jd, observer.longitude_deg) / 15.0


def _angle_diff(a, b):
    d = abs(a - b) % 360.0
    return min(d, 360.0 - d)


def test_pole_altitude_equals_latitude():
    horizontal = to_horizontal(EquatorialCoord(3.0, 90.0), OBSERVER, INSTANT)
    assert horizontal.altitude_deg == pytest.approx(40.0, abs=1e-9)


def test_zenith_when_declination_matches_latitude_on_meridian():
    ra = _meridian_ra_hours(OBSERVER, INSTANT)
    horizontal = to_horizontal(EquatorialCoord(ra, 40.0), OBSERVER, INSTANT)
    assert horizontal.altitude_deg == pytest.approx(90.0, abs=1e-6)


def test_celestial_equator_culminates_due_south():
    ra = _meridian_ra_hours(OBSERVER, INSTANT)
    horizontal = to_horizontal(EquatorialCoord(ra, 0.0), OBSERVER, INSTANT)
    assert horizontal.altitude_deg == pytest.approx(50.0, abs=1e-6)
    assert horizontal.azimuth_deg == pytest.approx(180.0, abs=1e-6)


def test_rising_object_is_in_the_east():
    ra = _meridian_ra_hours(OBSERVER, INSTANT) + 6.0
    horizontal = to_horizontal(EquatorialCoord(ra, 0.0), OBSERVER, INSTANT)
    assert horizontal.altitude_deg == pytest.approx(0.0, abs=1e-6)
    assert horizontal.azimuth_deg == pytest.approx(90.0, abs=1e-6)


@pytest.mark.parametrize("ra,dec", [(0.0, 0.0), (5.5, -5.4), (13.2, 47.1), (20.0, -60.0)])
def test_horizontal_round_trip(ra, dec):
    source = EquatorialCoord(ra, dec)
    back = to_equatorial(to_horizontal(source, OBSERVER, INSTANT), OBSERVER, INSTANT)
    assert _angle_diff(back.right_ascension_deg, source.right_ascension_deg) < 1e-6
    assert back.declination_deg == pytest.approx(dec, abs=1e-6)


def test_horizontal_ignores_epoch_label():
    j2000 = to_horizontal(EquatorialCoord(5.5, -5.4, epoch=Epoch.J2000), OBSERVER, INSTANT)
    of_date = to_horizontal(EquatorialCoord(5.5, -5.4, epoch=Epoch.OF_DATE), OBSERVER, INSTANT)
    assert j2000 == of_date


def test_galactic_center_is_at_origin():
    galactic = equatorial_to_galactic(EquatorialCoord(17.759167, -29.007778))
    assert _angle_diff(galactic.longitude_deg, 0.0) < 0.15
    assert galactic.latitude_deg == pytest.approx(0.0, abs=0.15)


def test_galactic_pole():
    galactic = equatorial_to_galactic(EquatorialCoord(192.8595 / 15.0, 27.12825))
    assert galactic.latitude_deg == pytest.approx(90.0, abs=1e-6)


@pytest.mark.parametrize("l,b", [(0.0, 0.0), (45.0, 10.0), (200.0, -35.0), (300.0, 60.0)])
def test_galactic_round_trip(l, b):
    back = equatorial_to_galactic(galactic_to_equatorial(GalacticCoord(l, b)))
    assert _angle_diff(back.longitude_deg, l) < 1e-6
    assert back.latitude_deg == pytest.approx(b, abs=1e-6)


def test_summer_solstice_point_has_longitude_90():
    ecliptic = equatorial_to_ecliptic(EquatorialCoord(6.0, 23.4392911))
    assert ecliptic.longitude_deg == pytest.approx(90.0, abs=1e-6)
    assert ecliptic.latitude_deg == pytest.approx(0.0, abs=1e-6)


@pytest.mark.parametrize("lon,lat", [(10.0, 0.0), (123.0, 5.0), (275.0, -3.0)])
def test_ecliptic_round_trip(lon, lat):
    back = equatorial_to_ecliptic(ecliptic_to_equatorial(EclipticCoord(lon, lat)))
    assert _angle_diff(back.longitude_deg, lon) < 1e-6
    assert back.latitude_deg == pytest.approx(lat, abs=1e-6)


def test_ecliptic_uses_j2000_obliquity_for_any_date():
    coord = EquatorialCoord(6.0, 23.4392911)
    later = Instant(datetime.datetime(2050, 1, 1, tzinfo=datetime.timezone.utc))
    assert equatorial_to_ecliptic(coord, instant=later).latitude_deg == pytest.approx(0.0, abs=1e-9)
    result = transform_coordinates("equatorial", "ecliptic", 6.0, 23.4392911, instant=later)
    assert result.first == pytest.approx(90.0, abs=1e-6)
    assert result.second == pytest.approx(0.0, abs=1e-6)


def test_ecliptic_accepts_explicit_obliquity():
    ecliptic = equatorial_to_ecliptic(EquatorialCoord(6.0, 23.0), obliquity_deg=23.0)
    assert ecliptic.latitude_deg == pytest.approx(0.0, abs=1e-9)


def test_separation_across_ra_seam():
    assert angular_separation(EquatorialCoord(23.0, 0.0), EquatorialCoord(1.0, 0.0)) == pytest.approx(30.0, abs=1e-6)


def test_separation_identical_and_antipodal():
    a = EquatorialCoord(4.0, 20.0)
    assert angular_separation(a, a) == pytest.approx(0.0, abs=1e-6)
    assert angular_separation(EquatorialCoord(0.0, 0.0), EquatorialCoord(12.0, 0.0)) == pytest.approx(180.0)


def test_midpoint_wraps_ra():
    mid = midpoint(EquatorialCoord(23.5, 10.0), EquatorialCoord(0.5, 20.0))
    assert min(mid.right_ascension_hours, 24.0 - mid.right_ascension_hours) < 1e-9
    assert mid.declination_deg == pytest.approx(15.0)


def test_transform_equatorial_to_galactic():
    result = transform_coordinates("equatorial", "galactic", 17.759167, -29.007778)
    expected = equatorial_to_galactic(EquatorialCoord(17.759167, -29.007778))
    assert result.from_type is CoordinateType.EQUATORIAL
    assert result.to_type is CoordinateType.GALACTIC
    assert result.first == pytest.approx(expected.longitude_deg)
    assert result.second == pytest.approx(expected.latitude_deg)


def test_transform_horizontal_round_trip():
    forward = transform_coordinates("equatorial", "horizontal", 5.5, 20.0, OBSERVER, INSTANT)
    back = transform_coordinates("horizontal", "equatorial", forward.first, forward.second, OBSERVER, INSTANT)
    assert back.first == pytest.approx(5.5, abs=1e-6)
    assert back.second == pytest.approx(20.0, abs=1e-6)


def test_transform_horizontal_needs_site():
    with pytest.raises(InvalidInput):
        transform_coordinates("equatorial", "horizontal", 5.5, 20.0)


def test_transform_rejects_unknown_frame():
    with pytest.raises(InvalidInput):
        transform_coordinates("supergalactic", "equatorial", 1.0, 2.0)


def test_transform_validates_input_ranges():
    with pytest.raises(InvalidInput):
        transform_coordinates("equatorial", "galactic", 1.0, 95.0)
    with pytest.raises(InvalidInput):
        transform_coordinates("horizontal", "equatorial", 10.0, math.nan, OBSERVER, INSTANT)


def test_horizontal_coord_wraps_azimuth():
    assert HorizontalCoord(-10.0, 5.0).azimuth_deg == pytest.approx(350.0)
