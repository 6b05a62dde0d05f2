import datetime

import pytest

from skyplan.engine.frames import angular_separation
from skyplan.ephemeris import AstropyEphemeris, ElementsEphemeris
from skyplan.types import EclipseKind, Epoch, GeoObserver, Instant, NamedBody


def _utc(*args):
    return Instant(datetime.datetime(*args, tzinfo=datetime.timezone.utc))


@pytest.fixture(scope="module")
def astropy_provider():
    return AstropyEphemeris()


@pytest.mark.integration
def test_astropy_is_available(astropy_provider):
    result = astropy_provider.is_available()
    assert result["ok"] is True
    assert "builtin" in result["detail"]


@pytest.mark.integration
def test_astropy_sun_at_equinox(astropy_provider):
    sun = astropy_provider.equatorial_position(NamedBody.SUN, _utc(2024, 3, 20, 3, 6))
    ra_deg = sun.right_ascension_deg
    assert min(ra_deg, 360.0 - ra_deg) < 0.05
    assert sun.declination_deg == pytest.approx(0.0, abs=0.02)
    assert sun.epoch is Epoch.OF_DATE


@pytest.mark.integration
@pytest.mark.parametrize(
    "body",
    [NamedBody.SUN, NamedBody.MOON, NamedBody.MARS, NamedBody.JUPITER, NamedBody.SATURN],
)
def test_backends_agree(astropy_provider, body):
    instant = _utc(2024, 9, 1, 0, 0)
    precise = astropy_provider.equatorial_position(body, instant)
    rough = ElementsEphemeris().equatorial_position(body, instant)
    assert angular_separation(precise, rough) < 0.3


@pytest.mark.integration
def test_astropy_topocentric_moon(astropy_provider):
    instant = _utc(2024, 2, 10, 4, 0)
    observer = GeoObserver(40.0, -74.0)
    geocentric = astropy_provider.equatorial_position(NamedBody.MOON, instant)
    topocentric = astropy_provider.equatorial_position(NamedBody.MOON, instant, observer)
    assert 0.0 < angular_separation(geocentric, topocentric) < 1.1


@pytest.mark.integration
def test_astropy_eclipse_search(astropy_provider):
    descriptor = astropy_provider.search_eclipse(_utc(2025, 3, 1))
    assert descriptor.kind is EclipseKind.TOTAL
    assert abs(descriptor.peak.days_until(_utc(2025, 3, 14, 6, 58))) * 1440.0 < 10.0
