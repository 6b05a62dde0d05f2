import datetime

import pytest

from skyplan.config import Config
from skyplan.engine.frames import ecliptic_to_equatorial
from skyplan.ephemeris.base import EphemerisProvider
from skyplan.types import EclipticCoord, Instant, NamedBody

FAKE_EPOCH = Instant(datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc))

# body -> (ecliptic longitude at FAKE_EPOCH, deg/day, ecliptic latitude, distance AU)
DEFAULT_TRACKS = {
    NamedBody.SUN: (280.0, 0.9856, 0.0, 0.983),
    NamedBody.MOON: (100.0, 13.1764, 2.0, 0.00257),
    NamedBody.MERCURY: (260.0, 1.2, 1.0, 0.8),
    NamedBody.VENUS: (240.0, 1.1, -1.0, 1.2),
    NamedBody.MARS: (270.0, 0.7, 0.5, 2.3),
    NamedBody.JUPITER: (35.0, 0.08, -1.0, 4.6),
    NamedBody.SATURN: (340.0, 0.1, -2.0, 10.2),
    NamedBody.URANUS: (50.0, 0.01, 0.0, 19.0),
    NamedBody.NEPTUNE: (355.0, 0.006, -1.0, 30.0),
}


class FakeEphemeris(EphemerisProvider):
    """Bodies moving uniformly in ecliptic longitude from FAKE_EPOCH."""

    name = "fake"

    def __init__(self, tracks=None, fail_for=()):
        self.tracks = dict(DEFAULT_TRACKS)
        if tracks:
            self.tracks.update(tracks)
        self.fail_for = set(fail_for)
        self.calls = 0

    def is_available(self) -> dict:
        return {"ok": True, "detail": "fake"}

    def equatorial_position(self, body, instant, observer=None):
        self.calls += 1
        if body in self.fail_for:
            raise RuntimeError(f"no data for {body.value}")
        lon0, rate, lat, distance = self.tracks[body]
        days = FAKE_EPOCH.days_until(instant)
        return ecliptic_to_equatorial(EclipticCoord(lon0 + rate * days, lat), distance_au=distance)


@pytest.fixture
def fake_provider():
    return FakeEphemeris()


@pytest.fixture
def make_provider():
    return FakeEphemeris


@pytest.fixture
def site_config():
    return Config(
        {
            "site": {"latitude_deg": 40.0, "longitude_deg": -74.0, "elevation_m": 10.0},
            "runtime": {"workers": 2},
        }
    )


def pytest_addoption(parser):
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run tests marked as integration",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: needs the astropy ephemeris backend")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--integration"):
        return

    for item in items:
        if "integration" in item.keywords:
            item.add_marker(
                pytest.mark.skip(
                    reason="need --integration option to run integration tests"
                )
            )
