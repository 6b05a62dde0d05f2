import datetime
import logging
import math

import pytest

from skyplan.config import Config
from skyplan.engine.position import GALACTIC_CENTER, POLARIS, SIGMA_OCTANTIS, PositionService, resolve_target
from skyplan.errors import InvalidInput
from skyplan.types import (
    CoordinateType,
    FixedPoint,
    GeoObserver,
    Instant,
    NamedBody,
    OppositionEvent,
    TimeWindow,
)

NEW_YORK = GeoObserver(40.0, -74.0)
EVENING = Instant(datetime.datetime(2024, 1, 16, 3, 0, tzinfo=datetime.timezone.utc))
START = Instant(datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc))


@pytest.fixture
def service(site_config, fake_provider):
    return PositionService(site_config, fake_provider)


def test_deep_sky_report(service):
    report = service.deep_sky_report("m42", instant=EVENING)
    assert report.name == "Orion Nebula"
    assert report.horizontal.altitude_deg > 20.0
    assert report.apparent_altitude_deg > report.horizontal.altitude_deg
    assert report.illumination is None
    assert report.angular_diameter_arcsec == pytest.approx(85.0 * 60.0)
    assert 0.0 <= report.score.value <= 1.0
    assert report.score.visible is True
    assert report.quality in {"excellent", "good", "fair", "poor", "very poor"}
    assert report.circumpolar is False
    rst = report.rise_set_transit
    assert rst.rise < rst.transit < rst.set


def test_unknown_deep_sky_object(service):
    with pytest.raises(InvalidInput):
        service.deep_sky_report("M999", instant=EVENING)


def test_body_report_has_illumination(service):
    report = service.report(NamedBody.JUPITER, NEW_YORK, EVENING, rise_set=False)
    assert report.name == "Jupiter"
    assert report.illumination is not None
    assert report.angular_diameter_arcsec == pytest.approx(196.94 / 4.6)
    assert report.rise_set_transit.rise is None


def test_report_needs_an_observer(fake_provider):
    service = PositionService(Config({}), fake_provider)
    with pytest.raises(InvalidInput):
        service.report(NamedBody.MARS, instant=EVENING)


def test_reports_drop_failed_queries(site_config, make_provider, caplog):
    service = PositionService(site_config, make_provider(fail_for={NamedBody.SATURN}))
    queries = [(body, NEW_YORK, EVENING) for body in (NamedBody.MARS, NamedBody.SATURN, NamedBody.VENUS)]
    with caplog.at_level(logging.WARNING):
        reports = service.reports(queries, rise_set=False)
    assert [r.name for r in reports] == ["Mars", "Venus"]
    assert "Saturn" in caplog.text


def test_reports_empty(service):
    assert service.reports([]) == []


def test_visible_planets_are_up_and_sorted(service):
    planets = service.visible_planets(NEW_YORK, EVENING)
    assert all(r.horizontal.altitude_deg > 0.0 for r in planets)
    magnitudes = [r.illumination.magnitude for r in planets]
    assert magnitudes == sorted(magnitudes)


def test_rise_set_uses_configured_horizon(fake_provider):
    low = PositionService(Config({"site": {"latitude_deg": 40.0, "longitude_deg": -74.0}}), fake_provider)
    high = PositionService(
        Config({"site": {"latitude_deg": 40.0, "longitude_deg": -74.0}, "search": {"horizon_deg": 15.0}}),
        fake_provider,
    )
    m31 = resolve_target("M31")
    assert high.rise_set_transit(m31, datetime.date(2024, 1, 15)).rise > low.rise_set_transit(
        m31, datetime.date(2024, 1, 15)
    ).rise


def test_conjunctions_use_configured_threshold(make_provider):
    provider = make_provider(
        tracks={
            NamedBody.MARS: (0.0, 0.5, 7.0, 1.5),
            NamedBody.JUPITER: (10.0, 0.0, 0.0, 5.0),
        }
    )
    window = TimeWindow(START, START.add_days(60))
    bodies = [NamedBody.MARS, NamedBody.JUPITER]
    strict = PositionService(Config({}), provider)
    loose = PositionService(Config({"search": {"conjunction_threshold_deg": 8.0}}), provider)
    assert strict.conjunctions(bodies, window) == []
    assert len(loose.conjunctions(bodies, window)) == 1


def test_periodic_events_default_to_outer_planets(make_provider, site_config):
    provider = make_provider(tracks={NamedBody.MARS: (110.0, 0.0, 0.0, 0.6)})
    service = PositionService(site_config, provider)
    events = service.periodic_events("opposition", None, TimeWindow(START, START.add_days(60)))
    assert events
    assert all(isinstance(e, OppositionEvent) for e in events)
    assert NamedBody.MARS in {e.body for e in events}
    assert events == sorted(events, key=lambda e: e.instant)


def test_transform_uses_configured_site(service):
    result = service.transform("equatorial", "horizontal", 5.58, -5.39, instant=EVENING)
    assert result.to_type is CoordinateType.HORIZONTAL
    assert result.second == pytest.approx(service.deep_sky_report("M42", instant=EVENING).horizontal.altitude_deg)


def test_atmospheric_correction_uses_config(fake_provider):
    cold = PositionService(Config({"atmosphere": {"temperature_c": -20.0}}), fake_provider)
    warm = PositionService(Config({"atmosphere": {"temperature_c": 30.0}}), fake_provider)
    assert cold.atmospheric_correction(5.0).refraction_arcmin > warm.atmospheric_correction(5.0).refraction_arcmin


def test_moon_report(service):
    report = service.moon_report(instant=START)
    assert report.phase_angle_deg == pytest.approx(180.0, abs=1e-6)
    assert report.phase_name == "full moon"
    assert report.illumination_fraction == pytest.approx(1.0)
    assert report.distance_km == pytest.approx(0.00257 * 149597870.7)
    assert report.supermoon is False
    assert report.angular_diameter_arcmin == pytest.approx(31.1)
    assert 0.0 <= report.photography_quality <= 1.0


def test_constellation_report(service):
    instant = Instant(datetime.datetime(2024, 1, 15, 12, 0, tzinfo=datetime.timezone.utc))
    report = service.constellation_report("orion", instant=instant)
    assert report.name == "Orion"
    assert report.objects == ["M42", "M43", "NGC 2024"]
    assert report.circumpolar is False
    darkness = service.darkness(datetime.date(2024, 1, 15), NEW_YORK)
    assert darkness is not None
    assert darkness[0] <= report.optimal_time <= darkness[1]


def test_constellation_never_rising_has_no_optimal_time(service):
    report = service.constellation_report("Crux", instant=EVENING)
    assert report.optimal_time is None
    assert report.rise_set_transit.rise is None


def test_galactic_center_report(service):
    report = service.galactic_center_report(instant=EVENING)
    assert report.name == GALACTIC_CENTER.name
    assert min(report.galactic.longitude_deg, 360.0 - report.galactic.longitude_deg) < 0.15


def test_meteor_shower_conditions(service):
    instant = Instant(datetime.datetime(2024, 12, 14, 7, 0, tzinfo=datetime.timezone.utc))
    conditions = service.meteor_shower_conditions("geminids", instant=instant)
    assert conditions.shower == "Geminids"
    assert conditions.active is True
    assert 0.0 <= conditions.score <= 1.0
    assert conditions.expected_rate_per_hour >= 0.0
    if conditions.radiant_altitude_deg <= 0.0:
        assert conditions.expected_rate_per_hour == 0.0


def test_resolve_target():
    assert resolve_target("Mars") is NamedBody.MARS
    assert resolve_target("ngc7000").catalog_id == "NGC 7000"
    assert resolve_target("orion").object_type == "constellation"
    coords = resolve_target("5:35:17, -5:23:28")
    assert isinstance(coords, FixedPoint)
    assert coords.coord.right_ascension_hours == pytest.approx(5.5881, abs=1e-4)
    assert coords.coord.declination_deg == pytest.approx(-5.3911, abs=1e-4)
    with pytest.raises(InvalidInput):
        resolve_target("Planet X")
    with pytest.raises(InvalidInput):
        resolve_target("5.5, 95")


def test_supermoons_use_configured_step(make_provider, site_config):
    provider = make_provider(tracks={NamedBody.MOON: (100.0, 13.1764, 2.0, 0.00238)})
    service = PositionService(site_config, provider)
    events = service.supermoons(TimeWindow(START.add_days(1), START.add_days(31)))
    assert [e.name for e in events] == ["super new moon", "super full moon"]


def test_lunar_windows_default_to_site(service):
    windows = service.lunar_windows(TimeWindow(START, START.add_days(2)))
    assert windows
    assert windows[0].quality == max(w.quality for w in windows)


def test_lunar_windows_need_an_observer(fake_provider):
    with pytest.raises(InvalidInput):
        PositionService(Config({}), fake_provider).lunar_windows(TimeWindow(START, START.add_days(2)))


def test_meteor_showers_across_new_year(service):
    start = Instant(datetime.datetime(2023, 12, 20, tzinfo=datetime.timezone.utc))
    events = service.meteor_showers(TimeWindow(start, start.add_days(16)))
    assert [e.shower for e in events] == ["Geminids", "Ursids", "Quadrantids"]
    assert [e.peak for e in events] == sorted(e.peak for e in events)
    geminids = events[0]
    assert geminids.peak.utc == datetime.datetime(2023, 12, 15, 4, 56, tzinfo=datetime.timezone.utc)
    assert geminids.activity_start == datetime.date(2023, 12, 7)
    assert geminids.activity_end == datetime.date(2023, 12, 21)
    assert geminids.zhr == 120
    assert geminids.radiant_altitude_deg > 30.0
    assert geminids.moon_illumination < 0.3
    assert geminids.optimal is True


def test_meteor_showers_quiet_window(service):
    start = Instant(datetime.datetime(2024, 2, 1, tzinfo=datetime.timezone.utc))
    assert service.meteor_showers(TimeWindow(start, start.add_days(20))) == []


def test_polar_alignment_north(service):
    result = service.polar_alignment(instant=EVENING)
    assert result.star == POLARIS.name
    assert result.pole_altitude_deg == pytest.approx(40.0)
    assert result.pole_azimuth_deg == 0.0
    assert result.offset_arcmin == pytest.approx(44.15, abs=0.01)
    assert math.hypot(result.alt_offset_arcmin, result.az_offset_arcmin) == pytest.approx(44.15, abs=0.5)
    assert 0.0 <= result.hour_angle_hours < 24.0
    assert 0.0 <= result.position_angle_deg < 360.0


def test_polar_alignment_south(service):
    result = service.polar_alignment(GeoObserver(-33.9, 151.2), EVENING)
    assert result.star == SIGMA_OCTANTIS.name
    assert result.pole_altitude_deg == pytest.approx(33.9)
    assert result.pole_azimuth_deg == 180.0
    assert result.offset_arcmin == pytest.approx(62.62, abs=0.01)
    assert math.hypot(result.alt_offset_arcmin, result.az_offset_arcmin) == pytest.approx(62.62, abs=0.7)


def test_star_trails(service):
    report = service.star_trails(2.0, instant=EVENING)
    assert report.rotation_deg == pytest.approx(30.0)
    assert report.trail_length_deg == pytest.approx(30.0 * math.cos(math.radians(40.0)))
    assert report.pole_altitude_deg == pytest.approx(40.0)
    assert service.star_trails(2.0, instant=EVENING, declination_deg=0.0).trail_length_deg == pytest.approx(30.0)


@pytest.mark.parametrize("hours, dec", [(0.0, None), (-1.0, None), (1.0, 95.0)])
def test_star_trails_reject_bad_input(service, hours, dec):
    with pytest.raises(InvalidInput):
        service.star_trails(hours, instant=EVENING, declination_deg=dec)
