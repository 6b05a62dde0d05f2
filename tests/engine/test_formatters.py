import datetime
import json

import pytest

from skyplan.engine.atmosphere import correct
from skyplan.engine.formatters import (
    format_correction_text,
    format_event_line,
    format_events_text,
    format_json,
    format_lunar_windows_text,
    format_meteor_calendar_text,
    format_polar_text,
    format_position_text,
    format_star_trails_text,
    format_supermoons_text,
    to_data,
)
from skyplan.engine.position import PositionService
from skyplan.types import (
    ConjunctionEvent,
    EclipseEvent,
    EclipseKind,
    Instant,
    NamedBody,
    OppositionEvent,
    SupermoonEvent,
)

PEAK = Instant(datetime.datetime(2025, 3, 14, 6, 58, tzinfo=datetime.timezone.utc))


@pytest.fixture
def report(site_config, fake_provider):
    service = PositionService(site_config, fake_provider)
    return service.deep_sky_report("M31", instant=Instant(datetime.datetime(2024, 10, 1, 4, 0)))


def test_format_json_is_plain_data(report):
    data = json.loads(format_json(report))
    assert data["name"] == "Andromeda Galaxy"
    assert data["instant"] == "2024-10-01T04:00:00+00:00"
    assert data["equatorial"]["epoch"] == "J2000"
    assert set(data["score"]["factors"]) >= {"altitude", "season"}


def test_to_data_maps_infinite_values_to_none():
    data = to_data(correct(-1.0))
    assert data["air_mass"] is None
    assert data["extinction_mag"] is None
    assert data["notes"] == ["below the horizon"]


def test_to_data_adds_event_kind():
    event = OppositionEvent(instant=PEAK, body=NamedBody.SATURN, distance_au=8.6)
    data = to_data(event)
    assert data["kind"] == "opposition"
    assert data["body"] == "saturn"


def test_position_text_mentions_key_fields(report):
    text = format_position_text(report)
    assert text.startswith("Andromeda Galaxy")
    assert "RA/Dec" in text
    assert "Score" in text


def test_event_lines():
    conjunction = ConjunctionEvent(PEAK, NamedBody.VENUS, NamedBody.JUPITER, 0.5, altitude_deg=12.0)
    opposition = OppositionEvent(PEAK, NamedBody.MARS, 0.64, magnitude=-1.4)
    eclipse = EclipseEvent(PEAK, EclipseKind.TOTAL, PEAK, PEAK, obscuration=1.0, visible=True)
    assert "Venus-Jupiter" in format_event_line(conjunction)
    assert "0.50°" in format_event_line(conjunction)
    assert "(30')" in format_event_line(conjunction)
    assert "mag -1.4" in format_event_line(opposition)
    assert "total lunar eclipse" in format_event_line(eclipse)
    assert "visible" in format_event_line(eclipse)
    assert len(format_events_text([conjunction, opposition, eclipse]).splitlines()) == 3


def test_no_events_text():
    assert format_events_text([]) == "No events found."


def test_correction_text_handles_horizon():
    text = format_correction_text(correct(-1.0))
    assert "n/a" in text


def test_supermoon_lines():
    event = SupermoonEvent(PEAK, "super full moon", 180.0, 357000.0, 33.5, 7.13)
    text = format_supermoons_text([event])
    assert "super full moon" in text
    assert "357,000 km" in text
    assert "+7.1%" in text
    assert format_supermoons_text([]) == "No supermoons in range."


def test_empty_window_texts():
    assert format_lunar_windows_text([]) == "No lunar windows found."
    assert format_meteor_calendar_text([]) == "No meteor showers in range."


def test_polar_and_trail_text(site_config, fake_provider):
    service = PositionService(site_config, fake_provider)
    polar = format_polar_text(service.polar_alignment(instant=PEAK))
    assert polar.startswith("Polaris")
    assert "Offset:       44.1'" in polar
    trails = format_star_trails_text(service.star_trails(1.5, instant=PEAK))
    assert "Rotation:  22.5°" in trails
    assert "Exposure:  1.5 h" in trails
