import itertools

import pytest

from skyplan.engine.scoring import SkyGeometry, best_month, months_from_best, score_visibility
from skyplan.errors import InvalidInput
from skyplan.types import AtmosphericState, EquatorialCoord, FixedPoint, Illumination, NamedBody

M31 = FixedPoint("Andromeda Galaxy", EquatorialCoord(0.71, 41.27))


def test_below_horizon_scores_zero():
    score = score_visibility(M31, SkyGeometry(altitude_deg=-5.0))
    assert score.value == 0.0
    assert score.visible is False


def test_high_fixed_point_in_season_scores_well():
    score = score_visibility(M31, SkyGeometry(altitude_deg=70.0, right_ascension_hours=0.71), season=10)
    assert score.value == pytest.approx(0.4 + 0.3 + 0.3)
    assert score.visible is True
    assert set(score.factors) == {"altitude", "illumination", "season", "moon_interference", "extinction"}


def test_moonlight_reduces_score():
    dark = score_visibility(M31, SkyGeometry(altitude_deg=50.0))
    bright = score_visibility(M31, SkyGeometry(altitude_deg=50.0, moon_altitude_deg=60.0, moon_illumination=1.0))
    assert bright.value < dark.value
    assert bright.factors["moon_interference"] < 0.0


def test_moon_is_not_penalised_by_itself():
    illumination = Illumination(magnitude=-12.0, phase_fraction=0.5, phase_angle_deg=90.0)
    score = score_visibility(
        NamedBody.MOON,
        SkyGeometry(altitude_deg=40.0, moon_altitude_deg=40.0, moon_illumination=0.5),
        illumination,
    )
    assert score.factors["moon_interference"] == 0.0


def test_extinction_penalty_applies_near_horizon():
    atmosphere = AtmosphericState(humidity_pct=90.0)
    high = score_visibility(M31, SkyGeometry(altitude_deg=60.0), atmosphere=atmosphere)
    low = score_visibility(M31, SkyGeometry(altitude_deg=3.0), atmosphere=atmosphere)
    assert low.factors["extinction"] < high.factors["extinction"] <= 0.0


def test_invalid_season_is_rejected():
    with pytest.raises(InvalidInput):
        score_visibility(M31, SkyGeometry(altitude_deg=30.0), season=13)


@pytest.mark.parametrize(
    "altitude,phase,moon_alt,moon_illum,humidity",
    list(
        itertools.product(
            (0.5, 5.0, 15.0, 45.0, 89.0),
            (0.0, 0.3, 1.0),
            (-30.0, 10.0, 90.0),
            (0.0, 0.5, 1.0),
            (0.0, 100.0),
        )
    ),
)
def test_score_stays_in_unit_interval(altitude, phase, moon_alt, moon_illum, humidity):
    geometry = SkyGeometry(altitude_deg=altitude, moon_altitude_deg=moon_alt, moon_illumination=moon_illum)
    illumination = Illumination(magnitude=0.0, phase_fraction=phase, phase_angle_deg=0.0)
    atmosphere = AtmosphericState(humidity_pct=humidity)
    for target, season in ((NamedBody.MARS, None), (M31, 6), (NamedBody.MOON, None)):
        score = score_visibility(target, geometry, illumination, atmosphere, season=season)
        assert 0.0 <= score.value <= 1.0


def test_best_month_for_ra_zero_is_autumn():
    assert best_month(0.0) == pytest.approx(9.7)
    assert best_month(12.0) == pytest.approx(3.7)


def test_months_from_best_wraps_around_the_year():
    assert months_from_best(0.0, 9) == pytest.approx(0.2)
    assert months_from_best(22.0, 1) <= 6.0
