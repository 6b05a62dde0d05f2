import math

import pytest

from skyplan.engine.atmosphere import air_mass, apparent_altitude, correct, extinction, refraction
from skyplan.errors import InvalidInput
from skyplan.types import AtmosphericState


def test_refraction_at_horizon_is_about_half_a_degree():
    assert 30.0 < refraction(0.01) < 45.0


def test_refraction_is_zero_at_zenith():
    assert refraction(90.0) == pytest.approx(0.0, abs=1e-9)


def test_refraction_at_45_degrees():
    assert refraction(45.0) == pytest.approx(1.0, abs=0.1)


def test_refraction_decreases_with_altitude():
    values = [refraction(alt) for alt in (0.5, 1, 2, 5, 10, 20, 30, 45, 60, 75, 89)]
    assert all(a > b for a, b in zip(values, values[1:]))


def test_refraction_below_horizon_is_zero():
    assert refraction(-5.0) == 0.0


def test_refraction_scales_with_pressure_and_temperature():
    base = refraction(10.0)
    assert refraction(10.0, pressure_mbar=800.0) < base
    assert refraction(10.0, temperature_c=-20.0) > base


def test_refraction_rejects_out_of_range():
    with pytest.raises(InvalidInput):
        refraction(91.0)
    with pytest.raises(InvalidInput):
        refraction(math.nan)


def test_air_mass_is_one_at_zenith_and_grows_towards_horizon():
    assert air_mass(90.0) == pytest.approx(1.0, abs=1e-3)
    assert air_mass(30.0) == pytest.approx(2.0, abs=0.05)
    assert air_mass(5.0) > air_mass(30.0)
    assert math.isinf(air_mass(0.0))


def test_extinction_increases_with_humidity():
    assert extinction(30.0, humidity_pct=80.0) > extinction(30.0)
    assert math.isinf(extinction(-1.0))


def test_apparent_altitude_is_lifted():
    assert apparent_altitude(10.0) > 10.0
    assert apparent_altitude(90.0) == pytest.approx(90.0)
    assert apparent_altitude(-10.0) == pytest.approx(-10.0)


def test_correct_inverts_apparent_altitude():
    state = AtmosphericState(temperature_c=5.0, pressure_mbar=990.0, humidity_pct=40.0)
    lifted = apparent_altitude(20.0, state)
    result = correct(lifted, state)
    assert result.true_altitude_deg == pytest.approx(20.0, abs=0.01)
    assert result.apparent_altitude_deg == pytest.approx(lifted)
    assert len(result.notes) == 3


def test_correct_below_horizon_notes():
    result = correct(-2.0)
    assert result.refraction_arcmin == 0.0
    assert result.notes == ["below the horizon"]


def test_atmospheric_state_validation():
    with pytest.raises(InvalidInput):
        AtmosphericState(humidity_pct=120.0)
    with pytest.raises(InvalidInput):
        AtmosphericState(pressure_mbar=-1.0)
