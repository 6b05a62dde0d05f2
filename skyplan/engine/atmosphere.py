"""Atmospheric refraction, extinction and air mass.

Simplified single-band models: Bennett's refraction formula scaled for
temperature, pressure and humidity, Young's (1994) air-mass polynomial and a
linear extinction coefficient.
"""

import math

from skyplan.errors import InvalidInput
from skyplan.types import AtmosphericCorrection, AtmosphericState

REFERENCE_TEMPERATURE_K = 288.15
REFERENCE_PRESSURE_MBAR = 1013.25
EXTINCTION_COEFFICIENT = 0.2

REFRACTION_NOTES = (
    (0.5, "negligible refraction"),
    (2.0, "minor refraction"),
    (10.0, "significant refraction"),
    (math.inf, "severe refraction near the horizon"),
)
AIR_MASS_NOTES = (
    (1.5, "thin atmosphere path"),
    (2.0, "moderate atmosphere path"),
    (4.0, "thick atmosphere path"),
    (math.inf, "very thick atmosphere path"),
)
EXTINCTION_NOTES = (
    (0.3, "low extinction"),
    (0.6, "moderate extinction"),
    (1.0, "high extinction"),
    (math.inf, "severe extinction"),
)


def _check_altitude(altitude_deg: float) -> float:
    if altitude_deg is None or not math.isfinite(altitude_deg):
        raise InvalidInput(f"altitude must be finite, got {altitude_deg!r}")
    if altitude_deg < -90.0 or altitude_deg > 90.0:
        raise InvalidInput(f"altitude must be within [-90, 90], got {altitude_deg}")
    return float(altitude_deg)


def _bennett_arcmin(altitude_deg: float) -> float:
    return 1.0 / math.tan(math.radians(altitude_deg + 7.31 / (altitude_deg + 4.4)))


# Bennett's formula dips just below zero at the zenith; shifting by this
# value makes refraction exactly 0 there.
_BENNETT_AT_ZENITH = _bennett_arcmin(90.0)


def refraction(
    apparent_altitude_deg: float,
    temperature_c: float = 15.0,
    pressure_mbar: float = REFERENCE_PRESSURE_MBAR,
    humidity_pct: float = 0.0,
) -> float:
    """Refraction in arcminutes for an apparent altitude in degrees."""
    alt = _check_altitude(apparent_altitude_deg)
    if alt <= 0.0:
        return 0.0

    base = _bennett_arcmin(alt) - _BENNETT_AT_ZENITH
    temperature_factor = REFERENCE_TEMPERATURE_K / (273.15 + temperature_c)
    pressure_factor = pressure_mbar / REFERENCE_PRESSURE_MBAR
    humidity_factor = 1.0 - (humidity_pct / 100.0) * 0.05
    value = base * temperature_factor * pressure_factor * humidity_factor

    if alt < 5.0:
        value *= 1.0 + math.exp(-alt / 2.0) * 0.2

    return max(0.0, value)


def air_mass(altitude_deg: float) -> float:
    alt = _check_altitude(altitude_deg)
    if alt <= 0.0:
        return math.inf

    c = math.cos(math.radians(90.0 - alt))
    numerator = 1.002432 * c * c + 0.148386 * c + 0.0096467
    denominator = c * c * c + 0.149864 * c * c + 0.0102963 * c + 0.000303978
    value = numerator / denominator

    if alt < 10.0:
        value *= 1.0 + math.exp(-(alt - 2.0) / 3.0)

    return max(1.0, value)


def extinction(altitude_deg: float, humidity_pct: float = 0.0) -> float:
    """Extinction in magnitudes at the given altitude."""
    mass = air_mass(altitude_deg)
    if math.isinf(mass):
        return math.inf
    return EXTINCTION_COEFFICIENT * mass * (1.0 + (humidity_pct / 100.0) * 0.3)


def apparent_altitude(true_altitude_deg: float, state: AtmosphericState | None = None) -> float:
    """Lift a geometric altitude by refraction."""
    state = state or AtmosphericState()
    alt = _check_altitude(true_altitude_deg)
    # Bennett's formula takes the apparent altitude; one refinement pass
    # converges well below the formula's own accuracy.
    r = _refraction_for(alt, state)
    r = _refraction_for(min(90.0, alt + r / 60.0), state)
    return min(90.0, alt + r / 60.0)


def _refraction_for(altitude_deg: float, state: AtmosphericState) -> float:
    return refraction(altitude_deg, state.temperature_c, state.pressure_mbar, state.humidity_pct)


def _note(table, value: float) -> str:
    for limit, label in table:
        if value < limit:
            return label
    return table[-1][1]


def correct(apparent_altitude_deg: float, state: AtmosphericState | None = None) -> AtmosphericCorrection:
    state = state or AtmosphericState()
    alt = _check_altitude(apparent_altitude_deg)
    r = _refraction_for(alt, state)
    mass = air_mass(alt)
    ext = extinction(alt, state.humidity_pct)

    notes = []
    if alt <= 0.0:
        notes.append("below the horizon")
    else:
        notes.append(_note(REFRACTION_NOTES, r))
        notes.append(_note(AIR_MASS_NOTES, mass))
        notes.append(_note(EXTINCTION_NOTES, ext))

    return AtmosphericCorrection(
        apparent_altitude_deg=alt,
        true_altitude_deg=alt - r / 60.0,
        refraction_arcmin=r,
        extinction_mag=ext,
        air_mass=mass,
        notes=notes,
    )
