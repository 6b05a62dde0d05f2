import math

from skyplan.engine.astro import normalize_degrees
from skyplan.types import NamedBody

SUPERMOON_DISTANCE_KM = 361000.0
MOON_MEAN_DISTANCE_KM = 384400.0
MOON_MEAN_DIAMETER_ARCMIN = 31.1
MOON_MEAN_DISTANCE_AU = 0.00257

# Apparent diameter at 1 AU, arcseconds
PLANET_DIAMETER_AT_1AU_ARCSEC = {
    NamedBody.MERCURY: 6.74,
    NamedBody.VENUS: 16.92,
    NamedBody.MARS: 9.36,
    NamedBody.JUPITER: 196.94,
    NamedBody.SATURN: 165.60,
    NamedBody.URANUS: 65.14,
    NamedBody.NEPTUNE: 62.20,
}
SUN_DIAMETER_AT_1AU_ARCSEC = 1919.26

# Upper altitude bound (exclusive) -> category
ALTITUDE_CATEGORIES = (
    (-18.0, "below astronomical twilight"),
    (-12.0, "astronomical twilight depth"),
    (-6.0, "nautical twilight depth"),
    (0.0, "below horizon"),
    (10.0, "very low"),
    (20.0, "low"),
    (30.0, "moderate"),
    (60.0, "good"),
    (math.inf, "excellent"),
)

# Lower score bound (inclusive) -> label
QUALITY_LABELS = (
    (0.8, "excellent"),
    (0.6, "good"),
    (0.4, "fair"),
    (0.2, "poor"),
    (-math.inf, "very poor"),
)

CARDINAL_DIRECTIONS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

# Phase-angle bins of 45 deg centred on new, first quarter, full and last quarter
MOON_PHASE_NAMES = (
    "new moon",
    "waxing crescent",
    "first quarter",
    "waxing gibbous",
    "full moon",
    "waning gibbous",
    "last quarter",
    "waning crescent",
)

LUNAR_ALTITUDE_TIERS = ((0.0, 0.0), (10.0, 0.1), (20.0, 0.2), (30.0, 0.3), (math.inf, 0.4))
LUNAR_ILLUMINATION_TIERS = ((0.1, 0.05), (0.3, 0.2), (0.7, 0.2), (0.95, 0.15), (math.inf, 0.1))
# index into MOON_PHASE_NAMES -> score
LUNAR_PHASE_SCORES = (0.1, 0.4, 0.4, 0.3, 0.2, 0.3, 0.4, 0.4)


def is_circumpolar(declination_deg: float, latitude_deg: float) -> bool:
    """True when the target never sets for an observer at ``latitude_deg``."""
    if latitude_deg >= 0:
        return declination_deg > 90.0 - latitude_deg
    return declination_deg < -90.0 - latitude_deg


def never_rises(declination_deg: float, latitude_deg: float) -> bool:
    if latitude_deg >= 0:
        return declination_deg < latitude_deg - 90.0
    return declination_deg > 90.0 + latitude_deg


def tier_value(tiers, value: float) -> float:
    """Return the score of the first tier whose upper bound exceeds ``value``."""
    for upper, score in tiers:
        if value < upper:
            return score
    return tiers[-1][1]


def describe_altitude(altitude_deg: float) -> str:
    for upper, label in ALTITUDE_CATEGORIES:
        if altitude_deg < upper:
            return label
    return ALTITUDE_CATEGORIES[-1][1]


def quality_label(score: float) -> str:
    for lower, label in QUALITY_LABELS:
        if score >= lower:
            return label
    return QUALITY_LABELS[-1][1]


def cardinal_direction(azimuth_deg: float) -> str:
    index = int((normalize_degrees(azimuth_deg) + 22.5) // 45.0) % 8
    return CARDINAL_DIRECTIONS[index]


def moon_phase_index(phase_angle_deg: float) -> int:
    return int((normalize_degrees(phase_angle_deg) + 22.5) // 45.0) % 8


def moon_phase_name(phase_angle_deg: float) -> str:
    return MOON_PHASE_NAMES[moon_phase_index(phase_angle_deg)]


def angular_diameter_arcsec(body: NamedBody, distance_au: float) -> float:
    if body is NamedBody.MOON:
        return moon_angular_diameter_arcmin(distance_au) * 60.0
    if body is NamedBody.SUN:
        return SUN_DIAMETER_AT_1AU_ARCSEC / distance_au
    return PLANET_DIAMETER_AT_1AU_ARCSEC[body] / distance_au


def moon_angular_diameter_arcmin(distance_au: float) -> float:
    return MOON_MEAN_DIAMETER_ARCMIN * MOON_MEAN_DISTANCE_AU / distance_au


def is_supermoon(distance_km: float) -> bool:
    return distance_km < SUPERMOON_DISTANCE_KM


def supermoon_name(phase_angle_deg: float) -> str:
    return "super full moon" if abs(normalize_degrees(phase_angle_deg) - 180.0) < 90.0 else "super new moon"


def percent_larger(distance_km: float) -> float:
    """Apparent size gain over the Moon at its mean distance."""
    return (MOON_MEAN_DISTANCE_KM - distance_km) / MOON_MEAN_DISTANCE_KM * 100.0


def illuminated_fraction(phase_angle_deg: float) -> float:
    return (1.0 - math.cos(math.radians(phase_angle_deg))) / 2.0


def lunar_photography_quality(altitude_deg: float, phase_angle_deg: float, illumination: float) -> float:
    """Additive lunar score from altitude, phase and illumination tiers."""
    score = (
        tier_value(LUNAR_ALTITUDE_TIERS, altitude_deg)
        + LUNAR_PHASE_SCORES[moon_phase_index(phase_angle_deg)]
        + tier_value(LUNAR_ILLUMINATION_TIERS, illumination)
    )
    return max(0.0, min(1.0, score))
