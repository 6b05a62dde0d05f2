import math
from dataclasses import dataclass

from .atmosphere import extinction
from .visibility import tier_value
from skyplan.errors import InvalidInput
from skyplan.types import (
    AtmosphericState,
    CelestialTarget,
    FixedPoint,
    Illumination,
    NamedBody,
    VisibilityScore,
)

# (exclusive upper bound, score) tables; each factor stays inside its range
ALTITUDE_TIERS = ((0.0, 0.0), (10.0, 0.1), (20.0, 0.2), (30.0, 0.3), (math.inf, 0.4))
PLANET_PHASE_TIERS = ((0.1, 0.1), (0.5, 0.2), (math.inf, 0.3))
MOON_PHASE_TIERS = ((0.05, 0.1), (0.65, 0.3), (0.95, 0.2), (math.inf, 0.15))
SEASON_TIERS = ((1.0, 0.3), (2.0, 0.2), (3.0, 0.1), (math.inf, 0.05))
EXTINCTION_PENALTY_TIERS = ((0.5, 0.0), (1.0, 0.05), (2.0, 0.1), (math.inf, 0.2))

FIXED_POINT_ILLUMINATION = 0.3
UNKNOWN_ILLUMINATION = 0.15
SEASON_NEUTRAL = 0.2
MOON_PENALTY_WEIGHT = 0.3

# Month (1-based, fractional) when RA 0h culminates at local midnight
RA_ZERO_BEST_MONTH = 9.7


@dataclass
class SkyGeometry:
    altitude_deg: float
    azimuth_deg: float = 0.0
    right_ascension_hours: float | None = None
    moon_altitude_deg: float | None = None
    moon_illumination: float = 0.0


@dataclass
class ScoreComponents:
    altitude: float = 0.0
    illumination: float = 0.0
    season: float = 0.0
    moon_interference: float = 0.0
    extinction: float = 0.0

    def positive(self) -> float:
        return self.altitude + self.illumination + self.season

    def total(self) -> float:
        return self.positive() + self.moon_interference + self.extinction

    def as_dict(self) -> dict[str, float]:
        return {
            "altitude": self.altitude,
            "illumination": self.illumination,
            "season": self.season,
            "moon_interference": self.moon_interference,
            "extinction": self.extinction,
        }


def score_visibility(
    target: CelestialTarget,
    geometry: SkyGeometry,
    illumination: Illumination | None = None,
    atmosphere: AtmosphericState | None = None,
    season: int | None = None,
) -> VisibilityScore:
    """Photographability in [0, 1] as a sum of tiered factors.

    Altitude, illumination and season add to the score; moonlight and
    extinction subtract, but never by more than what the positive factors
    contributed. Targets at or below the horizon score 0.
    """
    if geometry.altitude_deg <= 0.0:
        return VisibilityScore(value=0.0, factors=ScoreComponents().as_dict(), visible=False)

    components = ScoreComponents(
        altitude=tier_value(ALTITUDE_TIERS, geometry.altitude_deg),
        illumination=_score_illumination(target, illumination),
        season=_score_season(target, geometry, season),
    )
    remaining = components.positive()
    components.moon_interference = -min(remaining, _moon_penalty(target, geometry))
    remaining += components.moon_interference
    if atmosphere is not None:
        mag = extinction(geometry.altitude_deg, atmosphere.humidity_pct)
        components.extinction = -min(remaining, tier_value(EXTINCTION_PENALTY_TIERS, mag))

    return VisibilityScore(
        value=_clamp(components.total()),
        factors=components.as_dict(),
        visible=True,
    )


def best_month(right_ascension_hours: float) -> float:
    """Fractional month in [1, 13) when the RA is highest at local midnight."""
    return (RA_ZERO_BEST_MONTH - 1.0 + right_ascension_hours / 2.0) % 12.0 + 1.0


def months_from_best(right_ascension_hours: float, month: int) -> float:
    mid_month = month + 0.5
    diff = abs(mid_month - best_month(right_ascension_hours)) % 12.0
    return min(diff, 12.0 - diff)


def _score_illumination(target: CelestialTarget, illumination: Illumination | None) -> float:
    if isinstance(target, FixedPoint):
        return FIXED_POINT_ILLUMINATION
    if illumination is None:
        return UNKNOWN_ILLUMINATION
    if target is NamedBody.MOON:
        return tier_value(MOON_PHASE_TIERS, illumination.phase_fraction)
    return tier_value(PLANET_PHASE_TIERS, illumination.phase_fraction)


def _score_season(target: CelestialTarget, geometry: SkyGeometry, season: int | None) -> float:
    if season is not None and not 1 <= season <= 12:
        raise InvalidInput(f"season must be a month 1-12, got {season!r}")
    # Solar-system bodies follow their synodic cycle, not the calendar
    if season is None or not isinstance(target, FixedPoint):
        return SEASON_NEUTRAL
    ra = geometry.right_ascension_hours
    if ra is None:
        ra = target.coord.right_ascension_hours
    return tier_value(SEASON_TIERS, months_from_best(ra, season))


def _moon_penalty(target: CelestialTarget, geometry: SkyGeometry) -> float:
    if target is NamedBody.MOON:
        return 0.0
    moon_alt = geometry.moon_altitude_deg
    if moon_alt is None or moon_alt <= 0.0:
        return 0.0
    illum = max(0.0, min(1.0, geometry.moon_illumination))
    return min(MOON_PENALTY_WEIGHT, illum * (moon_alt / 90.0) * MOON_PENALTY_WEIGHT)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))
