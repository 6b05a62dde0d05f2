from abc import ABC, abstractmethod
import logging
import math

from skyplan.engine.astro import clamp_unit, normalize_degrees, wrap_signed_degrees
from skyplan.engine.frames import angular_separation, equatorial_to_ecliptic
from skyplan.engine.roots import bisect_crossing, golden_minimum
from skyplan.errors import ProviderFailure, SkyplanError
from skyplan.types import (
    EclipseDescriptor,
    EclipseKind,
    EquatorialCoord,
    GeoObserver,
    Illumination,
    Instant,
    Libration,
    NamedBody,
)

logger = logging.getLogger(__name__)

AU_KM = 149597870.7
EARTH_RADIUS_KM = 6378.14
SUN_RADIUS_KM = 696000.0
MOON_RADIUS_KM = 1737.4
SYNODIC_MONTH_DAYS = 29.530588
# Chauvenet's enlargement of the geometric shadow for the atmosphere
SHADOW_ENLARGEMENT = 1.02
MOON_INCLINATION_DEG = 1.54242
MAX_ECLIPSE_LUNATIONS = 30

SUN_MAGNITUDE = -26.74

# H, then phase-angle coefficients for i, i^2, i^3 (degrees)
_MAGNITUDE_COEFFICIENTS = {
    NamedBody.MERCURY: (-0.42, 0.0380, -0.000273, 0.000002),
    NamedBody.VENUS: (-4.40, 0.0009, 0.000239, -0.00000065),
    NamedBody.MARS: (-1.52, 0.016, 0.0, 0.0),
    NamedBody.JUPITER: (-9.40, 0.005, 0.0, 0.0),
    NamedBody.SATURN: (-8.88, 0.0, 0.0, 0.0),
    NamedBody.URANUS: (-7.19, 0.0, 0.0, 0.0),
    NamedBody.NEPTUNE: (-6.87, 0.0, 0.0, 0.0),
}


def call_provider(fn, *args, **kwargs):
    """Invoke a provider method, converting foreign errors to ProviderFailure."""
    try:
        return fn(*args, **kwargs)
    except SkyplanError:
        raise
    except Exception as exc:
        name = getattr(fn, "__name__", repr(fn))
        raise ProviderFailure(f"{name} failed: {exc}") from exc


class EphemerisProvider(ABC):
    """Source of raw body positions.

    Subclasses supply ``equatorial_position``; illumination, libration, lunar
    phase and lunar-eclipse search are derived from those positions unless a
    backend has something better.
    """

    name: str

    @abstractmethod
    def equatorial_position(
        self,
        body: NamedBody,
        instant: Instant,
        observer: GeoObserver | None = None,
    ) -> EquatorialCoord:
        raise NotImplementedError

    def is_available(self) -> dict:
        """Return a dict with 'ok' (bool) and 'detail' (str) for doctor checks."""
        return {"ok": False, "detail": "not implemented"}

    def ecliptic_longitude(self, body: NamedBody, instant: Instant) -> float:
        return equatorial_to_ecliptic(self.equatorial_position(body, instant)).longitude_deg

    def illumination(self, body: NamedBody, instant: Instant) -> Illumination:
        if body is NamedBody.SUN:
            return Illumination(magnitude=SUN_MAGNITUDE, phase_fraction=1.0, phase_angle_deg=0.0)

        sun = self.equatorial_position(NamedBody.SUN, instant)
        target = self.equatorial_position(body, instant)
        elongation = math.radians(angular_separation(sun, target))
        earth_sun = sun.distance_au
        earth_body = target.distance_au
        sun_body = math.sqrt(
            earth_sun * earth_sun
            + earth_body * earth_body
            - 2.0 * earth_sun * earth_body * math.cos(elongation)
        )
        cos_phase = (sun_body * sun_body + earth_body * earth_body - earth_sun * earth_sun) / (
            2.0 * sun_body * earth_body
        )
        phase_angle = math.degrees(math.acos(clamp_unit(cos_phase)))
        return Illumination(
            magnitude=_magnitude(body, sun_body, earth_body, phase_angle),
            phase_fraction=(1.0 + math.cos(math.radians(phase_angle))) / 2.0,
            phase_angle_deg=phase_angle,
        )

    def moon_phase_angle(self, instant: Instant) -> float:
        """Elongation of the Moon from the Sun in ecliptic longitude, [0, 360)."""
        moon = self.ecliptic_longitude(NamedBody.MOON, instant)
        sun = self.ecliptic_longitude(NamedBody.SUN, instant)
        return normalize_degrees(moon - sun)

    def libration(self, instant: Instant) -> Libration:
        moon = self.equatorial_position(NamedBody.MOON, instant)
        ecliptic = equatorial_to_ecliptic(moon)
        t = instant.tt / 36525.0
        node = 125.0445479 - 1934.1362891 * t + 0.0020754 * t * t
        arg_latitude = 93.2720950 + 483202.0175233 * t - 0.0036539 * t * t

        w = math.radians(ecliptic.longitude_deg - node)
        beta = math.radians(ecliptic.latitude_deg)
        inc = math.radians(MOON_INCLINATION_DEG)
        a = math.atan2(
            math.sin(w) * math.cos(beta) * math.cos(inc) - math.sin(beta) * math.sin(inc),
            math.cos(w) * math.cos(beta),
        )
        sin_b = -math.sin(w) * math.cos(beta) * math.sin(inc) - math.sin(beta) * math.cos(inc)
        return Libration(
            latitude_deg=math.degrees(math.asin(clamp_unit(sin_b))),
            longitude_deg=wrap_signed_degrees(math.degrees(a) - arg_latitude),
        )

    def search_eclipse(self, start: Instant) -> EclipseDescriptor | None:
        """Next lunar eclipse peaking after ``start``, or None within 30 lunations."""
        cursor = start
        for _ in range(MAX_ECLIPSE_LUNATIONS):
            full_moon = self._next_full_moon(cursor)
            descriptor = self._lunar_eclipse_near(full_moon)
            if descriptor is not None and descriptor.peak >= start:
                return descriptor
            cursor = full_moon.add_days(SYNODIC_MONTH_DAYS - 4.0)
        logger.debug("No lunar eclipse within %d lunations of %s", MAX_ECLIPSE_LUNATIONS, start)
        return None

    def _next_full_moon(self, start: Instant) -> Instant:
        def offset(t: Instant) -> float:
            return wrap_signed_degrees(self.moon_phase_angle(t) - 180.0)

        t0 = start
        v0 = offset(t0)
        for _ in range(int(SYNODIC_MONTH_DAYS) + 2):
            t1 = t0.add_days(1.0)
            v1 = offset(t1)
            if v0 < 0.0 <= v1 and v1 - v0 < 180.0:
                return bisect_crossing(offset, t0, t1, v0, tolerance_s=60.0)
            t0, v0 = t1, v1
        raise ProviderFailure(f"no full moon found within a lunation of {start}")

    def _shadow_gap(self, instant: Instant) -> float:
        """Angular distance between the Moon and the anti-solar point."""
        sun = self.equatorial_position(NamedBody.SUN, instant)
        moon = self.equatorial_position(NamedBody.MOON, instant)
        anti_sun = EquatorialCoord(
            right_ascension_hours=sun.right_ascension_hours + 12.0,
            declination_deg=-sun.declination_deg,
            distance_au=sun.distance_au,
            epoch=sun.epoch,
        )
        return angular_separation(moon, anti_sun)

    def _lunar_eclipse_near(self, full_moon: Instant) -> EclipseDescriptor | None:
        peak = golden_minimum(self._shadow_gap, full_moon.add_days(-0.25), full_moon.add_days(0.25))
        gap = self._shadow_gap(peak)

        sun = self.equatorial_position(NamedBody.SUN, peak)
        moon = self.equatorial_position(NamedBody.MOON, peak)
        moon_km = moon.distance_au * AU_KM
        sun_km = sun.distance_au * AU_KM
        moon_parallax = math.degrees(math.asin(EARTH_RADIUS_KM / moon_km))
        sun_parallax = math.degrees(math.asin(EARTH_RADIUS_KM / sun_km))
        sun_radius = math.degrees(math.asin(SUN_RADIUS_KM / sun_km))
        moon_radius = math.degrees(math.asin(MOON_RADIUS_KM / moon_km))

        umbra = SHADOW_ENLARGEMENT * (moon_parallax + sun_parallax - sun_radius)
        penumbra = SHADOW_ENLARGEMENT * (moon_parallax + sun_parallax + sun_radius)
        if gap >= penumbra + moon_radius:
            return None

        if gap <= umbra - moon_radius:
            kind = EclipseKind.TOTAL
            obscuration = 1.0
        elif gap < umbra + moon_radius:
            kind = EclipseKind.PARTIAL
            obscuration = max(0.0, min(1.0, (umbra + moon_radius - gap) / (2.0 * moon_radius)))
        else:
            kind = EclipseKind.PENUMBRAL
            obscuration = 0.0

        # Speed of the Moon across the shadow, degrees per minute
        later = self._shadow_gap(peak.add_minutes(60.0))
        speed = math.sqrt(max(later * later - gap * gap, 1e-12)) / 60.0

        def semi_duration(radius: float) -> float:
            if radius <= gap:
                return 0.0
            return math.sqrt(radius * radius - gap * gap) / speed

        return EclipseDescriptor(
            kind=kind,
            peak=peak,
            penumbral_semi_duration_min=semi_duration(penumbra + moon_radius),
            partial_semi_duration_min=semi_duration(umbra + moon_radius),
            total_semi_duration_min=semi_duration(umbra - moon_radius),
            obscuration=obscuration,
        )


def _magnitude(body: NamedBody, sun_distance_au: float, earth_distance_au: float, phase_angle: float) -> float:
    i = phase_angle
    if body is NamedBody.MOON:
        return -12.73 + 0.026 * i + 4e-9 * i ** 4
    h, a, b, c = _MAGNITUDE_COEFFICIENTS[body]
    return h + 5.0 * math.log10(sun_distance_au * earth_distance_au) + a * i + b * i * i + c * i * i * i
