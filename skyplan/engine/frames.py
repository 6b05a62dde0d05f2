"""Conversions between equatorial, horizontal, galactic and ecliptic frames.

Angles are carried in degrees (right ascension in hours) and converted to
radians only inside the trigonometry. Refraction is never applied here; see
``skyplan.engine.atmosphere`` for the apparent-altitude correction.

Horizontal conversion takes right ascension and declination as given,
whatever their ``epoch``: J2000 catalog positions are not precessed to the
date, which places them up to about 0.35 deg off in the 2020s. Ecliptic
conversion uses the fixed J2000 mean obliquity.
"""

import math

from skyplan.engine.astro import (
    MEAN_OBLIQUITY_J2000_DEG,
    angular_separation_deg,
    clamp_unit,
    local_sidereal_time_deg,
    mean_right_ascension,
)
from skyplan.errors import InvalidInput
from skyplan.types import (
    FIXED_POINT_DISTANCE_AU,
    CoordinateTransformResult,
    CoordinateType,
    EclipticCoord,
    Epoch,
    EquatorialCoord,
    GalacticCoord,
    GeoObserver,
    HorizontalCoord,
    Instant,
)

# J2000 north galactic pole: 12h51m26.28s, +27d07m41.7s
GALACTIC_POLE_RA_DEG = 192.8595
GALACTIC_POLE_DEC_DEG = 27.12825
# galactic longitude of the north celestial pole
GALACTIC_NODE_LONGITUDE_DEG = 122.932


def to_horizontal(equatorial: EquatorialCoord, observer: GeoObserver, instant: Instant) -> HorizontalCoord:
    lst = local_sidereal_time_deg(instant.jd, observer.longitude_deg)
    ha = math.radians(lst - equatorial.right_ascension_deg)
    dec = math.radians(equatorial.declination_deg)
    lat = math.radians(observer.latitude_deg)

    sin_alt = math.sin(dec) * math.sin(lat) + math.cos(dec) * math.cos(lat) * math.cos(ha)
    alt = math.asin(clamp_unit(sin_alt))
    az = math.atan2(
        -math.cos(dec) * math.sin(ha),
        math.sin(dec) * math.cos(lat) - math.cos(dec) * math.sin(lat) * math.cos(ha),
    )
    return HorizontalCoord(azimuth_deg=math.degrees(az), altitude_deg=math.degrees(alt))


def to_equatorial(
    horizontal: HorizontalCoord,
    observer: GeoObserver,
    instant: Instant,
    epoch: Epoch = Epoch.OF_DATE,
) -> EquatorialCoord:
    lst = local_sidereal_time_deg(instant.jd, observer.longitude_deg)
    alt = math.radians(horizontal.altitude_deg)
    az = math.radians(horizontal.azimuth_deg)
    lat = math.radians(observer.latitude_deg)

    sin_dec = math.sin(alt) * math.sin(lat) + math.cos(alt) * math.cos(lat) * math.cos(az)
    dec = math.asin(clamp_unit(sin_dec))
    ha = math.atan2(
        -math.cos(alt) * math.sin(az),
        math.sin(alt) * math.cos(lat) - math.cos(alt) * math.sin(lat) * math.cos(az),
    )
    ra_hours = (lst - math.degrees(ha)) / 15.0
    return EquatorialCoord(right_ascension_hours=ra_hours, declination_deg=math.degrees(dec), epoch=epoch)


def equatorial_to_galactic(equatorial: EquatorialCoord) -> GalacticCoord:
    ra = math.radians(equatorial.right_ascension_deg)
    dec = math.radians(equatorial.declination_deg)
    ra_p = math.radians(GALACTIC_POLE_RA_DEG)
    dec_p = math.radians(GALACTIC_POLE_DEC_DEG)
    d_ra = ra - ra_p

    sin_b = math.sin(dec) * math.sin(dec_p) + math.cos(dec) * math.cos(dec_p) * math.cos(d_ra)
    b = math.asin(clamp_unit(sin_b))
    y = math.cos(dec) * math.sin(d_ra)
    x = math.sin(dec) * math.cos(dec_p) - math.cos(dec) * math.sin(dec_p) * math.cos(d_ra)
    l = GALACTIC_NODE_LONGITUDE_DEG - math.degrees(math.atan2(y, x))
    return GalacticCoord(longitude_deg=l, latitude_deg=math.degrees(b))


def galactic_to_equatorial(
    galactic: GalacticCoord,
    distance_au: float = FIXED_POINT_DISTANCE_AU,
) -> EquatorialCoord:
    l = math.radians(galactic.longitude_deg)
    b = math.radians(galactic.latitude_deg)
    ra_p = math.radians(GALACTIC_POLE_RA_DEG)
    dec_p = math.radians(GALACTIC_POLE_DEC_DEG)
    d_l = math.radians(GALACTIC_NODE_LONGITUDE_DEG) - l

    sin_dec = math.sin(b) * math.sin(dec_p) + math.cos(b) * math.cos(dec_p) * math.cos(d_l)
    dec = math.asin(clamp_unit(sin_dec))
    y = math.cos(b) * math.sin(d_l)
    x = math.sin(b) * math.cos(dec_p) - math.cos(b) * math.sin(dec_p) * math.cos(d_l)
    ra_deg = math.degrees(ra_p + math.atan2(y, x))
    return EquatorialCoord(
        right_ascension_hours=ra_deg / 15.0,
        declination_deg=math.degrees(dec),
        distance_au=distance_au,
        epoch=Epoch.J2000,
    )


def equatorial_to_ecliptic(
    equatorial: EquatorialCoord,
    obliquity_deg: float = MEAN_OBLIQUITY_J2000_DEG,
    instant: Instant | None = None,
) -> EclipticCoord:
    """Convert to ecliptic longitude/latitude.

    Uses the J2000 mean obliquity (23.4392911 deg) for every date; the
    drift of the ecliptic pole is not modelled. ``instant`` is accepted so
    callers can pass one uniformly and does not change the result.
    """
    eps = math.radians(obliquity_deg)
    ra = math.radians(equatorial.right_ascension_deg)
    dec = math.radians(equatorial.declination_deg)

    lon = math.atan2(
        math.sin(ra) * math.cos(dec) * math.cos(eps) + math.sin(dec) * math.sin(eps),
        math.cos(dec) * math.cos(ra),
    )
    sin_lat = math.sin(dec) * math.cos(eps) - math.cos(dec) * math.sin(eps) * math.sin(ra)
    return EclipticCoord(longitude_deg=math.degrees(lon), latitude_deg=math.degrees(math.asin(clamp_unit(sin_lat))))


def ecliptic_to_equatorial(
    ecliptic: EclipticCoord,
    obliquity_deg: float = MEAN_OBLIQUITY_J2000_DEG,
    instant: Instant | None = None,
    distance_au: float = FIXED_POINT_DISTANCE_AU,
    epoch: Epoch = Epoch.J2000,
) -> EquatorialCoord:
    eps = math.radians(obliquity_deg)
    lon = math.radians(ecliptic.longitude_deg)
    lat = math.radians(ecliptic.latitude_deg)

    ra = math.atan2(
        math.sin(lon) * math.cos(lat) * math.cos(eps) - math.sin(lat) * math.sin(eps),
        math.cos(lat) * math.cos(lon),
    )
    sin_dec = math.sin(lat) * math.cos(eps) + math.cos(lat) * math.sin(eps) * math.sin(lon)
    return EquatorialCoord(
        right_ascension_hours=math.degrees(ra) / 15.0,
        declination_deg=math.degrees(math.asin(clamp_unit(sin_dec))),
        distance_au=distance_au,
        epoch=epoch,
    )


def angular_separation(first: EquatorialCoord, second: EquatorialCoord) -> float:
    """Great-circle separation in degrees; always within [0, 180]."""
    return angular_separation_deg(
        first.right_ascension_hours,
        first.declination_deg,
        second.right_ascension_hours,
        second.declination_deg,
    )


def midpoint(first: EquatorialCoord, second: EquatorialCoord) -> EquatorialCoord:
    return EquatorialCoord(
        right_ascension_hours=mean_right_ascension(first.right_ascension_hours, second.right_ascension_hours),
        declination_deg=(first.declination_deg + second.declination_deg) / 2.0,
        distance_au=(first.distance_au + second.distance_au) / 2.0,
        epoch=first.epoch,
    )


def _coordinate_type(value) -> CoordinateType:
    try:
        return CoordinateType(value)
    except ValueError as exc:
        raise InvalidInput(f"Unsupported coordinate type: {value!r}") from exc


def _require_site(observer: GeoObserver | None, instant: Instant | None) -> None:
    if observer is None or instant is None:
        raise InvalidInput("Horizontal coordinates need an observer and an instant")


def transform_coordinates(
    from_type,
    to_type,
    first: float,
    second: float,
    observer: GeoObserver | None = None,
    instant: Instant | None = None,
) -> CoordinateTransformResult:
    """Convert a coordinate pair between any two supported frames.

    Pairs are (RA hours, Dec) for equatorial, (azimuth, altitude) for
    horizontal and (longitude, latitude) for galactic and ecliptic. The
    conversion always goes through equatorial.
    """
    source = _coordinate_type(from_type)
    target = _coordinate_type(to_type)

    if source is CoordinateType.EQUATORIAL:
        pivot = EquatorialCoord(first, second)
    elif source is CoordinateType.HORIZONTAL:
        _require_site(observer, instant)
        pivot = to_equatorial(HorizontalCoord(first, second), observer, instant)
    elif source is CoordinateType.GALACTIC:
        pivot = galactic_to_equatorial(GalacticCoord(first, second))
    else:
        pivot = ecliptic_to_equatorial(EclipticCoord(first, second), instant=instant)

    if target is CoordinateType.EQUATORIAL:
        out = (pivot.right_ascension_hours, pivot.declination_deg)
    elif target is CoordinateType.HORIZONTAL:
        _require_site(observer, instant)
        horizontal = to_horizontal(pivot, observer, instant)
        out = (horizontal.azimuth_deg, horizontal.altitude_deg)
    elif target is CoordinateType.GALACTIC:
        galactic = equatorial_to_galactic(pivot)
        out = (galactic.longitude_deg, galactic.latitude_deg)
    else:
        ecliptic = equatorial_to_ecliptic(pivot, instant=instant)
        out = (ecliptic.longitude_deg, ecliptic.latitude_deg)

    return CoordinateTransformResult(
        from_type=source,
        to_type=target,
        first=out[0],
        second=out[1],
        equatorial=pivot,
    )
