"""Low-precision ephemeris from mean orbital elements.

Positions follow Paul Schlyter's "How to compute planetary positions":
Keplerian orbits referred to the ecliptic and equinox of date, with the
largest lunar and Jupiter/Saturn/Uranus perturbation terms. Accuracy is a
couple of arcminutes, enough for rise/set and event searches without any
external ephemeris data.
"""

import math

from .base import AU_KM, EARTH_RADIUS_KM, EphemerisProvider
from skyplan.engine.astro import local_sidereal_time_deg, unit_vector, vector_to_ra_dec
from skyplan.types import Epoch, EquatorialCoord, GeoObserver, Instant, NamedBody

_EARTH_RADII_PER_AU = AU_KM / EARTH_RADIUS_KM


class ElementsEphemeris(EphemerisProvider):
    name = "elements"

    def is_available(self) -> dict:
        return {"ok": True, "detail": "mean orbital elements (no external data)"}

    def equatorial_position(
        self,
        body: NamedBody,
        instant: Instant,
        observer: GeoObserver | None = None,
    ) -> EquatorialCoord:
        # Day number counted from 2000 Jan 0.0 TT
        d = instant.tt + 1.5
        xg, yg, zg = _geocentric_ecliptic(body, d)

        oblecl = math.radians(23.4393 - 3.563e-7 * d)
        xe = xg
        ye = yg * math.cos(oblecl) - zg * math.sin(oblecl)
        ze = yg * math.sin(oblecl) + zg * math.cos(oblecl)
        ra, dec, distance_au = vector_to_ra_dec(xe, ye, ze)

        if observer is not None:
            ra, dec, distance_au = _topocentric(ra, dec, distance_au, observer, instant)

        return EquatorialCoord(
            right_ascension_hours=ra,
            declination_deg=dec,
            distance_au=distance_au,
            epoch=Epoch.OF_DATE,
        )


def _topocentric(
    ra_hours: float,
    dec_deg: float,
    distance_au: float,
    observer: GeoObserver,
    instant: Instant,
) -> tuple[float, float, float]:
    lst = math.radians(local_sidereal_time_deg(instant.jd, observer.longitude_deg))
    lat = math.radians(observer.latitude_deg)
    geocentric_lat = lat - math.radians(0.1924) * math.sin(2.0 * lat)
    rho = 0.99833 + 0.00167 * math.cos(2.0 * lat) + observer.elevation_m / (EARTH_RADIUS_KM * 1000.0)

    distance_er = distance_au * _EARTH_RADII_PER_AU
    x, y, z = (component * distance_er for component in unit_vector(ra_hours, dec_deg))
    x -= rho * math.cos(geocentric_lat) * math.cos(lst)
    y -= rho * math.cos(geocentric_lat) * math.sin(lst)
    z -= rho * math.sin(geocentric_lat)
    ra, dec, r = vector_to_ra_dec(x, y, z)
    return ra, dec, r / _EARTH_RADII_PER_AU


def _geocentric_ecliptic(body: NamedBody, d: float) -> tuple[float, float, float]:
    sun = _sun_geocentric(d)
    if body is NamedBody.SUN:
        return sun
    if body is NamedBody.MOON:
        return _moon_geocentric(d)
    xh, yh, zh = _planet_heliocentric(body, d)
    return xh + sun[0], yh + sun[1], zh + sun[2]


def _sun_geocentric(d: float) -> tuple[float, float, float]:
    elems = _elements(NamedBody.SUN, d)
    v, r = _true_anomaly(elems)
    lon = v + math.radians(elems["w"])
    return r * math.cos(lon), r * math.sin(lon), 0.0


def _moon_geocentric(d: float) -> tuple[float, float, float]:
    elems = _elements(NamedBody.MOON, d)
    xh, yh, zh = _orbit_position(elems)
    lon = math.degrees(math.atan2(yh, xh))
    lat = math.degrees(math.atan2(zh, math.sqrt(xh * xh + yh * yh)))
    r = math.sqrt(xh * xh + yh * yh + zh * zh)

    sun = _elements(NamedBody.SUN, d)
    ms = math.radians(sun["M"])
    mm = math.radians(elems["M"])
    ls = sun["M"] + sun["w"]
    lm = elems["N"] + elems["w"] + elems["M"]
    dd = math.radians(lm - ls)
    f = math.radians(lm - elems["N"])

    lon += (
        -1.274 * math.sin(mm - 2 * dd)
        + 0.658 * math.sin(2 * dd)
        - 0.186 * math.sin(ms)
        - 0.059 * math.sin(2 * mm - 2 * dd)
        - 0.057 * math.sin(mm - 2 * dd + ms)
        + 0.053 * math.sin(mm + 2 * dd)
        + 0.046 * math.sin(2 * dd - ms)
        + 0.041 * math.sin(mm - ms)
        - 0.035 * math.sin(dd)
        - 0.031 * math.sin(mm + ms)
        - 0.015 * math.sin(2 * f - 2 * dd)
        + 0.011 * math.sin(mm - 4 * dd)
    )
    lat += (
        -0.173 * math.sin(f - 2 * dd)
        - 0.055 * math.sin(mm - f - 2 * dd)
        - 0.046 * math.sin(mm + f - 2 * dd)
        + 0.033 * math.sin(f + 2 * dd)
        + 0.017 * math.sin(2 * mm + f)
    )
    r += -0.58 * math.cos(mm - 2 * dd) - 0.46 * math.cos(2 * dd)

    r_au = r / _EARTH_RADII_PER_AU
    return _spherical_to_xyz(lon, lat, r_au)


def _planet_heliocentric(body: NamedBody, d: float) -> tuple[float, float, float]:
    xh, yh, zh = _orbit_position(_elements(body, d))
    if body not in (NamedBody.JUPITER, NamedBody.SATURN, NamedBody.URANUS):
        return xh, yh, zh

    lon = math.degrees(math.atan2(yh, xh))
    lat = math.degrees(math.atan2(zh, math.sqrt(xh * xh + yh * yh)))
    r = math.sqrt(xh * xh + yh * yh + zh * zh)
    mj = _elements(NamedBody.JUPITER, d)["M"]
    ms = _elements(NamedBody.SATURN, d)["M"]
    mu = _elements(NamedBody.URANUS, d)["M"]

    def s(angle_deg: float) -> float:
        return math.sin(math.radians(angle_deg))

    def c(angle_deg: float) -> float:
        return math.cos(math.radians(angle_deg))

    if body is NamedBody.JUPITER:
        lon += (
            -0.332 * s(2 * mj - 5 * ms - 67.6)
            - 0.056 * s(2 * mj - 2 * ms + 21)
            + 0.042 * s(3 * mj - 5 * ms + 21)
            - 0.036 * s(mj - 2 * ms)
            + 0.022 * c(mj - ms)
            + 0.023 * s(2 * mj - 3 * ms + 52)
            - 0.016 * s(mj - 5 * ms - 69)
        )
    elif body is NamedBody.SATURN:
        lon += (
            0.812 * s(2 * mj - 5 * ms - 67.6)
            - 0.229 * c(2 * mj - 4 * ms - 2)
            + 0.119 * s(mj - 2 * ms - 3)
            + 0.046 * s(2 * mj - 6 * ms - 69)
            + 0.014 * s(mj - 3 * ms + 32)
        )
        lat += -0.020 * c(2 * mj - 4 * ms - 2) + 0.018 * s(2 * mj - 6 * ms - 49)
    else:
        lon += (
            0.040 * s(ms - 2 * mu + 6)
            + 0.035 * s(ms - 3 * mu + 33)
            - 0.015 * s(mj - mu + 20)
        )
    return _spherical_to_xyz(lon, lat, r)


def _spherical_to_xyz(lon_deg: float, lat_deg: float, r: float) -> tuple[float, float, float]:
    lon = math.radians(lon_deg)
    lat = math.radians(lat_deg)
    return (
        r * math.cos(lat) * math.cos(lon),
        r * math.cos(lat) * math.sin(lon),
        r * math.sin(lat),
    )


def _true_anomaly(elems: dict) -> tuple[float, float]:
    a = elems["a"]
    e = elems["e"]
    e_anom = _solve_kepler(math.radians(elems["M"]), e)
    xv = a * (math.cos(e_anom) - e)
    yv = a * (math.sqrt(1.0 - e * e) * math.sin(e_anom))
    return math.atan2(yv, xv), math.sqrt(xv * xv + yv * yv)


def _orbit_position(elems: dict) -> tuple[float, float, float]:
    n = math.radians(elems["N"])
    i = math.radians(elems["i"])
    w = math.radians(elems["w"])
    v, r = _true_anomaly(elems)

    xh = r * (math.cos(n) * math.cos(v + w) - math.sin(n) * math.sin(v + w) * math.cos(i))
    yh = r * (math.sin(n) * math.cos(v + w) + math.cos(n) * math.sin(v + w) * math.cos(i))
    zh = r * (math.sin(v + w) * math.sin(i))
    return xh, yh, zh


def _solve_kepler(m: float, e: float) -> float:
    e_anom = m + e * math.sin(m) * (1.0 + e * math.cos(m))
    for _ in range(8):
        e_anom = e_anom - (e_anom - e * math.sin(e_anom) - m) / (1 - e * math.cos(e_anom))
    return e_anom


def _elements(body: NamedBody, d: float) -> dict:
    if body is NamedBody.SUN:
        return {"N": 0.0, "i": 0.0, "w": 282.9404 + 4.70935e-5 * d, "a": 1.000000, "e": 0.016709 - 1.151e-9 * d, "M": 356.0470 + 0.9856002585 * d}
    if body is NamedBody.MOON:
        # semi-major axis in Earth radii
        return {"N": 125.1228 - 0.0529538083 * d, "i": 5.1454, "w": 318.0634 + 0.1643573223 * d, "a": 60.2666, "e": 0.054900, "M": 115.3654 + 13.0649929509 * d}
    if body is NamedBody.MERCURY:
        return {"N": 48.3313 + 3.24587e-5 * d, "i": 7.0047 + 5.00e-8 * d, "w": 29.1241 + 1.01444e-5 * d, "a": 0.387098, "e": 0.205635 + 5.59e-10 * d, "M": 168.6562 + 4.0923344368 * d}
    if body is NamedBody.VENUS:
        return {"N": 76.6799 + 2.46590e-5 * d, "i": 3.3946 + 2.75e-8 * d, "w": 54.8910 + 1.38374e-5 * d, "a": 0.723330, "e": 0.006773 - 1.302e-9 * d, "M": 48.0052 + 1.6021302244 * d}
    if body is NamedBody.MARS:
        return {"N": 49.5574 + 2.11081e-5 * d, "i": 1.8497 - 1.78e-8 * d, "w": 286.5016 + 2.92961e-5 * d, "a": 1.523688, "e": 0.093405 + 2.516e-9 * d, "M": 18.6021 + 0.5240207766 * d}
    if body is NamedBody.JUPITER:
        return {"N": 100.4542 + 2.76854e-5 * d, "i": 1.3030 - 1.557e-7 * d, "w": 273.8777 + 1.64505e-5 * d, "a": 5.20256, "e": 0.048498 + 4.469e-9 * d, "M": 19.8950 + 0.0830853001 * d}
    if body is NamedBody.SATURN:
        return {"N": 113.6634 + 2.38980e-5 * d, "i": 2.4886 - 1.081e-7 * d, "w": 339.3939 + 2.97661e-5 * d, "a": 9.55475, "e": 0.055546 - 9.499e-9 * d, "M": 316.9670 + 0.0334442282 * d}
    if body is NamedBody.URANUS:
        return {"N": 74.0005 + 1.3978e-5 * d, "i": 0.7733 + 1.9e-8 * d, "w": 96.6612 + 3.0565e-5 * d, "a": 19.18171 - 1.55e-8 * d, "e": 0.047318 + 7.45e-9 * d, "M": 142.5905 + 0.011725806 * d}
    if body is NamedBody.NEPTUNE:
        return {"N": 131.7806 + 3.0173e-5 * d, "i": 1.7700 - 2.55e-7 * d, "w": 272.8461 - 6.027e-6 * d, "a": 30.05826 + 3.313e-8 * d, "e": 0.008606 + 2.15e-9 * d, "M": 260.2471 + 0.005995147 * d}
    raise ValueError(f"Unknown body: {body}")
