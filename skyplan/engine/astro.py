import math

J2000_JD = 2451545.0
MEAN_OBLIQUITY_J2000_DEG = 23.4392911


def clamp_unit(value: float) -> float:
    return max(-1.0, min(1.0, value))


def normalize_degrees(angle: float) -> float:
    wrapped = angle % 360.0
    return 0.0 if wrapped >= 360.0 else wrapped


def normalize_hours(hours: float) -> float:
    wrapped = hours % 24.0
    return 0.0 if wrapped >= 24.0 else wrapped


def wrap_signed_degrees(angle: float) -> float:
    """Wrap an angle into (-180, 180]."""
    wrapped = normalize_degrees(angle)
    if wrapped > 180.0:
        wrapped -= 360.0
    return wrapped


def gmst_degrees(jd_ut: float) -> float:
    d = jd_ut - J2000_JD
    t = d / 36525.0
    gmst_hours = 18.697374558 + 24.06570982441908 * d + 0.000026 * t * t
    return normalize_degrees((gmst_hours % 24.0) * 15.0)


def local_sidereal_time_deg(jd_ut: float, longitude_deg: float) -> float:
    return normalize_degrees(gmst_degrees(jd_ut) + longitude_deg)


def mean_right_ascension(ra1_hours: float, ra2_hours: float) -> float:
    """Average two right ascensions across the 0h/24h seam."""
    ra1 = normalize_hours(ra1_hours)
    ra2 = normalize_hours(ra2_hours)
    if abs(ra1 - ra2) > 12.0:
        if ra1 < ra2:
            ra1 += 24.0
        else:
            ra2 += 24.0
    return normalize_hours((ra1 + ra2) / 2.0)


def angular_separation_deg(ra1_hours: float, dec1_deg: float, ra2_hours: float, dec2_deg: float) -> float:
    ra1 = math.radians(ra1_hours * 15.0)
    ra2 = math.radians(ra2_hours * 15.0)
    dec1 = math.radians(dec1_deg)
    dec2 = math.radians(dec2_deg)
    cos_sep = math.sin(dec1) * math.sin(dec2) + math.cos(dec1) * math.cos(dec2) * math.cos(ra1 - ra2)
    return math.degrees(math.acos(clamp_unit(cos_sep)))


def unit_vector(ra_hours: float, dec_deg: float) -> tuple[float, float, float]:
    ra = math.radians(ra_hours * 15.0)
    dec = math.radians(dec_deg)
    return (math.cos(dec) * math.cos(ra), math.cos(dec) * math.sin(ra), math.sin(dec))


def vector_to_ra_dec(x: float, y: float, z: float) -> tuple[float, float, float]:
    """Return (ra hours, dec degrees, length) of a cartesian vector."""
    r = math.sqrt(x * x + y * y + z * z)
    ra = normalize_hours(math.degrees(math.atan2(y, x)) / 15.0)
    dec = math.degrees(math.atan2(z, math.sqrt(x * x + y * y)))
    return ra, dec, r
