from dataclasses import dataclass, field
import datetime
import enum
import math
from typing import Optional, Union

from astropy.time import Time

from skyplan.errors import InvalidInput

J2000_JD = 2451545.0
_J2000_UTC = datetime.datetime(2000, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

# 1000 parsecs, used when a catalog position carries no distance
FIXED_POINT_DISTANCE_AU = 206264806.25


def _finite(name: str, value) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidInput(f"{name} must be finite, got {value!r}")
    return number


def _bounded(name: str, value, low: float, high: float) -> float:
    number = _finite(name, value)
    if number < low or number > high:
        raise InvalidInput(f"{name} must be within [{low}, {high}], got {number}")
    return number


def _wrap(value: float, period: float) -> float:
    wrapped = value % period
    # tiny negative inputs round up to exactly one period
    if wrapped >= period:
        wrapped = 0.0
    return wrapped


@dataclass(frozen=True, order=True)
class Instant:
    utc: datetime.datetime

    def __post_init__(self):
        dt = self.utc
        if not isinstance(dt, datetime.datetime):
            raise InvalidInput(f"Instant requires a datetime, got {dt!r}")
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=datetime.timezone.utc)
        object.__setattr__(self, "utc", dt.astimezone(datetime.timezone.utc))

    @classmethod
    def now(cls) -> "Instant":
        return cls(datetime.datetime.now(datetime.timezone.utc))

    @classmethod
    def from_tt(cls, tt: float) -> "Instant":
        """Build an instant from days since J2000.0 on the Terrestrial Time scale."""
        t = Time(J2000_JD, tt, format="jd", scale="tt")
        return cls(t.utc.to_datetime(timezone=datetime.timezone.utc))

    @property
    def tt(self) -> float:
        """Days since J2000.0 (TT), leap seconds included."""
        t = Time(self.utc, scale="utc").tt
        return (t.jd1 - J2000_JD) + t.jd2

    @property
    def jd(self) -> float:
        """Julian date on the UTC scale, used as UT for sidereal time."""
        return J2000_JD + (self.utc - _J2000_UTC).total_seconds() / 86400.0

    def add_days(self, days: float) -> "Instant":
        return Instant(self.utc + datetime.timedelta(days=days))

    def add_minutes(self, minutes: float) -> "Instant":
        return Instant(self.utc + datetime.timedelta(minutes=minutes))

    def days_until(self, other: "Instant") -> float:
        return (other.utc - self.utc).total_seconds() / 86400.0

    def midpoint(self, other: "Instant") -> "Instant":
        return Instant(self.utc + (other.utc - self.utc) / 2)

    def __str__(self) -> str:
        return self.utc.isoformat()


@dataclass(frozen=True)
class TimeWindow:
    start: Instant
    end: Instant

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def contains(self, instant: Instant) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class GeoObserver:
    latitude_deg: float
    longitude_deg: float
    elevation_m: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "latitude_deg", _bounded("latitude", self.latitude_deg, -90.0, 90.0))
        object.__setattr__(self, "longitude_deg", _bounded("longitude", self.longitude_deg, -180.0, 180.0))
        object.__setattr__(self, "elevation_m", _finite("elevation", self.elevation_m))


class Epoch(str, enum.Enum):
    OF_DATE = "of-date"
    J2000 = "J2000"


@dataclass(frozen=True)
class EquatorialCoord:
    right_ascension_hours: float
    declination_deg: float
    distance_au: float = FIXED_POINT_DISTANCE_AU
    epoch: Epoch = Epoch.J2000

    def __post_init__(self):
        ra = _finite("right ascension", self.right_ascension_hours)
        object.__setattr__(self, "right_ascension_hours", _wrap(ra, 24.0))
        object.__setattr__(self, "declination_deg", _bounded("declination", self.declination_deg, -90.0, 90.0))
        distance = _finite("distance", self.distance_au)
        if distance <= 0:
            raise InvalidInput(f"distance must be positive, got {distance}")
        object.__setattr__(self, "distance_au", distance)

    @property
    def right_ascension_deg(self) -> float:
        return self.right_ascension_hours * 15.0


@dataclass(frozen=True)
class HorizontalCoord:
    azimuth_deg: float
    altitude_deg: float

    def __post_init__(self):
        object.__setattr__(self, "azimuth_deg", _wrap(_finite("azimuth", self.azimuth_deg), 360.0))
        object.__setattr__(self, "altitude_deg", _bounded("altitude", self.altitude_deg, -90.0, 90.0))


@dataclass(frozen=True)
class GalacticCoord:
    longitude_deg: float
    latitude_deg: float

    def __post_init__(self):
        object.__setattr__(self, "longitude_deg", _wrap(_finite("galactic longitude", self.longitude_deg), 360.0))
        object.__setattr__(self, "latitude_deg", _bounded("galactic latitude", self.latitude_deg, -90.0, 90.0))


@dataclass(frozen=True)
class EclipticCoord:
    longitude_deg: float
    latitude_deg: float

    def __post_init__(self):
        object.__setattr__(self, "longitude_deg", _wrap(_finite("ecliptic longitude", self.longitude_deg), 360.0))
        object.__setattr__(self, "latitude_deg", _bounded("ecliptic latitude", self.latitude_deg, -90.0, 90.0))


class CoordinateType(str, enum.Enum):
    EQUATORIAL = "equatorial"
    HORIZONTAL = "horizontal"
    GALACTIC = "galactic"
    ECLIPTIC = "ecliptic"


class NamedBody(str, enum.Enum):
    SUN = "sun"
    MOON = "moon"
    MERCURY = "mercury"
    VENUS = "venus"
    MARS = "mars"
    JUPITER = "jupiter"
    SATURN = "saturn"
    URANUS = "uranus"
    NEPTUNE = "neptune"

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def is_planet(self) -> bool:
        return self in PLANETS

    @property
    def is_outer(self) -> bool:
        return self in OUTER_PLANETS


PLANETS = (
    NamedBody.MERCURY,
    NamedBody.VENUS,
    NamedBody.MARS,
    NamedBody.JUPITER,
    NamedBody.SATURN,
    NamedBody.URANUS,
    NamedBody.NEPTUNE,
)
OUTER_PLANETS = (
    NamedBody.MARS,
    NamedBody.JUPITER,
    NamedBody.SATURN,
    NamedBody.URANUS,
    NamedBody.NEPTUNE,
)


@dataclass(frozen=True)
class FixedPoint:
    name: str
    coord: EquatorialCoord
    object_type: str | None = None
    magnitude: float | None = None
    size_arcmin: float | None = None
    constellation: str | None = None
    catalog_id: str | None = None


CelestialTarget = Union[NamedBody, FixedPoint]


def target_name(target: CelestialTarget) -> str:
    if isinstance(target, NamedBody):
        return target.display_name
    return target.name


@dataclass(frozen=True)
class RiseSetTransit:
    rise: Instant | None = None
    set: Instant | None = None
    transit: Instant | None = None


@dataclass(frozen=True)
class AtmosphericState:
    temperature_c: float = 15.0
    pressure_mbar: float = 1013.25
    humidity_pct: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "temperature_c", _bounded("temperature", self.temperature_c, -273.15, 100.0))
        object.__setattr__(self, "pressure_mbar", _bounded("pressure", self.pressure_mbar, 0.0, 2000.0))
        object.__setattr__(self, "humidity_pct", _bounded("humidity", self.humidity_pct, 0.0, 100.0))


@dataclass(frozen=True)
class AtmosphericCorrection:
    apparent_altitude_deg: float
    true_altitude_deg: float
    refraction_arcmin: float
    extinction_mag: float
    air_mass: float
    notes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class VisibilityScore:
    value: float
    factors: dict[str, float] = field(default_factory=dict)
    visible: bool = False


@dataclass(frozen=True)
class Illumination:
    magnitude: float
    phase_fraction: float
    phase_angle_deg: float


@dataclass(frozen=True)
class Libration:
    latitude_deg: float
    longitude_deg: float


class EclipseKind(str, enum.Enum):
    PENUMBRAL = "penumbral"
    PARTIAL = "partial"
    TOTAL = "total"


@dataclass(frozen=True)
class EclipseDescriptor:
    kind: EclipseKind
    peak: Instant
    penumbral_semi_duration_min: float
    partial_semi_duration_min: float = 0.0
    total_semi_duration_min: float = 0.0
    obscuration: float = 0.0


class EventKind(str, enum.Enum):
    CONJUNCTION = "conjunction"
    OPPOSITION = "opposition"
    ECLIPSE = "eclipse"


@dataclass(frozen=True)
class ConjunctionEvent:
    instant: Instant
    first: NamedBody
    second: NamedBody
    separation_deg: float
    altitude_deg: float | None = None
    azimuth_deg: float | None = None

    @property
    def kind(self) -> EventKind:
        return EventKind.CONJUNCTION

    @property
    def separation_arcmin(self) -> float:
        return self.separation_deg * 60.0


@dataclass(frozen=True)
class OppositionEvent:
    instant: Instant
    body: NamedBody
    distance_au: float
    magnitude: float | None = None
    angular_diameter_arcsec: float | None = None

    @property
    def kind(self) -> EventKind:
        return EventKind.OPPOSITION


@dataclass(frozen=True)
class EclipseEvent:
    instant: Instant
    eclipse_kind: EclipseKind
    penumbral_begin: Instant
    penumbral_end: Instant
    partial_begin: Instant | None = None
    partial_end: Instant | None = None
    total_begin: Instant | None = None
    total_end: Instant | None = None
    obscuration: float = 0.0
    moon_altitude_deg: float | None = None
    visible: bool | None = None

    @property
    def kind(self) -> EventKind:
        return EventKind.ECLIPSE


PeriodicEvent = Union[ConjunctionEvent, OppositionEvent, EclipseEvent]


@dataclass(frozen=True)
class CoordinateTransformResult:
    from_type: CoordinateType
    to_type: CoordinateType
    first: float
    second: float
    equatorial: EquatorialCoord


@dataclass
class PositionReport:
    name: str
    instant: Instant
    equatorial: EquatorialCoord
    horizontal: HorizontalCoord
    apparent_altitude_deg: float
    galactic: GalacticCoord
    ecliptic: EclipticCoord
    rise_set_transit: RiseSetTransit
    circumpolar: bool
    altitude_category: str
    direction: str
    score: VisibilityScore
    quality: str
    illumination: Optional[Illumination] = None
    angular_diameter_arcsec: float | None = None


@dataclass
class MoonReport:
    instant: Instant
    equatorial: EquatorialCoord
    horizontal: HorizontalCoord
    phase_angle_deg: float
    phase_name: str
    illumination_fraction: float
    distance_km: float
    angular_diameter_arcmin: float
    libration: Libration
    supermoon: bool
    photography_quality: float
    rise_set_transit: RiseSetTransit


@dataclass
class ConstellationReport:
    name: str
    center: EquatorialCoord
    horizontal: HorizontalCoord
    circumpolar: bool
    rise_set_transit: RiseSetTransit
    optimal_time: Instant | None = None
    objects: list[str] = field(default_factory=list)


@dataclass
class MeteorShowerConditions:
    shower: str
    instant: Instant
    active: bool
    radiant: EquatorialCoord
    radiant_altitude_deg: float
    expected_rate_per_hour: float
    moon_illumination: float
    score: float
    quality: str


@dataclass
class MeteorShowerEvent:
    shower: str
    peak: Instant
    activity_start: datetime.date
    activity_end: datetime.date
    radiant: EquatorialCoord
    radiant_altitude_deg: float
    radiant_azimuth_deg: float
    zhr: int
    moon_illumination: float
    optimal: bool


@dataclass(frozen=True)
class SupermoonEvent:
    instant: Instant
    name: str
    phase_angle_deg: float
    distance_km: float
    angular_diameter_arcmin: float
    percent_larger: float


@dataclass(frozen=True)
class LunarWindow:
    start: Instant
    end: Instant
    altitude_deg: float
    phase_angle_deg: float
    phase_name: str
    illumination_fraction: float
    quality: float


@dataclass
class PolarAlignment:
    instant: Instant
    star: str
    star_azimuth_deg: float
    star_altitude_deg: float
    pole_azimuth_deg: float
    pole_altitude_deg: float
    hour_angle_hours: float
    offset_arcmin: float
    position_angle_deg: float
    alt_offset_arcmin: float
    az_offset_arcmin: float


@dataclass
class StarTrailReport:
    instant: Instant
    exposure_hours: float
    rotation_deg: float
    trail_length_deg: float
    pole_azimuth_deg: float
    pole_altitude_deg: float
