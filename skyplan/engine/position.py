import concurrent.futures
import datetime
import logging
import math
import threading
from typing import Iterable

from .astro import local_sidereal_time_deg, normalize_degrees, normalize_hours, wrap_signed_degrees
from .atmosphere import apparent_altitude, correct
from .events import (
    find_conjunctions,
    find_eclipses,
    find_lunar_windows,
    find_oppositions,
    find_rise_set_transit,
    find_supermoons,
    local_day_start,
    target_position,
)
from .frames import equatorial_to_ecliptic, equatorial_to_galactic, to_horizontal, transform_coordinates
from .scoring import SkyGeometry, score_visibility
from .visibility import (
    angular_diameter_arcsec,
    describe_altitude,
    illuminated_fraction,
    is_circumpolar,
    is_supermoon,
    lunar_photography_quality,
    moon_angular_diameter_arcmin,
    moon_phase_name,
    never_rises,
    quality_label,
    cardinal_direction,
)
from skyplan.catalog import (
    constellation_target,
    lookup_deep_sky,
    meteor_shower,
    objects_in_constellation,
    showers_between,
)
from skyplan.ephemeris import get_ephemeris_provider
from skyplan.ephemeris.base import AU_KM, call_provider
from skyplan.errors import InvalidInput, ProviderFailure, SkyplanError
from skyplan.types import (
    OUTER_PLANETS,
    PLANETS,
    AtmosphericCorrection,
    AtmosphericState,
    CelestialTarget,
    ConstellationReport,
    EquatorialCoord,
    EventKind,
    FixedPoint,
    GeoObserver,
    Instant,
    LunarWindow,
    MeteorShowerConditions,
    MeteorShowerEvent,
    MoonReport,
    NamedBody,
    PeriodicEvent,
    PolarAlignment,
    PositionReport,
    RiseSetTransit,
    StarTrailReport,
    SupermoonEvent,
    TimeWindow,
    target_name,
)
from skyplan.util.format import parse_sexagesimal

logger = logging.getLogger(__name__)

ASTRONOMICAL_TWILIGHT_DEG = -18.0

GALACTIC_CENTER = FixedPoint(
    name="Galactic Center",
    coord=EquatorialCoord(right_ascension_hours=17.759167, declination_deg=-29.007778),
    object_type="galactic center",
    constellation="Sagittarius",
    catalog_id="Sgr A*",
)

POLARIS = FixedPoint(
    name="Polaris",
    coord=EquatorialCoord(right_ascension_hours=2.530278, declination_deg=89.264167),
    object_type="star",
    constellation="Ursa Minor",
    catalog_id="Alpha UMi",
)

SIGMA_OCTANTIS = FixedPoint(
    name="Sigma Octantis",
    coord=EquatorialCoord(right_ascension_hours=21.146111, declination_deg=-88.956389),
    object_type="star",
    constellation="Octans",
    catalog_id="Sigma Oct",
)

SIDEREAL_RATE_DEG_PER_HOUR = 15.0

# radiant above 60/30/0 deg
METEOR_RADIANT_TIERS = ((60.0, 0.5), (30.0, 0.3), (0.0, 0.1))
# moon illumination below 0.2/0.5/0.8 while up
METEOR_MOON_TIERS = ((0.2, 0.25), (0.5, 0.15), (0.8, 0.05))
METEOR_MOON_DOWN_SCORE = 0.3
METEOR_BASE_SCORE = 0.2
METEOR_MOONLIGHT_LOSS = 0.7
METEOR_OPTIMAL_MOON = 0.3
METEOR_OPTIMAL_RADIANT_DEG = 30.0


class PositionService:
    """Single entry point over ephemeris, frames, events and scoring.

    Defaults for the site, atmosphere and search tuning come from ``config``;
    every method also accepts explicit values.
    """

    def __init__(self, config, provider=None):
        self._config = config
        self._provider = provider if provider is not None else get_ephemeris_provider(config)

    @property
    def provider(self):
        return self._provider

    def default_observer(self) -> GeoObserver | None:
        lat = self._config.site_latitude_deg
        lon = self._config.site_longitude_deg
        if lat is None or lon is None:
            return None
        return GeoObserver(lat, lon, self._config.site_elevation_m)

    def default_atmosphere(self) -> AtmosphericState:
        return AtmosphericState(
            temperature_c=self._config.atmosphere_temperature_c,
            pressure_mbar=self._config.atmosphere_pressure_mbar,
            humidity_pct=self._config.atmosphere_humidity_pct,
        )

    def _observer(self, observer: GeoObserver | None) -> GeoObserver:
        observer = observer or self.default_observer()
        if observer is None:
            raise InvalidInput("Observer location is required (lat/lon)")
        return observer

    def report(
        self,
        target: CelestialTarget,
        observer: GeoObserver | None = None,
        instant: Instant | None = None,
        atmosphere: AtmosphericState | None = None,
        *,
        rise_set: bool = True,
    ) -> PositionReport:
        observer = self._observer(observer)
        instant = instant or Instant.now()
        atmosphere = atmosphere or self.default_atmosphere()

        equatorial = target_position(self._provider, target, instant, observer)
        horizontal = to_horizontal(equatorial, observer, instant)
        ecliptic = equatorial_to_ecliptic(equatorial)

        illumination = None
        diameter = None
        if isinstance(target, NamedBody):
            illumination = call_provider(self._provider.illumination, target, instant)
            diameter = angular_diameter_arcsec(target, equatorial.distance_au)
        elif target.size_arcmin is not None:
            diameter = target.size_arcmin * 60.0

        geometry = SkyGeometry(
            altitude_deg=horizontal.altitude_deg,
            azimuth_deg=horizontal.azimuth_deg,
            right_ascension_hours=equatorial.right_ascension_hours,
        )
        if target is not NamedBody.MOON:
            self._add_moon(geometry, observer, instant)
        score = score_visibility(target, geometry, illumination, atmosphere, season=instant.utc.month)

        rst = self.rise_set_transit(target, instant, observer) if rise_set else RiseSetTransit()
        return PositionReport(
            name=target_name(target),
            instant=instant,
            equatorial=equatorial,
            horizontal=horizontal,
            apparent_altitude_deg=apparent_altitude(horizontal.altitude_deg, atmosphere),
            galactic=equatorial_to_galactic(equatorial),
            ecliptic=ecliptic,
            rise_set_transit=rst,
            circumpolar=is_circumpolar(equatorial.declination_deg, observer.latitude_deg),
            altitude_category=describe_altitude(horizontal.altitude_deg),
            direction=cardinal_direction(horizontal.azimuth_deg),
            score=score,
            quality=quality_label(score.value),
            illumination=illumination,
            angular_diameter_arcsec=diameter,
        )

    def _add_moon(self, geometry: SkyGeometry, observer: GeoObserver, instant: Instant) -> None:
        try:
            moon = target_position(self._provider, NamedBody.MOON, instant, observer)
            phase = call_provider(self._provider.moon_phase_angle, instant)
        except ProviderFailure as exc:
            logger.warning("Moon position unavailable, scoring without it: %s", exc)
            return
        geometry.moon_altitude_deg = to_horizontal(moon, observer, instant).altitude_deg
        geometry.moon_illumination = illuminated_fraction(phase)

    def reports(
        self,
        queries: Iterable[tuple],
        max_workers: int | None = None,
        **kwargs,
    ) -> list[PositionReport]:
        """Run ``(target, observer, instant)`` queries concurrently.

        Results keep the query order; a query that fails is logged and left out.
        """
        queries = list(queries)
        if not queries:
            return []
        workers = max_workers or self._config.workers
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self.report, *query, **kwargs) for query in queries]
            results = []
            for query, future in zip(queries, futures):
                try:
                    results.append(future.result())
                except SkyplanError as exc:
                    logger.warning("Position query for %s failed: %s", target_name(query[0]), exc)
        return results

    def visible_planets(
        self,
        observer: GeoObserver | None = None,
        instant: Instant | None = None,
    ) -> list[PositionReport]:
        """Planets above the horizon, brightest first."""
        observer = self._observer(observer)
        instant = instant or Instant.now()
        found = self.reports(((body, observer, instant) for body in NamedBody if body.is_planet), rise_set=False)
        up = [r for r in found if r.horizontal.altitude_deg > 0.0]
        return sorted(up, key=lambda r: r.illumination.magnitude if r.illumination else math.inf)

    def rise_set_transit(
        self,
        target: CelestialTarget,
        date,
        observer: GeoObserver | None = None,
        horizon_deg: float | None = None,
    ) -> RiseSetTransit:
        observer = self._observer(observer)
        return find_rise_set_transit(
            target,
            observer,
            date,
            self._provider,
            horizon_deg=self._config.horizon_deg if horizon_deg is None else horizon_deg,
            step_minutes=self._config.rise_set_step_minutes,
        )

    def conjunctions(
        self,
        bodies: Iterable[NamedBody] | None,
        window: TimeWindow,
        observer: GeoObserver | None = None,
        threshold_deg: float | None = None,
        cancel: threading.Event | None = None,
    ):
        return find_conjunctions(
            bodies or PLANETS,
            window,
            self._provider,
            observer or self.default_observer(),
            threshold_deg=threshold_deg if threshold_deg is not None else self._config.search_conjunction_threshold_deg,
            step_days=self._config.search_step_days,
            advance_days=self._config.search_conjunction_advance_days,
            cancel=cancel,
        )

    def oppositions(
        self,
        bodies: Iterable[NamedBody] | None,
        window: TimeWindow,
        cancel: threading.Event | None = None,
    ):
        return find_oppositions(
            bodies or OUTER_PLANETS,
            window,
            self._provider,
            step_days=self._config.search_step_days,
            skip_days=self._config.search_opposition_skip_days,
            cancel=cancel,
        )

    def eclipses(
        self,
        window: TimeWindow,
        observer: GeoObserver | None = None,
        cancel: threading.Event | None = None,
    ):
        return find_eclipses(
            window,
            self._provider,
            observer or self.default_observer(),
            skip_days=self._config.search_eclipse_skip_days,
            cancel=cancel,
        )

    def periodic_events(
        self,
        kind,
        bodies: Iterable[NamedBody] | None,
        window: TimeWindow,
        observer: GeoObserver | None = None,
        cancel: threading.Event | None = None,
    ) -> list[PeriodicEvent]:
        try:
            kind = EventKind(kind)
        except ValueError as exc:
            raise InvalidInput(f"Unsupported event kind: {kind!r}") from exc
        if kind is EventKind.CONJUNCTION:
            return self.conjunctions(bodies, window, observer, cancel=cancel)
        if kind is EventKind.OPPOSITION:
            return self.oppositions(bodies, window, cancel=cancel)
        return self.eclipses(window, observer, cancel=cancel)

    def transform(
        self,
        from_type,
        to_type,
        first: float,
        second: float,
        observer: GeoObserver | None = None,
        instant: Instant | None = None,
    ):
        return transform_coordinates(
            from_type,
            to_type,
            first,
            second,
            observer=observer or self.default_observer(),
            instant=instant or Instant.now(),
        )

    def atmospheric_correction(
        self,
        apparent_altitude_deg: float,
        atmosphere: AtmosphericState | None = None,
    ) -> AtmosphericCorrection:
        return correct(apparent_altitude_deg, atmosphere or self.default_atmosphere())

    def moon_report(
        self,
        observer: GeoObserver | None = None,
        instant: Instant | None = None,
    ) -> MoonReport:
        observer = self._observer(observer)
        instant = instant or Instant.now()
        local = target_position(self._provider, NamedBody.MOON, instant, observer)
        geocentric = target_position(self._provider, NamedBody.MOON, instant)
        horizontal = to_horizontal(local, observer, instant)
        phase = call_provider(self._provider.moon_phase_angle, instant)
        fraction = illuminated_fraction(phase)
        distance_km = geocentric.distance_au * AU_KM
        return MoonReport(
            instant=instant,
            equatorial=local,
            horizontal=horizontal,
            phase_angle_deg=phase,
            phase_name=moon_phase_name(phase),
            illumination_fraction=fraction,
            distance_km=distance_km,
            angular_diameter_arcmin=moon_angular_diameter_arcmin(geocentric.distance_au),
            libration=call_provider(self._provider.libration, instant),
            supermoon=is_supermoon(distance_km),
            photography_quality=lunar_photography_quality(horizontal.altitude_deg, phase, fraction),
            rise_set_transit=self.rise_set_transit(NamedBody.MOON, instant, observer),
        )

    def deep_sky_report(
        self,
        catalog_id: str,
        observer: GeoObserver | None = None,
        instant: Instant | None = None,
        atmosphere: AtmosphericState | None = None,
    ) -> PositionReport:
        target = lookup_deep_sky(catalog_id)
        if target is None:
            raise InvalidInput(f"Unknown deep-sky object: {catalog_id}")
        return self.report(target, observer, instant, atmosphere)

    def galactic_center_report(
        self,
        observer: GeoObserver | None = None,
        instant: Instant | None = None,
        atmosphere: AtmosphericState | None = None,
    ) -> PositionReport:
        return self.report(GALACTIC_CENTER, observer, instant, atmosphere)

    def constellation_report(
        self,
        name: str,
        observer: GeoObserver | None = None,
        instant: Instant | None = None,
    ) -> ConstellationReport:
        observer = self._observer(observer)
        instant = instant or Instant.now()
        target = constellation_target(name)
        dec = target.coord.declination_deg
        circumpolar = is_circumpolar(dec, observer.latitude_deg)
        rst = self.rise_set_transit(target, instant, observer)

        optimal = None
        if not never_rises(dec, observer.latitude_deg):
            darkness = self.darkness(instant.utc.date(), observer)
            candidate = rst.transit
            if candidate is None and circumpolar and darkness is not None:
                candidate = darkness[0].midpoint(darkness[1])
            if candidate is not None and darkness is not None:
                candidate = min(max(candidate, darkness[0]), darkness[1])
            optimal = candidate

        return ConstellationReport(
            name=target.name,
            center=target.coord,
            horizontal=to_horizontal(target.coord, observer, instant),
            circumpolar=circumpolar,
            rise_set_transit=rst,
            optimal_time=optimal,
            objects=[t.catalog_id for t in objects_in_constellation(target.name)],
        )

    def darkness(self, date: datetime.date, observer: GeoObserver) -> tuple[Instant, Instant] | None:
        """Astronomical night starting on the evening of ``date``, if there is one."""
        evening = self.rise_set_transit(NamedBody.SUN, date, observer, horizon_deg=ASTRONOMICAL_TWILIGHT_DEG)
        morning = self.rise_set_transit(
            NamedBody.SUN,
            date + datetime.timedelta(days=1),
            observer,
            horizon_deg=ASTRONOMICAL_TWILIGHT_DEG,
        )
        if evening.set is None or morning.rise is None or morning.rise <= evening.set:
            return None
        return evening.set, morning.rise

    def meteor_shower_conditions(
        self,
        name: str,
        observer: GeoObserver | None = None,
        instant: Instant | None = None,
    ) -> MeteorShowerConditions:
        observer = self._observer(observer)
        instant = instant or Instant.now()
        shower = meteor_shower(name)
        radiant_alt = to_horizontal(shower.radiant, observer, instant).altitude_deg

        moon = target_position(self._provider, NamedBody.MOON, instant, observer)
        moon_alt = to_horizontal(moon, observer, instant).altitude_deg
        moon_illum = illuminated_fraction(call_provider(self._provider.moon_phase_angle, instant))

        rate = 0.0
        if radiant_alt > 0.0:
            rate = shower.zhr * math.sin(math.radians(radiant_alt)) * (1.0 - METEOR_MOONLIGHT_LOSS * moon_illum)

        score = METEOR_BASE_SCORE
        score += next((s for lower, s in METEOR_RADIANT_TIERS if radiant_alt > lower), 0.0)
        if moon_alt <= 0.0:
            score += METEOR_MOON_DOWN_SCORE
        else:
            score += next((s for upper, s in METEOR_MOON_TIERS if moon_illum < upper), 0.0)
        score = max(0.0, min(1.0, score))

        return MeteorShowerConditions(
            shower=shower.name,
            instant=instant,
            active=shower.is_active(instant.utc.date()),
            radiant=shower.radiant,
            radiant_altitude_deg=radiant_alt,
            expected_rate_per_hour=rate,
            moon_illumination=moon_illum,
            score=score,
            quality=quality_label(score),
        )

    def supermoons(self, window: TimeWindow, cancel: threading.Event | None = None) -> list[SupermoonEvent]:
        return find_supermoons(window, self._provider, step_days=self._config.search_step_days, cancel=cancel)

    def lunar_windows(
        self,
        window: TimeWindow,
        observer: GeoObserver | None = None,
        cancel: threading.Event | None = None,
    ) -> list[LunarWindow]:
        """Hours when the Moon is high and well lit for photography, best first."""
        return find_lunar_windows(window, self._provider, self._observer(observer), cancel=cancel)

    def meteor_showers(
        self,
        window: TimeWindow,
        observer: GeoObserver | None = None,
    ) -> list[MeteorShowerEvent]:
        """Showers active during ``window``, with the sky at local midnight after each peak."""
        observer = self._observer(observer)
        events = []
        for shower, peak_date in showers_between(window.start.utc.date(), window.end.utc.date()):
            peak = local_day_start(peak_date + datetime.timedelta(days=1), observer)
            radiant = to_horizontal(shower.radiant, observer, peak)
            moon_illum = illuminated_fraction(call_provider(self._provider.moon_phase_angle, peak))
            start, _, end = shower.activity(peak_date.year)
            events.append(
                MeteorShowerEvent(
                    shower=shower.name,
                    peak=peak,
                    activity_start=start,
                    activity_end=end,
                    radiant=shower.radiant,
                    radiant_altitude_deg=radiant.altitude_deg,
                    radiant_azimuth_deg=radiant.azimuth_deg,
                    zhr=shower.zhr,
                    moon_illumination=moon_illum,
                    optimal=moon_illum < METEOR_OPTIMAL_MOON and radiant.altitude_deg > METEOR_OPTIMAL_RADIANT_DEG,
                )
            )
        return sorted(events, key=lambda e: e.peak)

    def polar_alignment(
        self,
        observer: GeoObserver | None = None,
        instant: Instant | None = None,
    ) -> PolarAlignment:
        """Where the pole star sits relative to the celestial pole right now.

        Offsets are star minus pole; the azimuth offset is measured on the sky,
        so it shrinks with the cosine of the altitude.
        """
        observer = self._observer(observer)
        instant = instant or Instant.now()
        star = POLARIS if observer.latitude_deg >= 0.0 else SIGMA_OCTANTIS
        pole_alt, pole_az = celestial_pole(observer)
        horizontal = to_horizontal(star.coord, observer, instant)

        alt_offset = (horizontal.altitude_deg - pole_alt) * 60.0
        mean_alt = math.radians((horizontal.altitude_deg + pole_alt) / 2.0)
        az_offset = wrap_signed_degrees(horizontal.azimuth_deg - pole_az) * math.cos(mean_alt) * 60.0
        lst = local_sidereal_time_deg(instant.jd, observer.longitude_deg)
        return PolarAlignment(
            instant=instant,
            star=star.name,
            star_azimuth_deg=horizontal.azimuth_deg,
            star_altitude_deg=horizontal.altitude_deg,
            pole_azimuth_deg=pole_az,
            pole_altitude_deg=pole_alt,
            hour_angle_hours=normalize_hours((lst - star.coord.right_ascension_deg) / 15.0),
            offset_arcmin=(90.0 - abs(star.coord.declination_deg)) * 60.0,
            position_angle_deg=normalize_degrees(math.degrees(math.atan2(az_offset, alt_offset))),
            alt_offset_arcmin=alt_offset,
            az_offset_arcmin=az_offset,
        )

    def star_trails(
        self,
        exposure_hours: float,
        observer: GeoObserver | None = None,
        instant: Instant | None = None,
        declination_deg: float | None = None,
    ) -> StarTrailReport:
        """Sky rotation over an exposure and the arc it draws.

        Without a declination the arc is for a star at the observer's latitude.
        """
        if not exposure_hours > 0.0:
            raise InvalidInput(f"Exposure must be positive, got {exposure_hours}")
        if declination_deg is not None and not -90.0 <= declination_deg <= 90.0:
            raise InvalidInput(f"Declination out of range: {declination_deg}")
        observer = self._observer(observer)
        instant = instant or Instant.now()
        rotation = exposure_hours * SIDEREAL_RATE_DEG_PER_HOUR
        dec = abs(observer.latitude_deg) if declination_deg is None else declination_deg
        pole_alt, pole_az = celestial_pole(observer)
        return StarTrailReport(
            instant=instant,
            exposure_hours=exposure_hours,
            rotation_deg=rotation,
            trail_length_deg=rotation * math.cos(math.radians(dec)),
            pole_azimuth_deg=pole_az,
            pole_altitude_deg=pole_alt,
        )


def celestial_pole(observer: GeoObserver) -> tuple[float, float]:
    """(altitude, azimuth) of the visible celestial pole."""
    if observer.latitude_deg >= 0.0:
        return observer.latitude_deg, 0.0
    return -observer.latitude_deg, 180.0


def resolve_target(text: str) -> CelestialTarget:
    """Turn a body name, catalog id or 'RA,Dec' pair into a target."""
    value = text.strip()
    try:
        return NamedBody(value.lower())
    except ValueError:
        pass
    if "," in value:
        ra_text, dec_text = (part.strip() for part in value.split(",", 1))
        return FixedPoint(
            name=value,
            coord=EquatorialCoord(
                right_ascension_hours=parse_sexagesimal(ra_text),
                declination_deg=parse_sexagesimal(dec_text),
            ),
        )
    found = lookup_deep_sky(value)
    if found is not None:
        return found
    try:
        return constellation_target(value)
    except InvalidInput:
        raise InvalidInput(f"Unknown target: {text!r}") from None
