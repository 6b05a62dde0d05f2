"""Rise/set/transit and periodic event searches.

Periodic scans step through the window a day at a time, watching a wrapped
longitude difference for sign changes, and narrow each one by bisection.
Scans are generators so callers can stop early; each also checks an optional
``threading.Event`` after every candidate and between search steps.
"""

import datetime
import itertools
import logging
import threading
from typing import Callable, Iterable, Iterator

from .astro import wrap_signed_degrees
from .frames import angular_separation, midpoint, to_horizontal
from .roots import bisect_crossing
from .visibility import (
    SUPERMOON_DISTANCE_KM,
    angular_diameter_arcsec,
    illuminated_fraction,
    lunar_photography_quality,
    moon_angular_diameter_arcmin,
    moon_phase_name,
    percent_larger,
    supermoon_name,
)
from skyplan.ephemeris.base import AU_KM, SYNODIC_MONTH_DAYS, call_provider
from skyplan.errors import InvalidInput, ProviderFailure
from skyplan.types import (
    OUTER_PLANETS,
    PLANETS,
    CelestialTarget,
    ConjunctionEvent,
    EclipseDescriptor,
    EclipseEvent,
    EquatorialCoord,
    EventKind,
    FixedPoint,
    GeoObserver,
    Instant,
    LunarWindow,
    NamedBody,
    OppositionEvent,
    PeriodicEvent,
    RiseSetTransit,
    SupermoonEvent,
    TimeWindow,
    target_name,
)

logger = logging.getLogger(__name__)

SEARCH_STEP_DAYS = 1.0
CONJUNCTION_THRESHOLD_DEG = 5.0
CONJUNCTION_ADVANCE_DAYS = 1.0
OPPOSITION_SKIP_DAYS = 300.0
ECLIPSE_SKIP_DAYS = 180.0
RISE_SET_STEP_MINUTES = 10.0
RISE_SET_TOLERANCE_S = 1.0
EVENT_TOLERANCE_S = 60.0
SYZYGY_ADVANCE_DAYS = 1.0
LUNAR_STEP_HOURS = 1.0
LUNAR_WINDOW_HOURS = 2.0
LUNAR_MIN_ALTITUDE_DEG = 20.0
LUNAR_MIN_QUALITY = 0.6


def _cancelled(cancel: threading.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


def target_position(
    provider,
    target: CelestialTarget,
    instant: Instant,
    observer: GeoObserver | None = None,
) -> EquatorialCoord:
    if isinstance(target, FixedPoint):
        return target.coord
    if provider is None:
        raise InvalidInput(f"{target_name(target)} needs an ephemeris provider")
    return call_provider(provider.equatorial_position, target, instant, observer)


def local_day_start(date: datetime.date, observer: GeoObserver) -> Instant:
    """Local mean midnight at the observer's longitude, as an instant."""
    midnight = datetime.datetime.combine(date, datetime.time(0, 0), tzinfo=datetime.timezone.utc)
    return Instant(midnight - datetime.timedelta(hours=observer.longitude_deg / 15.0))


def _find_crossing(
    fn: Callable[[Instant], float],
    start: Instant,
    end: Instant,
    step_minutes: float,
    rising: bool,
) -> Instant | None:
    t0 = start
    v0 = fn(t0)
    while t0 < end:
        t1 = min(t0.add_minutes(step_minutes), end)
        v1 = fn(t1)
        if (rising and v0 < 0.0 <= v1) or (not rising and v0 >= 0.0 > v1):
            return bisect_crossing(fn, t0, t1, v0, tolerance_s=RISE_SET_TOLERANCE_S)
        t0, v0 = t1, v1
    return None


def find_rise_set_transit(
    target: CelestialTarget,
    observer: GeoObserver,
    date,
    provider=None,
    *,
    horizon_deg: float = 0.0,
    step_minutes: float = RISE_SET_STEP_MINUTES,
) -> RiseSetTransit:
    """Rise, set and transit of ``target`` during the observer's local day.

    The set is the first setting after the rise, so it may fall on the next
    calendar day. Transit is the rise/set midpoint, an approximation of the
    culmination. Fields are None when the target does not cross the horizon.
    """
    if isinstance(date, Instant):
        date = date.utc.date()
    elif isinstance(date, datetime.datetime):
        date = date.date()
    start = local_day_start(date, observer)
    end = start.add_days(1.0)

    def height(t: Instant) -> float:
        position = target_position(provider, target, t, observer)
        return to_horizontal(position, observer, t).altitude_deg - horizon_deg

    try:
        rise = _find_crossing(height, start, end, step_minutes, rising=True)
        if rise is not None:
            set_ = _find_crossing(height, rise, rise.add_days(1.0), step_minutes, rising=False)
        else:
            set_ = _find_crossing(height, start, end, step_minutes, rising=False)
    except ProviderFailure as exc:
        logger.warning("Rise/set search for %s failed: %s", target_name(target), exc)
        return RiseSetTransit()

    transit = rise.midpoint(set_) if rise is not None and set_ is not None else None
    return RiseSetTransit(rise=rise, set=set_, transit=transit)


def _next_zero_crossing(
    fn: Callable[[Instant], float],
    start: Instant,
    end: Instant,
    step_days: float,
    cancel: threading.Event | None = None,
) -> Instant | None:
    """First sign change of a wrapped angle, ignoring jumps across +/-180.

    Returns None when the window runs out or ``cancel`` is set between steps.
    """
    t0 = start
    v0 = fn(t0)
    while t0 < end:
        t1 = min(t0.add_days(step_days), end)
        v1 = fn(t1)
        if _cancelled(cancel):
            return None
        if (v0 < 0.0) != (v1 < 0.0) and abs(v1 - v0) < 180.0:
            return bisect_crossing(fn, t0, t1, v0, tolerance_s=EVENT_TOLERANCE_S)
        t0, v0 = t1, v1
    return None


def _as_bodies(bodies: Iterable) -> list[NamedBody]:
    try:
        return list(dict.fromkeys(NamedBody(b) for b in bodies))
    except ValueError as exc:
        raise InvalidInput(f"Unknown body in {list(bodies)!r}") from exc


def _longitude(provider, body: NamedBody, instant: Instant) -> float:
    return call_provider(provider.ecliptic_longitude, body, instant)


def _pair_conjunctions(
    first: NamedBody,
    second: NamedBody,
    window: TimeWindow,
    provider,
    observer: GeoObserver | None,
    threshold_deg: float,
    step_days: float,
    advance_days: float,
    cancel: threading.Event | None,
) -> Iterator[ConjunctionEvent]:
    def offset(t: Instant) -> float:
        return wrap_signed_degrees(_longitude(provider, first, t) - _longitude(provider, second, t))

    cursor = window.start
    while cursor < window.end:
        found = _next_zero_crossing(offset, cursor, window.end, step_days, cancel)
        if found is None:
            return
        a = target_position(provider, first, found)
        b = target_position(provider, second, found)
        separation = angular_separation(a, b)
        if separation < threshold_deg:
            altitude = azimuth = None
            if observer is not None:
                local = midpoint(
                    target_position(provider, first, found, observer),
                    target_position(provider, second, found, observer),
                )
                horizontal = to_horizontal(local, observer, found)
                altitude, azimuth = horizontal.altitude_deg, horizontal.azimuth_deg
            yield ConjunctionEvent(
                instant=found,
                first=first,
                second=second,
                separation_deg=separation,
                altitude_deg=altitude,
                azimuth_deg=azimuth,
            )
        else:
            logger.debug("%s/%s at %s: %.2f deg apart, not a conjunction", first.value, second.value, found, separation)
        if _cancelled(cancel):
            return
        cursor = found.add_days(advance_days)


def iter_conjunctions(
    bodies: Iterable[NamedBody],
    window: TimeWindow,
    provider,
    observer: GeoObserver | None = None,
    *,
    threshold_deg: float = CONJUNCTION_THRESHOLD_DEG,
    step_days: float = SEARCH_STEP_DAYS,
    advance_days: float = CONJUNCTION_ADVANCE_DAYS,
    cancel: threading.Event | None = None,
) -> Iterator[ConjunctionEvent]:
    """Conjunctions for every unordered pair of ``bodies``, pair by pair."""
    if window.is_empty:
        return
    unique = _as_bodies(bodies)
    for first, second in itertools.combinations(unique, 2):
        if _cancelled(cancel):
            return
        try:
            yield from _pair_conjunctions(
                first, second, window, provider, observer, threshold_deg, step_days, advance_days, cancel
            )
        except ProviderFailure as exc:
            logger.warning("Conjunction search for %s/%s failed: %s", first.value, second.value, exc)


def _body_oppositions(
    body: NamedBody,
    window: TimeWindow,
    provider,
    step_days: float,
    skip_days: float,
    cancel: threading.Event | None,
) -> Iterator[OppositionEvent]:
    def offset(t: Instant) -> float:
        return wrap_signed_degrees(_longitude(provider, body, t) - _longitude(provider, NamedBody.SUN, t) - 180.0)

    cursor = window.start
    while cursor < window.end:
        found = _next_zero_crossing(offset, cursor, window.end, step_days, cancel)
        if found is None:
            return
        position = target_position(provider, body, found)
        illumination = call_provider(provider.illumination, body, found)
        yield OppositionEvent(
            instant=found,
            body=body,
            distance_au=position.distance_au,
            magnitude=illumination.magnitude,
            angular_diameter_arcsec=angular_diameter_arcsec(body, position.distance_au),
        )
        if _cancelled(cancel):
            return
        cursor = found.add_days(skip_days)


def iter_oppositions(
    bodies: Iterable[NamedBody],
    window: TimeWindow,
    provider,
    *,
    step_days: float = SEARCH_STEP_DAYS,
    skip_days: float = OPPOSITION_SKIP_DAYS,
    cancel: threading.Event | None = None,
) -> Iterator[OppositionEvent]:
    targets = _as_bodies(bodies)
    inner = [b.value for b in targets if not b.is_outer]
    if inner:
        raise InvalidInput(f"Oppositions are defined for outer planets only, got {', '.join(inner)}")
    if window.is_empty:
        return
    for body in targets:
        if _cancelled(cancel):
            return
        try:
            yield from _body_oppositions(body, window, provider, step_days, skip_days, cancel)
        except ProviderFailure as exc:
            logger.warning("Opposition search for %s failed: %s", body.value, exc)


def eclipse_event(descriptor: EclipseDescriptor, provider=None, observer: GeoObserver | None = None) -> EclipseEvent:
    """Expand a provider eclipse descriptor into phase begin/end instants."""
    peak = descriptor.peak

    def phase(semi_duration_min: float) -> tuple[Instant | None, Instant | None]:
        if semi_duration_min <= 0.0:
            return None, None
        return peak.add_minutes(-semi_duration_min), peak.add_minutes(semi_duration_min)

    penumbral_begin, penumbral_end = phase(descriptor.penumbral_semi_duration_min)
    partial_begin, partial_end = phase(descriptor.partial_semi_duration_min)
    total_begin, total_end = phase(descriptor.total_semi_duration_min)

    moon_altitude = visible = None
    if observer is not None and provider is not None:
        moon = target_position(provider, NamedBody.MOON, peak, observer)
        moon_altitude = to_horizontal(moon, observer, peak).altitude_deg
        visible = moon_altitude > 0.0

    return EclipseEvent(
        instant=peak,
        eclipse_kind=descriptor.kind,
        penumbral_begin=penumbral_begin or peak,
        penumbral_end=penumbral_end or peak,
        partial_begin=partial_begin,
        partial_end=partial_end,
        total_begin=total_begin,
        total_end=total_end,
        obscuration=descriptor.obscuration,
        moon_altitude_deg=moon_altitude,
        visible=visible,
    )


def iter_eclipses(
    window: TimeWindow,
    provider,
    observer: GeoObserver | None = None,
    *,
    skip_days: float = ECLIPSE_SKIP_DAYS,
    cancel: threading.Event | None = None,
) -> Iterator[EclipseEvent]:
    if window.is_empty:
        return
    cursor = window.start
    while cursor < window.end:
        try:
            descriptor = call_provider(provider.search_eclipse, cursor)
            if descriptor is None or descriptor.peak > window.end:
                return
            event = eclipse_event(descriptor, provider, observer)
        except ProviderFailure as exc:
            logger.warning("Eclipse search from %s failed: %s", cursor, exc)
            if _cancelled(cancel):
                return
            cursor = cursor.add_days(SYNODIC_MONTH_DAYS)
            continue
        yield event
        if _cancelled(cancel):
            return
        cursor = descriptor.peak.add_days(skip_days)


def iter_supermoons(
    window: TimeWindow,
    provider,
    *,
    step_days: float = SEARCH_STEP_DAYS,
    threshold_km: float = SUPERMOON_DISTANCE_KM,
    cancel: threading.Event | None = None,
) -> Iterator[SupermoonEvent]:
    """New and full moons closer than ``threshold_km``.

    Doubling the Moon-Sun elongation folds new and full moon onto the same
    zero, so one crossing scan finds both.
    """
    if window.is_empty:
        return

    def offset(t: Instant) -> float:
        elongation = _longitude(provider, NamedBody.MOON, t) - _longitude(provider, NamedBody.SUN, t)
        return wrap_signed_degrees(2.0 * elongation)

    cursor = window.start
    try:
        while cursor < window.end:
            found = _next_zero_crossing(offset, cursor, window.end, step_days, cancel)
            if found is None:
                return
            distance_au = target_position(provider, NamedBody.MOON, found).distance_au
            distance_km = distance_au * AU_KM
            if distance_km < threshold_km:
                phase = call_provider(provider.moon_phase_angle, found)
                yield SupermoonEvent(
                    instant=found,
                    name=supermoon_name(phase),
                    phase_angle_deg=phase,
                    distance_km=distance_km,
                    angular_diameter_arcmin=moon_angular_diameter_arcmin(distance_au),
                    percent_larger=percent_larger(distance_km),
                )
            if _cancelled(cancel):
                return
            cursor = found.add_days(SYZYGY_ADVANCE_DAYS)
    except ProviderFailure as exc:
        logger.warning("Supermoon search from %s failed: %s", cursor, exc)


def iter_lunar_windows(
    window: TimeWindow,
    provider,
    observer: GeoObserver,
    *,
    step_hours: float = LUNAR_STEP_HOURS,
    duration_hours: float = LUNAR_WINDOW_HOURS,
    min_altitude_deg: float = LUNAR_MIN_ALTITUDE_DEG,
    min_quality: float = LUNAR_MIN_QUALITY,
    cancel: threading.Event | None = None,
) -> Iterator[LunarWindow]:
    """Hourly samples where the Moon is high and photographs well."""
    t = window.start
    while window.contains(t):
        try:
            moon = target_position(provider, NamedBody.MOON, t, observer)
            altitude = to_horizontal(moon, observer, t).altitude_deg
            if altitude > min_altitude_deg:
                phase = call_provider(provider.moon_phase_angle, t)
                fraction = illuminated_fraction(phase)
                quality = lunar_photography_quality(altitude, phase, fraction)
                if quality > min_quality:
                    yield LunarWindow(
                        start=t,
                        end=t.add_minutes(duration_hours * 60.0),
                        altitude_deg=altitude,
                        phase_angle_deg=phase,
                        phase_name=moon_phase_name(phase),
                        illumination_fraction=fraction,
                        quality=quality,
                    )
        except ProviderFailure as exc:
            logger.warning("Lunar window sample at %s failed: %s", t, exc)
        if _cancelled(cancel):
            return
        t = t.add_minutes(step_hours * 60.0)


def find_supermoons(window, provider, **kwargs) -> list[SupermoonEvent]:
    return sorted(iter_supermoons(window, provider, **kwargs), key=lambda e: e.instant)


def find_lunar_windows(window, provider, observer, **kwargs) -> list[LunarWindow]:
    """Lunar windows, best quality first."""
    return sorted(iter_lunar_windows(window, provider, observer, **kwargs), key=lambda w: -w.quality)


def find_conjunctions(bodies, window, provider, observer=None, **kwargs) -> list[ConjunctionEvent]:
    return sorted(iter_conjunctions(bodies, window, provider, observer, **kwargs), key=lambda e: e.instant)


def find_oppositions(bodies, window, provider, **kwargs) -> list[OppositionEvent]:
    return sorted(iter_oppositions(bodies, window, provider, **kwargs), key=lambda e: e.instant)


def find_eclipses(window, provider, observer=None, **kwargs) -> list[EclipseEvent]:
    return sorted(iter_eclipses(window, provider, observer, **kwargs), key=lambda e: e.instant)


def find_periodic_events(
    kind,
    bodies: Iterable[NamedBody] | None,
    window: TimeWindow,
    provider,
    observer: GeoObserver | None = None,
    **kwargs,
) -> list[PeriodicEvent]:
    """Dispatch to the conjunction, opposition or eclipse search."""
    try:
        kind = EventKind(kind)
    except ValueError as exc:
        raise InvalidInput(f"Unsupported event kind: {kind!r}") from exc

    if kind is EventKind.CONJUNCTION:
        return find_conjunctions(bodies or PLANETS, window, provider, observer, **kwargs)
    if kind is EventKind.OPPOSITION:
        return find_oppositions(bodies or OUTER_PLANETS, window, provider, **kwargs)
    return find_eclipses(window, provider, observer, **kwargs)
