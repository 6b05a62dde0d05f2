import dataclasses
import datetime
import enum
import json
import math

from skyplan.types import (
    AtmosphericCorrection,
    ConjunctionEvent,
    ConstellationReport,
    CoordinateTransformResult,
    EclipseEvent,
    Instant,
    LunarWindow,
    MeteorShowerConditions,
    MeteorShowerEvent,
    MoonReport,
    OppositionEvent,
    PolarAlignment,
    PositionReport,
    RiseSetTransit,
    StarTrailReport,
    SupermoonEvent,
)
from skyplan.util.format import deg_to_dms, hours_to_hms


def to_data(value):
    """Plain JSON-ready structure for any report, event or coordinate."""
    if isinstance(value, Instant):
        return value.utc.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        data = {f.name: to_data(getattr(value, f.name)) for f in dataclasses.fields(value)}
        kind = getattr(value, "kind", None)
        if isinstance(kind, enum.Enum) and "kind" not in data:
            data["kind"] = kind.value
        return data
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {str(k): to_data(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_data(v) for v in value]
    return value


def format_json(result) -> str:
    return json.dumps(to_data(result), indent=2, default=str)


def _to_local(instant: Instant | None, tz: datetime.tzinfo | None = None) -> str:
    if instant is None:
        return "-"
    if tz is None:
        tz = datetime.datetime.now().astimezone().tzinfo
    return instant.utc.astimezone(tz).strftime("%Y-%m-%d %H:%M")


def _rise_set_lines(rst: RiseSetTransit, circumpolar: bool = False) -> list[str]:
    if rst.rise is None and rst.set is None:
        return ["Rise/set: circumpolar" if circumpolar else "Rise/set: none today"]
    return [
        f"Rise:    {_to_local(rst.rise)}",
        f"Transit: {_to_local(rst.transit)}",
        f"Set:     {_to_local(rst.set)}",
    ]


def format_position_text(report: PositionReport) -> str:
    eq = report.equatorial
    hz = report.horizontal
    lines = [report.name, "=" * len(report.name)]
    lines.append(f"Time:       {_to_local(report.instant)}")
    lines.append(
        f"RA/Dec:     {hours_to_hms(eq.right_ascension_hours)} {deg_to_dms(eq.declination_deg)} ({eq.epoch.value})"
    )
    lines.append(
        f"Alt/Az:     {hz.altitude_deg:.1f}° / {hz.azimuth_deg:.1f}° ({report.direction}), "
        f"apparent alt {report.apparent_altitude_deg:.2f}°"
    )
    lines.append(f"Galactic:   l {report.galactic.longitude_deg:.2f}°, b {report.galactic.latitude_deg:.2f}°")
    lines.append(f"Ecliptic:   λ {report.ecliptic.longitude_deg:.2f}°, β {report.ecliptic.latitude_deg:.2f}°")
    if report.illumination is not None:
        lines.append(
            f"Magnitude:  {report.illumination.magnitude:.1f}, "
            f"{report.illumination.phase_fraction * 100:.0f}% illuminated"
        )
    if report.angular_diameter_arcsec is not None:
        lines.append(f"Diameter:   {report.angular_diameter_arcsec:.1f}\"")
    lines.append(f"Altitude:   {report.altitude_category}")
    lines.append(f"Score:      {report.score.value:.2f} ({report.quality})")
    lines.extend(_rise_set_lines(report.rise_set_transit, report.circumpolar))
    return "\n".join(lines)


def format_moon_text(report: MoonReport) -> str:
    lines = ["Moon", "===="]
    lines.append(f"Time:         {_to_local(report.instant)}")
    lines.append(f"Phase:        {report.phase_name} ({report.phase_angle_deg:.1f}°)")
    lines.append(f"Illuminated:  {report.illumination_fraction * 100:.0f}%")
    lines.append(f"Alt/Az:       {report.horizontal.altitude_deg:.1f}° / {report.horizontal.azimuth_deg:.1f}°")
    lines.append(f"Distance:     {report.distance_km:,.0f} km" + (" (supermoon)" if report.supermoon else ""))
    lines.append(f"Diameter:     {report.angular_diameter_arcmin:.1f}'")
    lines.append(
        f"Libration:    lat {report.libration.latitude_deg:+.2f}°, lon {report.libration.longitude_deg:+.2f}°"
    )
    lines.append(f"Photography:  {report.photography_quality:.2f}")
    lines.extend(_rise_set_lines(report.rise_set_transit))
    return "\n".join(lines)


def format_constellation_text(report: ConstellationReport) -> str:
    lines = [report.name, "=" * len(report.name)]
    lines.append(
        f"Centre:   {hours_to_hms(report.center.right_ascension_hours)} {deg_to_dms(report.center.declination_deg)}"
    )
    lines.append(f"Alt/Az:   {report.horizontal.altitude_deg:.1f}° / {report.horizontal.azimuth_deg:.1f}°")
    lines.extend(_rise_set_lines(report.rise_set_transit, report.circumpolar))
    lines.append(f"Best:     {_to_local(report.optimal_time)}")
    if report.objects:
        lines.append(f"Objects:  {', '.join(report.objects)}")
    return "\n".join(lines)


def format_meteor_text(conditions: MeteorShowerConditions) -> str:
    state = "active" if conditions.active else "inactive"
    return "\n".join(
        [
            f"{conditions.shower} ({state})",
            f"Radiant altitude: {conditions.radiant_altitude_deg:.1f}°",
            f"Expected rate:    {conditions.expected_rate_per_hour:.0f}/h",
            f"Moon:             {conditions.moon_illumination * 100:.0f}% illuminated",
            f"Score:            {conditions.score:.2f} ({conditions.quality})",
        ]
    )


def format_meteor_calendar_text(events: list[MeteorShowerEvent]) -> str:
    if not events:
        return "No meteor showers in range."
    lines = []
    for event in events:
        line = (
            f"{_to_local(event.peak)}  {event.shower:<14} ZHR {event.zhr:>3}  "
            f"radiant {event.radiant_altitude_deg:.0f}°  moon {event.moon_illumination * 100:.0f}%"
        )
        if event.optimal:
            line += "  *"
        lines.append(line)
    return "\n".join(lines)


def format_supermoons_text(events: list[SupermoonEvent]) -> str:
    if not events:
        return "No supermoons in range."
    return "\n".join(
        f"{_to_local(e.instant)}  {e.name:<15} {e.distance_km:,.0f} km  "
        f"{e.angular_diameter_arcmin:.1f}'  +{e.percent_larger:.1f}%"
        for e in events
    )


def format_lunar_windows_text(windows: list[LunarWindow]) -> str:
    if not windows:
        return "No lunar windows found."
    return "\n".join(
        f"{_to_local(w.start)} - {_to_local(w.end)}  alt {w.altitude_deg:.0f}°  "
        f"{w.phase_name} ({w.illumination_fraction * 100:.0f}%)  quality {w.quality:.2f}"
        for w in windows
    )


def format_polar_text(result: PolarAlignment) -> str:
    return "\n".join(
        [
            f"{result.star} at {_to_local(result.instant)}",
            f"Star Alt/Az:  {result.star_altitude_deg:.3f}° / {result.star_azimuth_deg:.3f}°",
            f"Pole Alt/Az:  {result.pole_altitude_deg:.3f}° / {result.pole_azimuth_deg:.3f}°",
            f"Hour angle:   {hours_to_hms(result.hour_angle_hours)}",
            f"Offset:       {result.offset_arcmin:.1f}' at PA {result.position_angle_deg:.1f}°",
            f"Alt offset:   {result.alt_offset_arcmin:+.1f}'",
            f"Az offset:    {result.az_offset_arcmin:+.1f}'",
        ]
    )


def format_star_trails_text(report: StarTrailReport) -> str:
    return "\n".join(
        [
            f"Exposure:  {report.exposure_hours:g} h",
            f"Rotation:  {report.rotation_deg:.1f}°",
            f"Trail:     {report.trail_length_deg:.1f}°",
            f"Pole:      alt {report.pole_altitude_deg:.1f}°, az {report.pole_azimuth_deg:.0f}°",
        ]
    )


def format_correction_text(correction: AtmosphericCorrection) -> str:
    lines = [
        f"Apparent altitude: {correction.apparent_altitude_deg:.3f}°",
        f"True altitude:     {correction.true_altitude_deg:.3f}°",
        f"Refraction:        {correction.refraction_arcmin:.2f}'",
        f"Air mass:          {_finite_text(correction.air_mass, '.2f')}",
        f"Extinction:        {_finite_text(correction.extinction_mag, '.2f')} mag",
    ]
    lines.extend(f"  - {note}" for note in correction.notes)
    return "\n".join(lines)


def format_transform_text(result: CoordinateTransformResult) -> str:
    return (
        f"{result.from_type.value} -> {result.to_type.value}: "
        f"{result.first:.4f}, {result.second:.4f}"
    )


def format_event_line(event) -> str:
    when = _to_local(event.instant)
    if isinstance(event, ConjunctionEvent):
        line = (
            f"{when}  conjunction  {event.first.display_name}-{event.second.display_name}  "
            f"{event.separation_deg:.2f}° ({event.separation_arcmin:.0f}')"
        )
        if event.altitude_deg is not None:
            line += f"  alt {event.altitude_deg:.0f}°"
        return line
    if isinstance(event, OppositionEvent):
        line = f"{when}  opposition   {event.body.display_name}  {event.distance_au:.3f} AU"
        if event.magnitude is not None:
            line += f"  mag {event.magnitude:.1f}"
        return line
    if isinstance(event, EclipseEvent):
        line = f"{when}  {event.eclipse_kind.value} lunar eclipse"
        if event.obscuration:
            line += f"  {event.obscuration * 100:.0f}%"
        if event.visible is not None:
            line += "  visible" if event.visible else "  not visible"
        return line
    raise TypeError(f"Unknown event type: {type(event).__name__}")


def format_events_text(events) -> str:
    if not events:
        return "No events found."
    return "\n".join(format_event_line(e) for e in events)


def _finite_text(value: float, spec: str) -> str:
    if not math.isfinite(value):
        return "n/a"
    return format(value, spec)
