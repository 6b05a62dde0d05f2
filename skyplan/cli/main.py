import argparse
import sys

from skyplan import __version__
from skyplan.cli import commands


def _add_common(parser: argparse.ArgumentParser, location: bool = True, time: bool = True) -> None:
    parser.add_argument("--config", help="Path to config TOML (default ~/.config/skyplan/config.toml)")
    parser.add_argument("--json", action="store_true", help="Output result as JSON")
    parser.add_argument("--log-level", choices=["debug", "info", "warn", "error"], help="Logging level")
    if location:
        parser.add_argument("--lat", dest="latitude_deg", type=float, help="Observer latitude (deg, north positive)")
        parser.add_argument("--lon", dest="longitude_deg", type=float, help="Observer longitude (deg, east positive)")
        parser.add_argument("--elev", dest="elevation_m", type=float, help="Observer elevation (m)")
    if time:
        parser.add_argument("--time", help="UTC time in ISO format (default now)")


def _add_window(parser: argparse.ArgumentParser, default_days: float | None = None) -> None:
    parser.add_argument("--start", help="Window start, UTC ISO (default now)")
    parser.add_argument("--end", help="Window end, UTC ISO")
    parser.add_argument(
        "--days",
        type=float,
        default=default_days,
        help=f"Window length in days when --end is omitted (default {default_days or 365.0:g})",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skyplan")
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    doctor_parser = subparsers.add_parser("doctor", help="Check config and ephemeris backend")
    _add_common(doctor_parser, location=False, time=False)
    doctor_parser.set_defaults(func=commands.run_doctor)

    position_parser = subparsers.add_parser("position", help="Position report for one or more targets")
    position_parser.add_argument("targets", nargs="+", help="Body name, catalog id (M31, NGC 7000) or 'RA,Dec'")
    _add_common(position_parser)
    position_parser.set_defaults(func=commands.run_position)

    planets_parser = subparsers.add_parser("planets", help="Planets above the horizon, brightest first")
    _add_common(planets_parser)
    planets_parser.set_defaults(func=commands.run_planets)

    riseset_parser = subparsers.add_parser("riseset", help="Rise, transit and set for a target")
    riseset_parser.add_argument("target", help="Body name, catalog id or 'RA,Dec'")
    riseset_parser.add_argument("--horizon", dest="horizon_deg", type=float, help="Horizon altitude (deg)")
    _add_common(riseset_parser)
    riseset_parser.set_defaults(func=commands.run_riseset)

    events_parser = subparsers.add_parser("events", help="Search for periodic events")
    events_parser.add_argument("kind", choices=["conjunctions", "oppositions", "eclipses"])
    _add_window(events_parser)
    events_parser.add_argument("--bodies", nargs="+", help="Bodies to search (comma or space separated)")
    events_parser.add_argument("--threshold", dest="threshold_deg", type=float, help="Conjunction threshold (deg)")
    _add_common(events_parser, time=False)
    events_parser.set_defaults(func=commands.run_events)

    transform_parser = subparsers.add_parser("transform", help="Convert a coordinate pair between frames")
    frames = ["equatorial", "horizontal", "galactic", "ecliptic"]
    transform_parser.add_argument("--from", dest="from_type", choices=frames, required=True)
    transform_parser.add_argument("--to", dest="to_type", choices=frames, required=True)
    transform_parser.add_argument("first", type=float, help="RA hours, azimuth or longitude")
    transform_parser.add_argument("second", type=float, help="Dec, altitude or latitude (deg)")
    _add_common(transform_parser)
    transform_parser.set_defaults(func=commands.run_transform)

    atmosphere_parser = subparsers.add_parser("atmosphere", help="Refraction, air mass and extinction")
    atmosphere_parser.add_argument("altitude_deg", type=float, help="Apparent altitude (deg)")
    atmosphere_parser.add_argument("--temperature", dest="temperature_c", type=float, help="Temperature (C)")
    atmosphere_parser.add_argument("--pressure", dest="pressure_mbar", type=float, help="Pressure (mbar)")
    atmosphere_parser.add_argument("--humidity", dest="humidity_pct", type=float, help="Relative humidity (%%)")
    _add_common(atmosphere_parser, location=False, time=False)
    atmosphere_parser.set_defaults(func=commands.run_atmosphere)

    moon_parser = subparsers.add_parser("moon", help="Moon phase, libration and photography quality")
    _add_common(moon_parser)
    moon_parser.set_defaults(func=commands.run_moon)

    constellation_parser = subparsers.add_parser("constellation", help="Constellation visibility and best time")
    constellation_parser.add_argument("name", help="Constellation name, e.g. Orion")
    _add_common(constellation_parser)
    constellation_parser.set_defaults(func=commands.run_constellation)

    meteors_parser = subparsers.add_parser("meteors", help="Meteor shower viewing conditions")
    meteors_parser.add_argument("name", nargs="?", help="Shower name (default: all active showers)")
    meteors_parser.add_argument("--days", type=float, help="List showers peaking within this many days instead")
    _add_common(meteors_parser)
    meteors_parser.set_defaults(func=commands.run_meteors)

    supermoons_parser = subparsers.add_parser("supermoons", help="New and full moons near perigee")
    _add_window(supermoons_parser)
    _add_common(supermoons_parser, location=False, time=False)
    supermoons_parser.set_defaults(func=commands.run_supermoons)

    lunar_parser = subparsers.add_parser("lunar", help="Best hours for photographing the Moon")
    _add_window(lunar_parser, default_days=7.0)
    _add_common(lunar_parser, time=False)
    lunar_parser.set_defaults(func=commands.run_lunar)

    polar_parser = subparsers.add_parser("polar", help="Pole star offset for polar alignment")
    _add_common(polar_parser)
    polar_parser.set_defaults(func=commands.run_polar)

    trails_parser = subparsers.add_parser("trails", help="Star trail rotation and arc length")
    trails_parser.add_argument("exposure_hours", type=float, help="Total exposure (hours)")
    trails_parser.add_argument("--dec", dest="declination_deg", type=float, help="Star declination (deg)")
    _add_common(trails_parser)
    trails_parser.set_defaults(func=commands.run_trails)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"Skyplan {__version__}")
        return 0

    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    return func(args)


if __name__ == "__main__":
    sys.exit(main())
