import datetime
import json
import logging
import sys
from pathlib import Path

from skyplan.catalog import active_showers
from skyplan.config import load_config
from skyplan.engine.formatters import (
    format_constellation_text,
    format_correction_text,
    format_events_text,
    format_lunar_windows_text,
    format_meteor_calendar_text,
    format_meteor_text,
    format_moon_text,
    format_polar_text,
    format_position_text,
    format_star_trails_text,
    format_supermoons_text,
    format_transform_text,
    to_data,
)
from skyplan.engine.position import PositionService, resolve_target
from skyplan.errors import InvalidInput, ProviderFailure, SkyplanError
from skyplan.ephemeris import get_ephemeris_provider
from skyplan.types import AtmosphericState, GeoObserver, Instant, NamedBody, TimeWindow


def _json_envelope(command: str, ok: bool, data=None, error=None) -> dict:
    return {
        "ok": ok,
        "command": command,
        "timestamp_utc": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "data": data,
        "error": error,
    }


def _init_logging(level: str | None) -> None:
    if not level:
        return
    level_map = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warn": logging.WARNING,
        "error": logging.ERROR,
    }
    logging.basicConfig(level=level_map.get(level, logging.INFO))


def _error_code(exc: Exception) -> str:
    if isinstance(exc, InvalidInput):
        return "invalid_input"
    if isinstance(exc, ProviderFailure):
        return "provider_failure"
    if isinstance(exc, FileNotFoundError):
        return "config_not_found"
    return "error"


def _handle_error(command: str, args, exc: Exception) -> int:
    if args is not None and getattr(args, "json", False):
        payload = _json_envelope(
            command=command,
            ok=False,
            data=None,
            error={
                "code": _error_code(exc),
                "message": str(exc),
                "details": None,
            },
        )
        print(json.dumps(payload, indent=2))
    else:
        print(str(exc), file=sys.stderr)
    return 2


def _emit(command: str, args, result, text: str) -> int:
    if getattr(args, "json", False):
        payload = _json_envelope(command=command, ok=True, data=to_data(result), error=None)
        print(json.dumps(payload, indent=2, default=str))
    else:
        print(text)
    return 0


def _config_path_from_args(args) -> Path | None:
    if args is None:
        return None
    path = getattr(args, "config", None)
    return Path(path) if path else None


def _service(args) -> PositionService:
    config = load_config(_config_path_from_args(args))
    return PositionService(config)


def _parse_datetime_arg(value: str | None) -> datetime.datetime | None:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        dt = datetime.datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidInput(f"Invalid ISO time: {value!r}") from exc
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def _parse_instant_arg(value: str | None) -> Instant:
    dt = _parse_datetime_arg(value)
    return Instant(dt) if dt is not None else Instant.now()


def _parse_location_args(args) -> GeoObserver | None:
    lat = getattr(args, "latitude_deg", None)
    lon = getattr(args, "longitude_deg", None)
    elev = getattr(args, "elevation_m", None)
    if lat is None and lon is None and elev is None:
        return None
    if lat is None or lon is None:
        raise InvalidInput("Both latitude and longitude are required when specifying location")
    return GeoObserver(latitude_deg=lat, longitude_deg=lon, elevation_m=elev or 0.0)


def _parse_window_args(args) -> TimeWindow:
    start = _parse_instant_arg(getattr(args, "start", None))
    end_dt = _parse_datetime_arg(getattr(args, "end", None))
    if end_dt is not None:
        end = Instant(end_dt)
    else:
        end = start.add_days(getattr(args, "days", None) or 365.0)
    if end <= start:
        raise InvalidInput("Window end must be after window start")
    return TimeWindow(start, end)


def _parse_bodies(values) -> list[NamedBody] | None:
    if not values:
        return None
    bodies = []
    for value in values:
        for name in value.split(","):
            try:
                bodies.append(NamedBody(name.strip().lower()))
            except ValueError as exc:
                raise InvalidInput(f"Unknown body: {name}") from exc
    return bodies


def run_doctor(args=None) -> int:
    _init_logging(getattr(args, "log_level", None))

    def check_config():
        try:
            load_config(_config_path_from_args(args))
            return {"ok": True, "detail": "loaded (defaults applied if missing)"}
        except Exception as e:
            return {"ok": False, "detail": f"invalid config: {e}"}

    def check_site(config):
        if config.site_latitude_deg is None or config.site_longitude_deg is None:
            return {"ok": False, "detail": "site.latitude_deg / site.longitude_deg not set"}
        try:
            GeoObserver(config.site_latitude_deg, config.site_longitude_deg, config.site_elevation_m)
        except InvalidInput as e:
            return {"ok": False, "detail": str(e)}
        return {"ok": True, "detail": f"{config.site_latitude_deg}, {config.site_longitude_deg}"}

    def check_ephemeris(config):
        try:
            provider = get_ephemeris_provider(config)
        except ValueError as e:
            return {"ok": False, "detail": str(e)}
        return provider.is_available()

    checks = {"config": check_config()}
    if checks["config"]["ok"]:
        config = load_config(_config_path_from_args(args))
        checks["site"] = check_site(config)
        checks[f"ephemeris ({config.ephemeris_backend})"] = check_ephemeris(config)

    ok = all(c["ok"] for c in checks.values())

    if args is not None and getattr(args, "json", False):
        payload = _json_envelope(
            command="doctor",
            ok=ok,
            data={"checks": checks},
            error=None
            if ok
            else {
                "code": "doctor_failed",
                "message": "one or more checks failed",
                "details": None,
            },
        )
        print(json.dumps(payload, indent=2))
    else:
        print("Skyplan Doctor Report")
        print("=====================")

        for name, result in checks.items():
            status = "OK" if result["ok"] else "MISSING"
            print(f"{name:20} : {status} ({result['detail']})")

        if ok:
            print("\nSystem ready.")
        else:
            print("\nSome components are missing or not configured.")

    return 0 if ok else 1


def run_position(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        observer = _parse_location_args(args)
        instant = _parse_instant_arg(args.time)
        targets = [resolve_target(text) for text in args.targets]
        if len(targets) == 1:
            reports = [service.report(targets[0], observer, instant)]
        else:
            observer = observer or service.default_observer()
            if observer is None:
                raise InvalidInput("Observer location is required (lat/lon)")
            reports = service.reports([(t, observer, instant) for t in targets])
        text = "\n\n".join(format_position_text(r) for r in reports)
        return _emit("position", args, reports if len(reports) > 1 else reports[0], text)
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("position", args, e)


def run_planets(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        reports = service.visible_planets(_parse_location_args(args), _parse_instant_arg(args.time))
        if reports:
            text = "\n".join(
                f"{r.name:8} alt {r.horizontal.altitude_deg:5.1f}°  {r.direction:2}  "
                f"mag {r.illumination.magnitude:5.1f}"
                for r in reports
            )
        else:
            text = "No planets above the horizon."
        return _emit("planets", args, reports, text)
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("planets", args, e)


def run_riseset(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        target = resolve_target(args.target)
        date = _parse_instant_arg(args.time)
        rst = service.rise_set_transit(target, date, _parse_location_args(args), horizon_deg=args.horizon_deg)
        text = "\n".join(
            [
                f"Rise:    {rst.rise or '-'}",
                f"Transit: {rst.transit or '-'}",
                f"Set:     {rst.set or '-'}",
            ]
        )
        return _emit("riseset", args, rst, text)
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("riseset", args, e)


def run_events(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    command = f"events {args.kind}"
    try:
        service = _service(args)
        window = _parse_window_args(args)
        observer = _parse_location_args(args)
        bodies = _parse_bodies(getattr(args, "bodies", None))
        if args.kind == "conjunctions":
            events = service.conjunctions(bodies, window, observer, threshold_deg=args.threshold_deg)
        elif args.kind == "oppositions":
            events = service.oppositions(bodies, window)
        else:
            events = service.eclipses(window, observer)
        return _emit(command, args, events, format_events_text(events))
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error(command, args, e)


def run_transform(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        result = service.transform(
            args.from_type,
            args.to_type,
            args.first,
            args.second,
            observer=_parse_location_args(args),
            instant=_parse_instant_arg(args.time),
        )
        return _emit("transform", args, result, format_transform_text(result))
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("transform", args, e)


def run_atmosphere(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        defaults = service.default_atmosphere()
        state = AtmosphericState(
            temperature_c=defaults.temperature_c if args.temperature_c is None else args.temperature_c,
            pressure_mbar=defaults.pressure_mbar if args.pressure_mbar is None else args.pressure_mbar,
            humidity_pct=defaults.humidity_pct if args.humidity_pct is None else args.humidity_pct,
        )
        correction = service.atmospheric_correction(args.altitude_deg, state)
        return _emit("atmosphere", args, correction, format_correction_text(correction))
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("atmosphere", args, e)


def run_moon(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        report = service.moon_report(_parse_location_args(args), _parse_instant_arg(args.time))
        return _emit("moon", args, report, format_moon_text(report))
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("moon", args, e)


def run_constellation(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        report = service.constellation_report(args.name, _parse_location_args(args), _parse_instant_arg(args.time))
        return _emit("constellation", args, report, format_constellation_text(report))
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("constellation", args, e)


def run_meteors(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        observer = _parse_location_args(args)
        instant = _parse_instant_arg(args.time)
        if getattr(args, "days", None) is not None:
            if args.days <= 0:
                raise InvalidInput("--days must be positive")
            events = service.meteor_showers(TimeWindow(instant, instant.add_days(args.days)), observer)
            return _emit("meteors", args, events, format_meteor_calendar_text(events))
        if args.name:
            names = [args.name]
        else:
            names = [shower.name for shower in active_showers(instant.utc.date())]
        results = [service.meteor_shower_conditions(name, observer, instant) for name in names]
        text = "\n\n".join(format_meteor_text(c) for c in results) or "No meteor showers active."
        return _emit("meteors", args, results, text)
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("meteors", args, e)


def run_supermoons(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        events = service.supermoons(_parse_window_args(args))
        return _emit("supermoons", args, events, format_supermoons_text(events))
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("supermoons", args, e)


def run_lunar(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        windows = service.lunar_windows(_parse_window_args(args), _parse_location_args(args))
        return _emit("lunar", args, windows, format_lunar_windows_text(windows))
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("lunar", args, e)


def run_polar(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        result = service.polar_alignment(_parse_location_args(args), _parse_instant_arg(args.time))
        return _emit("polar", args, result, format_polar_text(result))
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("polar", args, e)


def run_trails(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        service = _service(args)
        report = service.star_trails(
            args.exposure_hours,
            _parse_location_args(args),
            _parse_instant_arg(args.time),
            declination_deg=args.declination_deg,
        )
        return _emit("trails", args, report, format_star_trails_text(report))
    except (SkyplanError, FileNotFoundError) as e:
        return _handle_error("trails", args, e)
