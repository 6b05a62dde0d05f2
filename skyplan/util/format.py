import re
from typing import Tuple

from skyplan.errors import InvalidInput

_SEXAGESIMAL = re.compile(r"^\s*([+-]?)(\d+(?:\.\d*)?)(?:[:hd°\s]+(\d+(?:\.\d*)?))?(?:[:m'\s]+(\d+(?:\.\d*)?))?[hdms°'\"]?\s*$")


def _split_dms(angle_deg: float, precision: int) -> Tuple[int, int, int, float]:
    sign = -1 if angle_deg < 0 else 1
    total_seconds = round(abs(angle_deg) * 3600.0, precision)
    deg = int(total_seconds // 3600)
    rem = total_seconds - deg * 3600
    minutes = int(rem // 60)
    return sign, deg, minutes, rem - minutes * 60


def _split_hms(hours: float, precision: int) -> Tuple[int, int, float]:
    total_seconds = round((hours % 24.0) * 3600.0, precision) % (24.0 * 3600.0)
    hours_int = int(total_seconds // 3600)
    rem = total_seconds - hours_int * 3600
    minutes = int(rem // 60)
    return hours_int, minutes, rem - minutes * 60


def hours_to_hms(hours: float, precision: int = 1) -> str:
    h, m, s = _split_hms(hours, precision)
    s_fmt = f"{s:0{3 + precision}.{precision}f}" if precision else f"{int(s):02d}"
    return f"{h:02d}h{m:02d}m{s_fmt}s"


def deg_to_dms(angle_deg: float, precision: int = 0) -> str:
    sign_val, d, m, s = _split_dms(angle_deg, precision)
    sign = "-" if sign_val < 0 else "+"
    s_fmt = f"{s:0{3 + precision}.{precision}f}" if precision else f"{int(s):02d}"
    return f"{sign}{d:02d}°{m:02d}'{s_fmt}\""


def parse_sexagesimal(text: str) -> float:
    """Parse '5:35:17', '-5d23m', '+41 16 09' or a plain decimal."""
    match = _SEXAGESIMAL.match(text)
    if not match:
        raise InvalidInput(f"Cannot parse angle: {text!r}")
    sign, whole, minutes, seconds = match.groups()
    value = float(whole) + float(minutes or 0.0) / 60.0 + float(seconds or 0.0) / 3600.0
    return -value if sign == "-" else value


def format_angle(angle_deg: float, style: str = "deg", precision: int = 2) -> str:
    if style == "deg":
        return f"{angle_deg:.{precision}f}°"
    if style == "arcmin":
        return f"{angle_deg * 60.0:.{precision}f}'"
    if style == "hms":
        return hours_to_hms(angle_deg / 15.0, precision=precision)
    if style == "dms":
        return deg_to_dms(angle_deg, precision=precision)
    raise ValueError(f"Unknown angle style: {style}")
