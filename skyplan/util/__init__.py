from .format import (
    deg_to_dms,
    format_angle,
    hours_to_hms,
    parse_sexagesimal,
)

__all__ = [
    "deg_to_dms",
    "format_angle",
    "hours_to_hms",
    "parse_sexagesimal",
]
