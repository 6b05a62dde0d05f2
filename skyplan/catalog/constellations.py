from .base import CatalogProvider
from skyplan.errors import InvalidInput
from skyplan.types import EquatorialCoord, FixedPoint

# Approximate centre (RA hours, Dec degrees) of each constellation's figure
CONSTELLATION_CENTERS = {
    "Orion": (5.5, 5.0),
    "Cassiopeia": (1.0, 60.0),
    "Ursa Major": (11.0, 50.0),
    "Ursa Minor": (15.0, 75.0),
    "Draco": (17.0, 65.0),
    "Cygnus": (20.5, 40.0),
    "Lyra": (18.75, 39.0),
    "Aquila": (19.7, 5.0),
    "Sagittarius": (19.0, -25.0),
    "Scorpius": (16.5, -26.0),
    "Centaurus": (13.0, -47.0),
    "Crux": (12.5, -60.0),
    "Andromeda": (1.0, 37.0),
    "Perseus": (2.3, 45.0),
    "Auriga": (6.0, 42.0),
    "Gemini": (7.0, 22.0),
    "Cancer": (8.7, 20.0),
    "Leo": (10.7, 15.0),
    "Virgo": (13.4, -4.0),
    "Libra": (15.2, -15.0),
    "Capricornus": (21.0, -20.0),
    "Aquarius": (22.5, -10.0),
    "Pisces": (0.7, 15.0),
    "Aries": (2.7, 20.0),
    "Taurus": (4.6, 19.0),
}


class ConstellationCatalogProvider(CatalogProvider):
    name = "constellations"

    def list_targets(self) -> list[FixedPoint]:
        return [_target(name) for name in CONSTELLATION_CENTERS]


def _target(name: str) -> FixedPoint:
    ra, dec = CONSTELLATION_CENTERS[name]
    return FixedPoint(
        name=name,
        coord=EquatorialCoord(right_ascension_hours=ra, declination_deg=dec),
        object_type="constellation",
        constellation=name,
    )


def constellation_target(name: str) -> FixedPoint:
    wanted = name.strip().lower().replace("_", " ")
    for known in CONSTELLATION_CENTERS:
        if known.lower() == wanted or known.lower().replace(" ", "") == wanted:
            return _target(known)
    raise InvalidInput(f"Unknown constellation: {name}")
