from .base import EphemerisProvider, call_provider
from .astropy_backend import AstropyEphemeris
from .elements import ElementsEphemeris
from skyplan.errors import InvalidInput


def get_ephemeris_provider(config):
    backend = config.ephemeris_backend
    if backend == "astropy":
        return AstropyEphemeris()
    if backend == "elements":
        return ElementsEphemeris()
    raise InvalidInput(f"Unsupported ephemeris backend: {backend}")

__all__ = [
    "EphemerisProvider",
    "AstropyEphemeris",
    "ElementsEphemeris",
    "call_provider",
    "get_ephemeris_provider",
]
