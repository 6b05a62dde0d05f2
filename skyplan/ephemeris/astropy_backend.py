import logging

from astropy.coordinates import EarthLocation, PrecessedGeocentric, get_body
from astropy.time import Time
import astropy.units as u

from .base import EphemerisProvider
from skyplan.types import Epoch, EquatorialCoord, GeoObserver, Instant, NamedBody

logger = logging.getLogger(__name__)


class AstropyEphemeris(EphemerisProvider):
    """Positions from astropy's solar-system ephemeris.

    The default ``builtin`` ephemeris needs no downloads; pass ``"de432s"``
    or another JPL kernel name for higher precision.
    """

    name = "astropy"

    def __init__(self, ephemeris: str = "builtin"):
        self._ephemeris = ephemeris

    def is_available(self) -> dict:
        try:
            t = Time("2000-01-01T12:00:00", scale="utc")
            get_body("sun", t, ephemeris=self._ephemeris)
        except Exception as e:
            return {"ok": False, "detail": f"ephemeris '{self._ephemeris}' unusable: {e}"}
        return {"ok": True, "detail": f"ephemeris '{self._ephemeris}'"}

    def equatorial_position(
        self,
        body: NamedBody,
        instant: Instant,
        observer: GeoObserver | None = None,
    ) -> EquatorialCoord:
        t = Time(instant.utc, scale="utc")
        location = None
        if observer is not None:
            location = EarthLocation.from_geodetic(
                lon=observer.longitude_deg * u.deg,
                lat=observer.latitude_deg * u.deg,
                height=observer.elevation_m * u.m,
            )
        gcrs = get_body(body.value, t, location=location, ephemeris=self._ephemeris)
        of_date = gcrs.transform_to(
            PrecessedGeocentric(
                equinox=t,
                obstime=t,
                obsgeoloc=gcrs.obsgeoloc,
                obsgeovel=gcrs.obsgeovel,
            )
        )
        logger.debug("%s at %s: ra=%s dec=%s", body.value, instant, of_date.ra, of_date.dec)
        return EquatorialCoord(
            right_ascension_hours=float(of_date.ra.hour),
            declination_deg=float(of_date.dec.deg),
            distance_au=float(of_date.distance.to(u.au).value),
            epoch=Epoch.OF_DATE,
        )
