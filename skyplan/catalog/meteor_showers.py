from dataclasses import dataclass
import datetime

from skyplan.errors import InvalidInput
from skyplan.types import EquatorialCoord


@dataclass(frozen=True)
class MeteorShower:
    name: str
    peak_month: int
    peak_day: int
    activity_days: int
    radiant_ra_hours: float
    radiant_dec_deg: float
    zhr: int

    @property
    def radiant(self) -> EquatorialCoord:
        return EquatorialCoord(right_ascension_hours=self.radiant_ra_hours, declination_deg=self.radiant_dec_deg)

    def activity(self, year: int) -> tuple[datetime.date, datetime.date, datetime.date]:
        """(start, peak, end) of the activity period peaking in ``year``."""
        peak = datetime.date(year, self.peak_month, self.peak_day)
        half_span = datetime.timedelta(days=self.activity_days // 2)
        return peak - half_span, peak, peak + half_span

    def is_active(self, date: datetime.date) -> bool:
        """True within half the activity span either side of the peak."""
        # a peak near New Year can belong to the neighbouring year
        for year in (date.year - 1, date.year, date.year + 1):
            start, _, end = self.activity(year)
            if start <= date <= end:
                return True
        return False


METEOR_SHOWERS = (
    MeteorShower("Quadrantids", 1, 4, 10, 15.3, 49.5, 120),
    MeteorShower("Lyrids", 4, 22, 10, 18.1, 34.3, 18),
    MeteorShower("Eta Aquariids", 5, 6, 20, 22.5, -1.0, 50),
    MeteorShower("Perseids", 8, 13, 30, 3.1, 58.0, 100),
    MeteorShower("Draconids", 10, 8, 5, 17.5, 54.0, 10),
    MeteorShower("Orionids", 10, 21, 14, 6.3, 16.0, 25),
    MeteorShower("Leonids", 11, 17, 10, 10.1, 22.0, 15),
    MeteorShower("Geminids", 12, 14, 14, 7.5, 32.5, 120),
    MeteorShower("Ursids", 12, 22, 7, 14.4, 75.4, 10),
)


def meteor_shower(name: str) -> MeteorShower:
    wanted = name.strip().lower().replace("_", " ")
    for shower in METEOR_SHOWERS:
        if shower.name.lower() == wanted:
            return shower
    raise InvalidInput(f"Unknown meteor shower: {name}")


def active_showers(date: datetime.date) -> list[MeteorShower]:
    return [shower for shower in METEOR_SHOWERS if shower.is_active(date)]


def showers_between(start: datetime.date, end: datetime.date) -> list[tuple[MeteorShower, datetime.date]]:
    """Showers whose activity overlaps ``start``..``end``, with their peak dates."""
    if end < start:
        raise InvalidInput(f"Date range ends before it starts: {start} .. {end}")
    found = []
    for year in range(start.year - 1, end.year + 2):
        for shower in METEOR_SHOWERS:
            first, peak, last = shower.activity(year)
            if first <= end and last >= start:
                found.append((shower, peak))
    return sorted(found, key=lambda item: item[1])
