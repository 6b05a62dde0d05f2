from dataclasses import dataclass
import csv
import functools
import re
from pathlib import Path

from .base import CatalogProvider
from skyplan.types import EquatorialCoord, FixedPoint

_CATALOG_ID = re.compile(r"^\s*(M|NGC|IC)\s*(\d+)\s*$", re.IGNORECASE)


@dataclass
class DeepSkyCatalogProvider(CatalogProvider):
    name: str = "deep_sky"
    catalog_path: Path | None = None

    def _resolve_path(self) -> Path:
        if self.catalog_path is not None:
            return self.catalog_path
        return Path(__file__).resolve().parents[1] / "data" / "deep_sky.csv"

    def list_targets(self) -> list[FixedPoint]:
        path = self._resolve_path()
        if not path.exists():
            raise FileNotFoundError(f"Deep-sky catalog not found: {path}")
        targets: list[FixedPoint] = []
        with open(path, "r", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for row in reader:
                catalog_id = normalize_catalog_id(row["id"])
                targets.append(
                    FixedPoint(
                        name=row["name"].strip(),
                        coord=EquatorialCoord(
                            right_ascension_hours=float(row["ra_hours"]),
                            declination_deg=float(row["dec_deg"]),
                        ),
                        object_type=row["type"].strip(),
                        magnitude=_parse_float(row.get("mag")),
                        size_arcmin=_parse_float(row.get("size_arcmin")),
                        constellation=_parse_optional(row.get("constellation")),
                        catalog_id=catalog_id,
                    )
                )
        return targets


def normalize_catalog_id(value: str) -> str:
    """'m31' -> 'M31', 'ngc7000' -> 'NGC 7000'."""
    match = _CATALOG_ID.match(value)
    if not match:
        return value.strip().upper()
    prefix, number = match.group(1).upper(), int(match.group(2))
    if prefix == "M":
        return f"M{number}"
    return f"{prefix} {number}"


@functools.lru_cache(maxsize=None)
def default_deep_sky_targets() -> tuple[FixedPoint, ...]:
    return tuple(DeepSkyCatalogProvider().list_targets())


def lookup_deep_sky(catalog_id: str) -> FixedPoint | None:
    wanted = normalize_catalog_id(catalog_id)
    for target in default_deep_sky_targets():
        if target.catalog_id == wanted:
            return target
    return None


def objects_in_constellation(constellation: str) -> list[FixedPoint]:
    wanted = constellation.strip().lower()
    return [t for t in default_deep_sky_targets() if (t.constellation or "").lower() == wanted]


def _parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    return float(value)


def _parse_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None
