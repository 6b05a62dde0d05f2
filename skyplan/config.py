from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import tomli as tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:  # Python < 3.11
        import tomli as tomllib

from skyplan.errors import InvalidInput

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "skyplan" / "config.toml"


class Config:
    def __init__(self, data: dict):
        self._data = data

    def _section(self, name: str) -> dict:
        return self._data.get(name, {})

    @property
    def site_latitude_deg(self):
        return self._section("site").get("latitude_deg", None)

    @property
    def site_longitude_deg(self):
        return self._section("site").get("longitude_deg", None)

    @property
    def site_elevation_m(self):
        return self._section("site").get("elevation_m", 0.0)

    @property
    def atmosphere_temperature_c(self):
        return self._section("atmosphere").get("temperature_c", 15.0)

    @property
    def atmosphere_pressure_mbar(self):
        return self._section("atmosphere").get("pressure_mbar", 1013.25)

    @property
    def atmosphere_humidity_pct(self):
        return self._section("atmosphere").get("humidity_pct", 0.0)

    @property
    def search_conjunction_threshold_deg(self):
        return self._section("search").get("conjunction_threshold_deg", 5.0)

    @property
    def search_step_days(self):
        return self._section("search").get("step_days", 1.0)

    @property
    def search_conjunction_advance_days(self):
        return self._section("search").get("conjunction_advance_days", 1.0)

    @property
    def search_opposition_skip_days(self):
        return self._section("search").get("opposition_skip_days", 300.0)

    @property
    def search_eclipse_skip_days(self):
        return self._section("search").get("eclipse_skip_days", 180.0)

    @property
    def rise_set_step_minutes(self):
        return self._section("search").get("rise_set_step_minutes", 10.0)

    @property
    def horizon_deg(self):
        return self._section("search").get("horizon_deg", 0.0)

    @property
    def ephemeris_backend(self):
        return self._section("ephemeris").get("backend", "astropy")

    @property
    def workers(self):
        return self._section("runtime").get("workers", 4)


def load_config(path: Path | None = None) -> Config:
    explicit_path = path
    path = path or DEFAULT_CONFIG_PATH

    if not path.exists():
        if explicit_path is not None:
            raise FileNotFoundError(f"Config file not found: {path}")
        # Missing default file means built-in defaults
        return Config({})

    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise InvalidInput(f"Invalid config file {path}: {exc}") from exc

    return Config(data)
