from .base import CatalogProvider
from .constellations import ConstellationCatalogProvider, constellation_target
from .deep_sky import DeepSkyCatalogProvider, lookup_deep_sky, objects_in_constellation
from .meteor_showers import METEOR_SHOWERS, MeteorShower, active_showers, meteor_shower, showers_between


def get_catalog_providers():
    return [
        DeepSkyCatalogProvider(),
        ConstellationCatalogProvider(),
    ]

__all__ = [
    "CatalogProvider",
    "ConstellationCatalogProvider",
    "DeepSkyCatalogProvider",
    "METEOR_SHOWERS",
    "MeteorShower",
    "active_showers",
    "constellation_target",
    "get_catalog_providers",
    "lookup_deep_sky",
    "meteor_shower",
    "objects_in_constellation",
    "showers_between",
]
