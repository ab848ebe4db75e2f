"""Garden domain model: plants, zones and the garden grid."""

from smartgarden_sim.model.catalog import CATEGORY_PROFILES, PlantProfile, PlantType
from smartgarden_sim.model.garden import Garden
from smartgarden_sim.model.plant import Plant
from smartgarden_sim.model.zone import Zone

__all__ = [
    "CATEGORY_PROFILES",
    "Garden",
    "Plant",
    "PlantProfile",
    "PlantType",
    "Zone",
]
