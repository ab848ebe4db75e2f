"""Plant catalog: category profiles, named plant types and pest vulnerabilities.

Plant categories share one numeric profile each; named plant types are an
open set mapped onto a category. The vulnerability table tells the
parasite injection which plant types a named pest attacks.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from smartgarden_sim.core.state import PlantCategory


@dataclass(frozen=True)
class PlantProfile:
    """Immutable per-category plant parameters.

    Attributes:
        max_lifespan: Days after which the plant dies of age.
        water_requirement: Water level the plant needs (0-100).
        sunlight_requirement: Sunlight the plant needs (0-100).
        min_temperature: Lowest comfortable temperature in degrees Celsius.
        max_temperature: Highest comfortable temperature in degrees Celsius.
        pest_resistance: Resistance reducing pest damage (higher is tougher).
        growth_duration_days: Days spent in each growth stage.
    """

    max_lifespan: int
    water_requirement: int
    sunlight_requirement: int
    min_temperature: int
    max_temperature: int
    pest_resistance: int
    growth_duration_days: int

    def __post_init__(self) -> None:
        """Validate profile values."""
        if self.max_lifespan <= 0:
            msg = f"max_lifespan must be positive, got {self.max_lifespan}"
            raise ValueError(msg)
        if not 0 <= self.water_requirement <= 100:
            msg = f"water_requirement {self.water_requirement} outside valid range [0, 100]"
            raise ValueError(msg)
        if self.min_temperature >= self.max_temperature:
            msg = (
                f"min_temperature ({self.min_temperature}) must be below "
                f"max_temperature ({self.max_temperature})"
            )
            raise ValueError(msg)
        if self.growth_duration_days <= 0:
            msg = f"growth_duration_days must be positive, got {self.growth_duration_days}"
            raise ValueError(msg)


CATEGORY_PROFILES: dict[PlantCategory, PlantProfile] = {
    PlantCategory.FRUIT: PlantProfile(
        max_lifespan=90,
        water_requirement=50,
        sunlight_requirement=75,
        min_temperature=12,
        max_temperature=30,
        pest_resistance=4,
        growth_duration_days=8,
    ),
    PlantCategory.VEGETABLE: PlantProfile(
        max_lifespan=45,
        water_requirement=60,
        sunlight_requirement=80,
        min_temperature=15,
        max_temperature=28,
        pest_resistance=2,
        growth_duration_days=5,
    ),
    PlantCategory.FLOWER: PlantProfile(
        max_lifespan=90,
        water_requirement=30,
        sunlight_requirement=70,
        min_temperature=10,
        max_temperature=30,
        pest_resistance=3,
        growth_duration_days=7,
    ),
}


class PlantType(Enum):
    """Named plant types available for planting."""

    STRAWBERRY = ("Strawberry", PlantCategory.FRUIT)
    GRAPEVINE = ("Grapevine", PlantCategory.FRUIT)
    APPLE = ("Apple Sapling", PlantCategory.FRUIT)
    CARROT = ("Carrot", PlantCategory.VEGETABLE)
    TOMATO = ("Tomato", PlantCategory.VEGETABLE)
    ONION = ("Onion", PlantCategory.VEGETABLE)
    SUNFLOWER = ("Sunflower", PlantCategory.FLOWER)
    TULIP = ("Tulip", PlantCategory.FLOWER)
    ROSE = ("Rose", PlantCategory.FLOWER)

    def __init__(self, display_name: str, category: PlantCategory) -> None:
        self.display_name = display_name
        self.category = category

    @property
    def profile(self) -> PlantProfile:
        """Numeric profile of this type's category."""
        return CATEGORY_PROFILES[self.category]

    def __str__(self) -> str:
        return self.display_name

    @classmethod
    def from_name(cls, name: str | PlantType) -> PlantType:
        """Look up a plant type by enum name or display name.

        Args:
            name: "TOMATO", "tomato", "Apple Sapling", ... or a PlantType.

        Returns:
            The matching PlantType.

        Raises:
            ValueError: If no plant type matches.
        """
        if isinstance(name, PlantType):
            return name
        wanted = name.strip().lower()
        for plant_type in cls:
            if wanted in (plant_type.name.lower(), plant_type.display_name.lower()):
                return plant_type
        msg = f"Unknown plant type '{name}'. Available: {[t.display_name for t in cls]}"
        raise ValueError(msg)


# Harmful pest type -> damage rate
HARMFUL_PEST_DAMAGE: dict[str, int] = {
    "Red Mite": 2,
    "Green Leaf Worm": 3,
    "Black Beetle": 4,
    "Brown Caterpillar": 2,
}
DEFAULT_PEST_DAMAGE = 2
HARMFUL_PEST_TYPES: tuple[str, ...] = tuple(HARMFUL_PEST_DAMAGE)

# Plant type -> pests it is vulnerable to
DEFAULT_VULNERABILITIES: dict[PlantType, tuple[str, ...]] = {
    PlantType.STRAWBERRY: ("Red Mite", "Green Leaf Worm"),
    PlantType.GRAPEVINE: ("Black Beetle", "Red Mite"),
    PlantType.APPLE: ("Brown Caterpillar", "Green Leaf Worm"),
    PlantType.CARROT: ("Red Mite", "Brown Caterpillar"),
    PlantType.TOMATO: ("Black Beetle", "Red Mite"),
    PlantType.ONION: ("Green Leaf Worm",),
    PlantType.SUNFLOWER: ("Red Mite", "Brown Caterpillar"),
    PlantType.TULIP: ("Green Leaf Worm",),
    PlantType.ROSE: ("Black Beetle", "Red Mite"),
}


def vulnerabilities_from_parasites(
    parasites: Mapping[str, list[str]],
) -> dict[PlantType, tuple[str, ...]]:
    """Invert a pest -> target plants table into plant type -> pests.

    Args:
        parasites: Mapping of pest name to the plant names it attacks.

    Returns:
        Vulnerability table keyed by plant type.

    Raises:
        ValueError: If a target names an unknown plant type.
    """
    table: dict[PlantType, list[str]] = {}
    for pest_name, targets in parasites.items():
        for target in targets:
            table.setdefault(PlantType.from_name(target), []).append(pest_name)
    return {plant_type: tuple(pests) for plant_type, pests in table.items()}
