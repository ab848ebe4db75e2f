"""Plant lifecycle entity.

A plant is a single class parameterized by its PlantType, whose category
supplies the numeric profile. State evolves once per tick (update) and once
per simulated day (advance_day); death is terminal and freezes all state.
"""

from __future__ import annotations

import logging

from smartgarden_sim.core.state import GrowthStage, PlantCategory, Position, Weather
from smartgarden_sim.model.catalog import PlantProfile, PlantType

logger = logging.getLogger(__name__)

MAX_LEVEL = 100
# update() calls per point of water consumed
WATER_CONSUMPTION_INTERVAL = 5
WATER_SATISFIED_HEAL = 2
PEST_WARNING_INTERVAL = 5

# Weather -> (health change, water gained)
WEATHER_EFFECTS: dict[Weather, tuple[int, int]] = {
    Weather.SUNNY: (2, 0),
    Weather.RAINY: (1, 3),
    Weather.CLOUDY: (1, 0),
    Weather.WINDY: (-1, 0),
    Weather.SNOWY: (-3, 0),
}


class Plant:
    """A plant occupying one garden cell.

    Attributes:
        plant_type: Named type of the plant.
        position: Grid cell (the plant's identity).
        profile: Numeric thresholds of the plant's category.
        growth_stage: Current growth stage.
        health_level: Health 0-100.
        water_level: Water 0-100.
        days_alive: Simulated days since planting.
        is_dead: Terminal death flag.
        pest_attacks: Current attack count, reducible by treatment.
        total_pest_attacks: Lifetime attack count.
    """

    def __init__(
        self,
        plant_type: PlantType | str,
        position: Position,
        *,
        profile: PlantProfile | None = None,
    ) -> None:
        """Create a freshly planted seed.

        Args:
            plant_type: PlantType or its name.
            position: Cell the plant occupies.
            profile: Override for the category profile.
        """
        self.plant_type = PlantType.from_name(plant_type)
        self.position = position
        self.profile = profile or self.plant_type.profile

        self.growth_stage = GrowthStage.SEED
        self.health_level = MAX_LEVEL
        self.water_level = self.profile.water_requirement
        self.days_alive = 0
        self.is_dead = False
        self.pest_attacks = 0
        self.total_pest_attacks = 0

        self._days_since_growth = 0
        self._update_count = 0

    def __repr__(self) -> str:
        return (
            f"Plant({self.name!r}, {self.position}, stage={self.growth_stage.name}, "
            f"health={self.health_level}, water={self.water_level}, dead={self.is_dead})"
        )

    @property
    def name(self) -> str:
        """Display name of the plant type."""
        return self.plant_type.display_name

    @property
    def category(self) -> PlantCategory:
        """Category of the plant type."""
        return self.plant_type.category

    @property
    def water_requirement(self) -> int:
        return self.profile.water_requirement

    @property
    def min_temperature(self) -> int:
        return self.profile.min_temperature

    @property
    def max_temperature(self) -> int:
        return self.profile.max_temperature

    @property
    def pest_resistance(self) -> int:
        return self.profile.pest_resistance

    @property
    def needs_water(self) -> bool:
        """Whether the water level is below the requirement."""
        return not self.is_dead and self.water_level < self.profile.water_requirement

    @property
    def pest_damage(self) -> int:
        """Health lost per pest attack."""
        return max(1, 5 - self.profile.pest_resistance)

    @property
    def health_status(self) -> str:
        """Coarse health label."""
        if self.health_level >= 80:
            return "Healthy"
        if self.health_level >= 50:
            return "Fair"
        if self.health_level >= 20:
            return "Poor"
        return "Critical"

    def update(self) -> None:
        """Apply one tick of water consumption and drought stress."""
        if self.is_dead:
            return

        self._update_count += 1
        if self._update_count % WATER_CONSUMPTION_INTERVAL == 0 and self.water_level > 0:
            self.water_level -= 1

        if self.water_level < self.profile.water_requirement // 2:
            self.take_damage(1)
        if self.water_level == 0:
            self.take_damage(2)

        self._check_death()

    def advance_day(self) -> None:
        """Age the plant by one day, growing a stage when due."""
        if self.is_dead:
            return

        self.days_alive += 1
        self._days_since_growth += 1
        if (
            self._days_since_growth >= self.profile.growth_duration_days
            and not self.growth_stage.is_final
        ):
            self.growth_stage = self.growth_stage.next()
            self._days_since_growth = 0
            logger.info("%s at %s grew to %s", self.name, self.position, self.growth_stage.name)

        self._check_death()

    def water(self, amount: int) -> None:
        """Add water, healing when the requirement is met.

        Args:
            amount: Water units added (capped at 100 total).
        """
        if self.is_dead or amount <= 0:
            return
        self.water_level = min(MAX_LEVEL, self.water_level + amount)
        if self.water_level >= self.profile.water_requirement:
            self.heal(WATER_SATISFIED_HEAL)

    def take_damage(self, amount: int) -> None:
        """Lose health; reaching 0 kills the plant."""
        if self.is_dead or amount <= 0:
            return
        self.health_level = max(0, self.health_level - amount)
        if self.health_level == 0:
            self.die("health depleted")

    def heal(self, amount: int) -> None:
        """Gain health, capped at 100."""
        if self.is_dead or amount <= 0:
            return
        self.health_level = min(MAX_LEVEL, self.health_level + amount)

    def pest_attack(self) -> int:
        """Suffer one pest attack.

        Returns:
            Health damage dealt (0 if the plant is already dead).
        """
        if self.is_dead:
            return 0
        self.pest_attacks += 1
        self.total_pest_attacks += 1
        damage = self.pest_damage
        if self.total_pest_attacks % PEST_WARNING_INTERVAL == 0:
            logger.warning(
                "%s at %s has suffered %d pest attacks",
                self.name,
                self.position,
                self.total_pest_attacks,
            )
        self.take_damage(damage)
        return damage

    def reduce_pest_attacks(self, amount: int) -> None:
        """Lower the current attack count and heal amount*2.

        The lifetime counter is not affected.
        """
        if self.is_dead or amount <= 0:
            return
        self.pest_attacks = max(0, self.pest_attacks - amount)
        self.heal(amount * 2)

    def apply_temperature_effect(self, temperature: float) -> None:
        """React to the temperature of the plant's zone."""
        if self.is_dead:
            return
        if temperature < self.profile.min_temperature:
            self.take_damage(2)
        elif temperature > self.profile.max_temperature:
            self.take_damage(1)
        else:
            self.heal(1)

    def apply_weather_effect(self, weather: Weather) -> None:
        """React to the current weather."""
        if self.is_dead:
            return
        health_change, water_gain = WEATHER_EFFECTS[Weather(weather)]
        if health_change > 0:
            self.heal(health_change)
        else:
            self.take_damage(-health_change)
        if water_gain:
            self.water(water_gain)

    def die(self, reason: str = "") -> None:
        """Mark the plant dead. Idempotent."""
        if self.is_dead:
            return
        self.is_dead = True
        self.health_level = 0
        logger.warning(
            "%s at %s died after %d days%s",
            self.name,
            self.position,
            self.days_alive,
            f" ({reason})" if reason else "",
        )

    def _check_death(self) -> None:
        if self.health_level <= 0:
            self.die("health depleted")
        elif self.days_alive >= self.profile.max_lifespan:
            self.die("end of lifespan")
