"""Garden zone: a fixed block of cells with shared soil and climate readings."""

from __future__ import annotations

from collections.abc import Iterable

from smartgarden_sim.core.state import Position, ZoneSnapshot
from smartgarden_sim.model.plant import Plant

DEFAULT_MOISTURE = 50
DEFAULT_TEMPERATURE = 20


def _clamp_percent(value: int) -> int:
    return max(0, min(100, value))


class Zone:
    """A rectangular block of garden cells.

    Attributes:
        zone_id: Identifier, 1-9 in row-major block order.
        positions: Cells belonging to the zone.
        plants: Plants currently located in the zone, dead ones included.
        moisture_level: Soil moisture 0-100.
        temperature: Zone temperature in degrees Celsius (not clamped).
        pest_infestation_level: Infestation percentage 0-100.
    """

    def __init__(self, zone_id: int, positions: Iterable[Position]) -> None:
        self.zone_id = zone_id
        self.positions: frozenset[Position] = frozenset(positions)
        self.plants: list[Plant] = []
        self.moisture_level = DEFAULT_MOISTURE
        self.temperature = DEFAULT_TEMPERATURE
        self.pest_infestation_level = 0

    def __repr__(self) -> str:
        return (
            f"Zone({self.zone_id}, cells={len(self.positions)}, plants={len(self.plants)}, "
            f"moisture={self.moisture_level}, temp={self.temperature}, "
            f"infestation={self.pest_infestation_level})"
        )

    def contains(self, position: Position) -> bool:
        """Whether position belongs to this zone."""
        return position in self.positions

    def add_plant(self, plant: Plant) -> bool:
        """Track a plant located in this zone.

        Returns:
            False if the plant lies outside the zone or is already tracked.
        """
        if not self.contains(plant.position) or plant in self.plants:
            return False
        self.plants.append(plant)
        return True

    def remove_plant(self, plant: Plant) -> bool:
        """Stop tracking a plant."""
        if plant in self.plants:
            self.plants.remove(plant)
            return True
        return False

    def living_plants(self) -> list[Plant]:
        return [plant for plant in self.plants if not plant.is_dead]

    @property
    def living_plant_count(self) -> int:
        return sum(1 for plant in self.plants if not plant.is_dead)

    def plants_needing_water(self) -> list[Plant]:
        """Living plants whose water level is below their requirement."""
        return [plant for plant in self.plants if plant.needs_water]

    def update_moisture(self, delta: int) -> None:
        """Change moisture by delta, clamped to [0, 100]."""
        self.moisture_level = _clamp_percent(self.moisture_level + delta)

    def evaporate(self, amount: int) -> None:
        """Lose moisture to evaporation."""
        self.update_moisture(-amount)

    def set_temperature(self, temperature: int) -> None:
        self.temperature = temperature

    def update_pest_level(self, delta: int) -> None:
        """Change infestation by delta, clamped to [0, 100]."""
        self.pest_infestation_level = _clamp_percent(self.pest_infestation_level + delta)

    def set_pest_level(self, level: int) -> None:
        self.pest_infestation_level = _clamp_percent(level)

    def snapshot(self) -> ZoneSnapshot:
        """Read-only copy of the zone's state."""
        return ZoneSnapshot(
            zone_id=self.zone_id,
            moisture_level=self.moisture_level,
            temperature=self.temperature,
            pest_infestation_level=self.pest_infestation_level,
            plant_count=len(self.plants),
            living_plant_count=self.living_plant_count,
        )
