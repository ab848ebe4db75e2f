"""Value types and read-model snapshots for the garden simulation.

This module defines the small immutable types shared across the package
and the snapshot structures handed to observers:

- Position: Grid coordinate of a garden cell
- Weather: The five weather states driven by the weather system
- GrowthStage: Ordered plant lifecycle phases
- PlantCategory: Closed set of plant categories
- PlantSnapshot / ZoneSnapshot / SystemsSnapshot / GardenSnapshot:
  read-only copies of simulation state for UIs and test harnesses
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass(frozen=True, order=True)
class Position:
    """Immutable (row, column) coordinate on the garden grid.

    Attributes:
        row: Zero-based row index.
        column: Zero-based column index.
    """

    row: int
    column: int

    def __post_init__(self) -> None:
        """Validate coordinates."""
        if self.row < 0 or self.column < 0:
            msg = f"Position coordinates must be non-negative, got ({self.row}, {self.column})"
            raise ValueError(msg)

    def is_adjacent_to(self, other: Position) -> bool:
        """Whether other is one of the eight surrounding cells."""
        row_diff = abs(self.row - other.row)
        col_diff = abs(self.column - other.column)
        return row_diff <= 1 and col_diff <= 1 and not (row_diff == 0 and col_diff == 0)

    def distance_to(self, other: Position) -> int:
        """Manhattan distance to another position."""
        return abs(self.row - other.row) + abs(self.column - other.column)

    def __str__(self) -> str:
        return f"({self.row},{self.column})"


class Weather(str, Enum):
    """Weather states of the garden climate."""

    SUNNY = "sunny"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    WINDY = "windy"
    SNOWY = "snowy"


class GrowthStage(int, Enum):
    """Ordered plant growth stages. FRUITING is terminal."""

    SEED = 0
    SEEDLING = 1
    MATURE = 2
    FLOWERING = 3
    FRUITING = 4

    @property
    def is_final(self) -> bool:
        """Whether no further stage exists."""
        return self is GrowthStage.FRUITING

    def next(self) -> GrowthStage:
        """Return the following stage, or self when already terminal."""
        if self.is_final:
            return self
        return GrowthStage(self.value + 1)


class PlantCategory(str, Enum):
    """Plant categories. Each category carries one numeric profile."""

    FRUIT = "fruit"
    VEGETABLE = "vegetable"
    FLOWER = "flower"


@dataclass(frozen=True)
class PlantSnapshot:
    """Read-only view of one plant.

    Attributes:
        name: Display name of the plant type (e.g. "Tomato").
        category: Plant category.
        position: Grid cell of the plant.
        zone_id: Zone containing the plant.
        growth_stage: Current growth stage.
        health_level: Health 0-100.
        water_level: Water 0-100.
        days_alive: Simulated days since planting.
        is_dead: Whether the plant has died.
        pest_attacks: Current (treatable) pest attack count.
        total_pest_attacks: Lifetime pest attack count.
    """

    name: str
    category: PlantCategory
    position: Position
    zone_id: int
    growth_stage: GrowthStage
    health_level: int
    water_level: int
    days_alive: int
    is_dead: bool
    pest_attacks: int
    total_pest_attacks: int


@dataclass(frozen=True)
class ZoneSnapshot:
    """Read-only view of one zone.

    Attributes:
        zone_id: Zone identifier (1-9).
        moisture_level: Soil moisture 0-100.
        temperature: Zone temperature in degrees Celsius.
        pest_infestation_level: Infestation percentage 0-100.
        plant_count: Plants located in the zone (dead included).
        living_plant_count: Living plants in the zone.
    """

    zone_id: int
    moisture_level: int
    temperature: int
    pest_infestation_level: int
    plant_count: int
    living_plant_count: int


@dataclass(frozen=True)
class SystemsSnapshot:
    """Resource levels and modes of the control subsystems.

    Attributes:
        water_supply: Remaining irrigation water in litres.
        total_water_used: Water distributed since start in litres.
        thermal_mode: Current mode of the thermal regulation.
        heating_active: Whether heating is currently on.
        cooling_active: Whether cooling is currently on.
        energy_consumption: Cumulative thermal energy units.
        pesticide_stock: Remaining treatments.
        pesticide_used: Treatments applied since start.
        active_pests: Live harmful pests in the garden.
        pending_treatments: Zone ids with a scheduled treatment.
    """

    water_supply: int
    total_water_used: int
    thermal_mode: str
    heating_active: bool
    cooling_active: bool
    energy_consumption: int
    pesticide_stock: int
    pesticide_used: int
    active_pests: int
    pending_treatments: tuple[int, ...] = ()


@dataclass(frozen=True)
class GardenSnapshot:
    """Complete read model of a running garden simulation.

    Attributes:
        status: Engine status value.
        simulation_time: Current simulated datetime.
        day: Simulated day counter.
        elapsed_ticks: Ticks executed since start.
        weather: Current weather.
        weather_remaining: Minutes left in the current weather.
        statistics: Aggregate garden counts.
        systems: Subsystem resource levels and modes.
        plants: One snapshot per planted cell.
        zones: One snapshot per zone.
    """

    status: str
    simulation_time: datetime
    day: int
    elapsed_ticks: int
    weather: Weather
    weather_remaining: int
    statistics: dict[str, int]
    systems: SystemsSnapshot
    plants: tuple[PlantSnapshot, ...] = field(default_factory=tuple)
    zones: tuple[ZoneSnapshot, ...] = field(default_factory=tuple)

    def plant_at(self, position: Position) -> PlantSnapshot | None:
        """Find the plant snapshot for a position."""
        for plant in self.plants:
            if plant.position == position:
                return plant
        return None

    def zone(self, zone_id: int) -> ZoneSnapshot | None:
        """Find the zone snapshot for an id."""
        for zone in self.zones:
            if zone.zone_id == zone_id:
                return zone
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert snapshot to a JSON-friendly dictionary.

        Returns:
            Dictionary representation with enums and datetimes as strings.
        """
        data = asdict(self)
        data["simulation_time"] = self.simulation_time.isoformat()
        data["weather"] = self.weather.name
        data["plants"] = [
            {
                **plant,
                "category": plant["category"].name,
                "growth_stage": plant["growth_stage"].name,
                "position": [plant["position"]["row"], plant["position"]["column"]],
            }
            for plant in data["plants"]
        ]
        data["systems"]["pending_treatments"] = list(self.systems.pending_treatments)
        return data
