"""The garden grid: cells, zones and the position -> plant map.

The grid is split into a 3x3 arrangement of zones. Block sizes are
``rows // 3`` by ``columns // 3``; the last block row and column absorb any
remainder, so blocks need not be equal. On grids with fewer than three
rows or columns some zones own no cells.
"""

from __future__ import annotations

import logging
from collections import Counter

from smartgarden_sim.core.state import PlantCategory, PlantSnapshot, Position
from smartgarden_sim.model.plant import Plant
from smartgarden_sim.model.zone import Zone

logger = logging.getLogger(__name__)

ZONE_BLOCKS = 3


class Garden:
    """Grid of cells holding at most one plant each.

    Attributes:
        rows: Number of grid rows.
        columns: Number of grid columns.
        zones: Zones keyed by id (1-9).
    """

    def __init__(self, rows: int, columns: int) -> None:
        """Create an empty garden and its zone layout.

        Args:
            rows: Number of rows (> 0).
            columns: Number of columns (> 0).

        Raises:
            ValueError: If either dimension is not positive.
        """
        if rows <= 0 or columns <= 0:
            msg = f"Garden dimensions must be positive, got {rows}x{columns}"
            raise ValueError(msg)

        self.rows = rows
        self.columns = columns
        self.zones: dict[int, Zone] = {}
        self._plants: dict[Position, Plant] = {}
        self._zone_by_position: dict[Position, Zone] = {}
        self._living_count = 0

        self._build_zones()
        logger.info("Garden created: %dx%d grid with %d zones", rows, columns, len(self.zones))

    def _build_zones(self) -> None:
        zone_rows = self.rows // ZONE_BLOCKS
        zone_cols = self.columns // ZONE_BLOCKS
        zone_id = 1
        for block_row in range(ZONE_BLOCKS):
            row_start = block_row * zone_rows
            row_end = self.rows if block_row == ZONE_BLOCKS - 1 else row_start + zone_rows
            for block_col in range(ZONE_BLOCKS):
                col_start = block_col * zone_cols
                col_end = self.columns if block_col == ZONE_BLOCKS - 1 else col_start + zone_cols
                positions = [
                    Position(r, c)
                    for r in range(row_start, row_end)
                    for c in range(col_start, col_end)
                ]
                zone = Zone(zone_id, positions)
                self.zones[zone_id] = zone
                for position in positions:
                    self._zone_by_position[position] = zone
                zone_id += 1

    def __repr__(self) -> str:
        return (
            f"Garden({self.rows}x{self.columns}, plants={len(self._plants)}, "
            f"living={self._living_count})"
        )

    def is_valid_position(self, position: Position) -> bool:
        return position.row < self.rows and position.column < self.columns

    def is_occupied(self, position: Position) -> bool:
        return position in self._plants

    def add_plant(self, plant: Plant) -> bool:
        """Place a plant on its cell.

        Returns:
            False (with a warning) if the cell is off-grid or occupied.
        """
        if not self.is_valid_position(plant.position):
            logger.warning("Cannot plant %s: %s is outside the grid", plant.name, plant.position)
            return False
        if self.is_occupied(plant.position):
            logger.warning("Cannot plant %s: %s is already occupied", plant.name, plant.position)
            return False

        self._plants[plant.position] = plant
        self._zone_by_position[plant.position].add_plant(plant)
        self.update_living_count()
        logger.info("Planted %s at %s", plant.name, plant.position)
        return True

    def remove_plant(self, position: Position) -> bool:
        """Remove the plant on a cell, dead or alive."""
        plant = self._plants.pop(position, None)
        if plant is None:
            return False
        self._zone_by_position[position].remove_plant(plant)
        self.update_living_count()
        logger.info("Removed %s from %s", plant.name, position)
        return True

    def get_plant(self, position: Position) -> Plant | None:
        return self._plants.get(position)

    @property
    def plants(self) -> list[Plant]:
        """All plants, dead ones included."""
        return list(self._plants.values())

    def living_plants(self) -> list[Plant]:
        return [plant for plant in self._plants.values() if not plant.is_dead]

    def dead_plants(self) -> list[Plant]:
        return [plant for plant in self._plants.values() if plant.is_dead]

    @property
    def total_plants(self) -> int:
        return len(self._plants)

    @property
    def living_plant_count(self) -> int:
        """Living plants as of the last update_living_count()."""
        return self._living_count

    def update_living_count(self) -> int:
        """Recompute the living plant count."""
        self._living_count = sum(1 for plant in self._plants.values() if not plant.is_dead)
        return self._living_count

    def zone_for_position(self, position: Position) -> Zone | None:
        return self._zone_by_position.get(position)

    def get_zone(self, zone_id: int) -> Zone | None:
        return self.zones.get(zone_id)

    def zone_of(self, plant: Plant) -> Zone:
        """Zone containing a planted plant."""
        return self._zone_by_position[plant.position]

    def statistics(self) -> dict[str, int]:
        """Aggregate counts.

        Returns:
            total/living/dead plant counts, the zone count, living plants
            per category (``fruit``, ``vegetable``, ``flower``) and plants
            per type display name.
        """
        living = self.update_living_count()
        stats: dict[str, int] = {
            "total_plants": len(self._plants),
            "living_plants": living,
            "dead_plants": len(self._plants) - living,
            "zones": len(self.zones),
        }
        by_category = Counter(plant.category for plant in self.living_plants())
        for category in PlantCategory:
            stats[category.value] = by_category.get(category, 0)
        for name, count in Counter(plant.name for plant in self._plants.values()).items():
            stats[name] = count
        return stats

    def plant_snapshots(self) -> tuple[PlantSnapshot, ...]:
        """Read-only copies of every plant, ordered by position."""
        return tuple(
            PlantSnapshot(
                name=plant.name,
                category=plant.category,
                position=plant.position,
                zone_id=self._zone_by_position[plant.position].zone_id,
                growth_stage=plant.growth_stage,
                health_level=plant.health_level,
                water_level=plant.water_level,
                days_alive=plant.days_alive,
                is_dead=plant.is_dead,
                pest_attacks=plant.pest_attacks,
                total_pest_attacks=plant.total_pest_attacks,
            )
            for position, plant in sorted(self._plants.items())
        )
