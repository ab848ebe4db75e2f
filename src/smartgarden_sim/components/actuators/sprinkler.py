"""Zone sprinkler implementation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from smartgarden_sim.core.base import Actuator
from smartgarden_sim.core.registry import register_component

if TYPE_CHECKING:
    from smartgarden_sim.model.zone import Zone

logger = logging.getLogger(__name__)

DEFAULT_FLOW_RATE = 10


@register_component("actuator", "sprinkler")
class Sprinkler(Actuator):
    """Sprinkler watering the living plants of one zone.

    Each activation hands every living plant an even share of the water,
    capped at the flow rate.

    Attributes:
        zone: Zone the sprinkler serves.
        flow_rate: Maximum water units a plant receives per activation.
    """

    def __init__(
        self,
        name: str,
        zone: Zone,
        *,
        flow_rate: int = DEFAULT_FLOW_RATE,
        enabled: bool = True,
    ) -> None:
        """Initialize sprinkler.

        Args:
            name: Sprinkler identifier.
            zone: Zone served.
            flow_rate: Per-plant cap per activation (> 0).
            enabled: Whether the sprinkler can be activated.
        """
        if flow_rate <= 0:
            msg = f"flow_rate must be positive, got {flow_rate}"
            raise ValueError(msg)
        super().__init__(name, enabled=enabled)
        self._zone = zone
        self._flow_rate = flow_rate

    @property
    def zone(self) -> Zone:
        return self._zone

    @property
    def flow_rate(self) -> int:
        return self._flow_rate

    def activate(self) -> bool:
        """Open the sprinkler valve."""
        if super().activate():
            logger.debug("Sprinkler %s activated", self.name)
        return self._active

    def deactivate(self) -> None:
        """Close the sprinkler valve."""
        if self._active:
            logger.debug("Sprinkler %s deactivated", self.name)
        super().deactivate()

    def distribute_water(self, amount: int) -> int:
        """Water the zone's living plants from an amount of supply.

        The zone's moisture rises by amount // 10.

        Args:
            amount: Water released for this activation.

        Returns:
            Water actually taken up by plants.
        """
        if not self._active or amount <= 0:
            return 0

        living = self._zone.living_plants()
        if not living:
            return 0

        per_plant = min(amount // len(living), self._flow_rate)
        used = 0
        if per_plant > 0:
            for plant in living:
                plant.water(per_plant)
                used += per_plant
        self._zone.update_moisture(amount // 10)
        return used
