"""Irrigation control loop.

Each zone has one sprinkler and one moisture sensor. Once per tick the
system waters every zone that has living plants below their water
requirement, unless it is raining or the supply is nearly exhausted.
Running dry is a soft condition: the cycle is skipped with a warning.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from smartgarden_sim.components.actuators.sprinkler import DEFAULT_FLOW_RATE, Sprinkler
from smartgarden_sim.components.sensors.moisture import MoistureSensor
from smartgarden_sim.core.base import ControlSystem
from smartgarden_sim.core.errors import InvalidCommandError
from smartgarden_sim.core.events import Event, EventBus, EventType
from smartgarden_sim.core.registry import register_component
from smartgarden_sim.core.state import Weather

if TYPE_CHECKING:
    from smartgarden_sim.model.garden import Garden
    from smartgarden_sim.simulation.weather import WeatherSystem

logger = logging.getLogger(__name__)

DEFAULT_WATER_SUPPLY = 10_000
LOW_SUPPLY_THRESHOLD = 10
WATER_PER_CYCLE = 30
DEFAULT_MOISTURE_THRESHOLD = 40


@register_component("system", "watering")
class WateringSystem(ControlSystem):
    """Automatic irrigation with a finite water supply.

    Attributes:
        water_supply: Remaining water in litres.
        total_water_used: Water distributed since construction.
        sprinklers: Sprinklers keyed by zone id.
        sensors: Moisture sensors keyed by zone id.
    """

    def __init__(
        self,
        name: str,
        garden: Garden,
        *,
        weather: WeatherSystem | None = None,
        initial_supply: int = DEFAULT_WATER_SUPPLY,
        low_supply_threshold: int = LOW_SUPPLY_THRESHOLD,
        cycle_amount: int = WATER_PER_CYCLE,
        flow_rate: int = DEFAULT_FLOW_RATE,
        moisture_threshold: int = DEFAULT_MOISTURE_THRESHOLD,
        enabled: bool = True,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize watering system.

        Args:
            name: Identifier.
            garden: Garden to irrigate.
            weather: Weather system consulted for rain.
            initial_supply: Starting water supply in litres.
            low_supply_threshold: Below this the cycle is skipped.
            cycle_amount: Water released per zone per automatic cycle.
            flow_rate: Per-plant cap of each sprinkler activation.
            moisture_threshold: Zone moisture considered dry (0-100).
            enabled: Whether update() waters.
            event_bus: Bus for events; WEATHER_CHANGED is subscribed here.
        """
        super().__init__(name, garden, enabled=enabled, event_bus=event_bus)
        if initial_supply < 0:
            msg = f"initial_supply must be non-negative, got {initial_supply}"
            raise ValueError(msg)
        self._weather = weather
        self.water_supply = initial_supply
        self.total_water_used = 0
        self._low_supply_threshold = low_supply_threshold
        self._cycle_amount = cycle_amount
        self._moisture_threshold = DEFAULT_MOISTURE_THRESHOLD
        self.moisture_threshold = moisture_threshold

        self.sprinklers: dict[int, Sprinkler] = {}
        self.sensors: dict[int, MoistureSensor] = {}
        for zone_id, zone in garden.zones.items():
            self.sprinklers[zone_id] = Sprinkler(f"SPRINKLER-{zone_id}", zone, flow_rate=flow_rate)
            self.sensors[zone_id] = MoistureSensor(f"MOISTURE-{zone_id}", zone)

        self._event_bus.subscribe(EventType.WEATHER_CHANGED, self._on_weather_changed)
        logger.info("Watering system initialized with %d litres", initial_supply)

    @property
    def moisture_threshold(self) -> int:
        return self._moisture_threshold

    @moisture_threshold.setter
    def moisture_threshold(self, value: int) -> None:
        if not 0 <= value <= 100:
            msg = f"Moisture threshold {value} outside valid range [0, 100]"
            raise ValueError(msg)
        self._moisture_threshold = value

    @property
    def is_water_available(self) -> bool:
        return self.water_supply >= self._low_supply_threshold

    def _is_raining(self) -> bool:
        return self._weather is not None and self._weather.is_raining

    def update(self) -> None:
        """Run one irrigation cycle."""
        if self.enabled:
            self.check_and_water()

    def check_and_water(self) -> int:
        """Water every zone whose living plants need it.

        Returns:
            Water distributed this cycle.
        """
        if self._is_raining():
            logger.debug("Raining, irrigation skipped")
            return 0
        if not self.is_water_available:
            logger.warning("Water supply low (%d litres), irrigation skipped", self.water_supply)
            self._event_bus.emit_simple(
                EventType.WATER_SUPPLY_LOW,
                source=self.name,
                message="Water supply too low to irrigate",
                water_supply=self.water_supply,
            )
            return 0

        used = 0
        for zone_id, zone in self._garden.zones.items():
            sensor = self.sensors[zone_id]
            sensor.update()
            if sensor.is_faulted:
                logger.error("Moisture sensor %s faulted, zone %d skipped", sensor.name, zone_id)
                continue
            if zone.living_plant_count > 0 and zone.plants_needing_water():
                used += self.water_zone(zone_id, self._cycle_amount)
        return used

    def water_zone(self, zone_id: int, amount: int) -> int:
        """Release water through one zone's sprinkler.

        Args:
            zone_id: Zone to water.
            amount: Water requested; clamped to the remaining supply.

        Returns:
            Water actually distributed (0 if skipped).
        """
        sprinkler = self.sprinklers.get(zone_id)
        if sprinkler is None:
            logger.error("Cannot water unknown zone %d", zone_id)
            return 0
        if self._is_raining():
            logger.debug("Raining, zone %d not watered", zone_id)
            return 0

        amount = min(amount, self.water_supply)
        if amount <= 0:
            return 0

        sprinkler.activate()
        try:
            used = sprinkler.distribute_water(amount)
        finally:
            sprinkler.deactivate()

        self.water_supply -= used
        self.total_water_used += used
        if used:
            logger.info(
                "Zone %d watered with %d litres (%d left)", zone_id, used, self.water_supply
            )
            self._event_bus.emit_simple(
                EventType.ZONE_WATERED,
                source=self.name,
                message=f"Zone {zone_id} watered",
                zone_id=zone_id,
                amount=used,
                water_supply=self.water_supply,
            )
        return used

    def manual_water(self, zone_id: int) -> bool:
        """Water a zone on demand with one cycle's amount.

        Returns:
            False if the zone id is unknown.
        """
        if zone_id not in self.sprinklers:
            logger.warning("Manual watering requested for unknown zone %d", zone_id)
            return False
        logger.info("Manual watering of zone %d", zone_id)
        self.water_zone(zone_id, self._cycle_amount)
        return True

    def refill_water(self, amount: int) -> None:
        """Add water to the supply.

        Raises:
            InvalidCommandError: If amount is not positive.
        """
        if amount <= 0:
            msg = f"Refill amount must be positive, got {amount}"
            raise InvalidCommandError(msg)
        self.water_supply += amount
        logger.info("Water supply refilled by %d to %d litres", amount, self.water_supply)
        self._event_bus.emit_simple(
            EventType.WATER_REFILLED,
            source=self.name,
            message=f"Water refilled by {amount}",
            amount=amount,
            water_supply=self.water_supply,
        )

    def stop_all_sprinklers(self) -> int:
        """Switch off every running sprinkler.

        Returns:
            Number of sprinklers that were running.
        """
        stopped = 0
        for sprinkler in self.sprinklers.values():
            if sprinkler.is_active:
                sprinkler.deactivate()
                stopped += 1
        if stopped:
            logger.info("Stopped %d sprinklers", stopped)
        return stopped

    def dry_zones(self) -> list[int]:
        """Zone ids whose last moisture reading is below the threshold."""
        return [
            zone_id
            for zone_id, sensor in self.sensors.items()
            if sensor.last_reading is not None
            and not sensor.is_faulted
            and sensor.last_reading < self._moisture_threshold
        ]

    def _on_weather_changed(self, event: Event) -> None:
        if event.data.get("current") is Weather.RAINY:
            logger.info("Rain started, stopping sprinklers")
            self.stop_all_sprinklers()

    def reset(self) -> None:
        self.stop_all_sprinklers()
        for sensor in self.sensors.values():
            sensor.reset()
