"""Thermal regulation: heating, cooling and their unified regulator.

HeatingSystem and CoolingSystem are independent control loops over the
same per-zone temperature model. Each averages its zone sensors, switches
on/off through a hysteresis band and picks a power level (LOW, MEDIUM or
HIGH) from the size of the temperature error:

    error > 10 -> HIGH (3 degrees per tick)
    error > 5  -> MEDIUM (2 degrees per tick)
    otherwise  -> LOW (1 degree per tick)

Each degree applied adds one unit of energy consumption.

ThermalRegulator composes the two with one target band and one mode axis
from COOLING_HIGH to HEATING_HIGH, so that heating and cooling never act
in the same tick. It is the default thermal system of the engine.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from smartgarden_sim.components.sensors.temperature import TemperatureSensor
from smartgarden_sim.controllers.hysteresis import HysteresisController
from smartgarden_sim.controllers.staged import StagedController
from smartgarden_sim.core.base import ControlSystem
from smartgarden_sim.core.events import EventBus, EventType
from smartgarden_sim.core.registry import register_component

if TYPE_CHECKING:
    from smartgarden_sim.model.garden import Garden

logger = logging.getLogger(__name__)

DEFAULT_TARGET_MIN = 15
DEFAULT_TARGET_MAX = 28
DEFAULT_AMBIENT = 20
DEFAULT_HYSTERESIS = 2
# (error threshold, degrees per tick); below every threshold 1 degree
POWER_STAGES: list[tuple[float, float]] = [(5.0, 2.0), (10.0, 3.0)]


class PowerLevel(str, Enum):
    """Output level of a heating or cooling loop."""

    OFF = "off"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def delta(self) -> int:
        """Degrees applied per tick at this level."""
        return _LEVEL_DELTAS[self]


_LEVEL_DELTAS = {
    PowerLevel.OFF: 0,
    PowerLevel.LOW: 1,
    PowerLevel.MEDIUM: 2,
    PowerLevel.HIGH: 3,
}
_DELTA_LEVELS = {delta: level for level, delta in _LEVEL_DELTAS.items()}


class ThermalMode(str, Enum):
    """Single mode axis of the unified thermal regulator."""

    COOLING_HIGH = "cooling_high"
    COOLING_MEDIUM = "cooling_medium"
    COOLING_LOW = "cooling_low"
    OFF = "off"
    HEATING_LOW = "heating_low"
    HEATING_MEDIUM = "heating_medium"
    HEATING_HIGH = "heating_high"

    @classmethod
    def heating(cls, level: PowerLevel) -> ThermalMode:
        if level is PowerLevel.OFF:
            return cls.OFF
        return cls[f"HEATING_{level.name}"]

    @classmethod
    def cooling(cls, level: PowerLevel) -> ThermalMode:
        if level is PowerLevel.OFF:
            return cls.OFF
        return cls[f"COOLING_{level.name}"]


class ThermalLoop(ControlSystem):
    """Shared machinery of the heating and cooling loops.

    Subclasses decide the switching band and the direction in which zone
    temperatures are moved.
    """

    direction: int = 0
    kind: str = "thermal"

    def __init__(
        self,
        name: str,
        garden: Garden,
        *,
        hysteresis: int = DEFAULT_HYSTERESIS,
        ambient_temperature: int = DEFAULT_AMBIENT,
        sensors: dict[int, TemperatureSensor] | None = None,
        enabled: bool = True,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize loop.

        Args:
            name: Identifier.
            garden: Garden whose zones are regulated.
            hysteresis: Width of the on/off band in degrees.
            ambient_temperature: Fallback average when no sensor is valid.
            sensors: Per-zone sensors to share; created if None.
            enabled: Whether update() regulates.
            event_bus: Bus for mode change events.
        """
        super().__init__(name, garden, enabled=enabled, event_bus=event_bus)
        self._ambient = ambient_temperature
        self.sensors = sensors if sensors is not None else create_temperature_sensors(garden)
        self._switch = HysteresisController(
            f"{name}-switch",
            hysteresis=hysteresis,
            reverse_acting=self.direction < 0,
        )
        self._power = StagedController(f"{name}-power", stages=POWER_STAGES, base_output=1.0)
        self.level = PowerLevel.OFF
        self.energy_consumption = 0
        self.current_temperature = ambient_temperature

    @property
    def is_active(self) -> bool:
        return self.level is not PowerLevel.OFF

    @property
    def hysteresis(self) -> float:
        return self._switch.hysteresis

    @property
    def mode(self) -> ThermalMode:
        """Current level projected onto the regulator's mode axis."""
        if self.direction > 0:
            return ThermalMode.heating(self.level)
        return ThermalMode.cooling(self.level)

    @property
    def heating_active(self) -> bool:
        return self.direction > 0 and self.is_active

    @property
    def cooling_active(self) -> bool:
        return self.direction < 0 and self.is_active

    def average_temperature(self) -> int:
        """Average of valid zone sensor readings, or the ambient default."""
        readings = [
            reading
            for sensor in self.sensors.values()
            if (reading := sensor.measure()) is not None
        ]
        if not readings:
            return self._ambient
        return int(sum(readings) / len(readings))

    def update(self) -> None:
        """Regulate, then apply zone temperatures to living plants."""
        if not self.enabled:
            return
        self.regulate()
        apply_temperature_effects(self._garden)

    def regulate(self) -> PowerLevel:
        """Run the control decision and move zone temperatures.

        Inside the deadband the level stays latched but zone temperatures
        only move while the average is outside the target.

        Returns:
            The power level applied this tick.
        """
        average = self.average_temperature()
        self.current_temperature = average
        self._configure_band()
        if self._band_valid(average) and self._switch.feed(average):
            level = _DELTA_LEVELS[int(self._power.feed(self._error(average)))]
        else:
            self._switch.force_off()
            level = PowerLevel.OFF

        self._set_level(level, average)
        if level is not PowerLevel.OFF and self._outside_target(average):
            self._apply_delta(level.delta)
        return level

    def hold_off(self) -> None:
        """Switch off without regulating this tick."""
        self._switch.force_off()
        self._set_level(PowerLevel.OFF, self.current_temperature)

    def set_ambient_temperature(self, temperature: int) -> None:
        """Set every zone temperature directly."""
        for zone in self._garden.zones.values():
            zone.set_temperature(temperature)
        self.current_temperature = temperature
        logger.info("Ambient temperature set to %d C", temperature)

    def _configure_band(self) -> None:
        """Update the switch thresholds before a decision."""

    def _band_valid(self, average: int) -> bool:
        del average  # Unused
        return True

    def _outside_target(self, average: int) -> bool:
        raise NotImplementedError

    def _error(self, average: int) -> float:
        raise NotImplementedError

    def _apply_delta(self, delta: int) -> None:
        for zone in self._garden.zones.values():
            zone.set_temperature(self._shift(zone.temperature, delta))
        self.energy_consumption += delta

    def _shift(self, temperature: int, delta: int) -> int:
        return temperature + self.direction * delta

    def _set_level(self, level: PowerLevel, average: int) -> None:
        if level is self.level:
            return
        previous = self.level
        self.level = level
        if level is PowerLevel.OFF:
            logger.info("%s deactivated at %d C", self.kind.capitalize(), average)
        else:
            logger.info("%s %s at %d C", self.kind.capitalize(), level.name, average)
        self._event_bus.emit_simple(
            EventType.THERMAL_MODE_CHANGED,
            source=self.name,
            message=f"{self.kind} {previous.name} -> {level.name}",
            kind=self.kind,
            previous=previous,
            current=level,
            average_temperature=average,
        )

    def reset(self) -> None:
        self._switch.reset()
        self._power.reset()
        self.level = PowerLevel.OFF
        self.energy_consumption = 0


@register_component("system", "heating")
class HeatingSystem(ThermalLoop):
    """Heating loop with a fixed target range.

    Switches on when the average drops below target_min and raises zone
    temperatures while it stays below. The level is held until the average
    reaches target_min + hysteresis (or exceeds target_max).
    """

    direction = 1
    kind = "heating"

    def __init__(
        self,
        name: str,
        garden: Garden,
        *,
        target_min: int = DEFAULT_TARGET_MIN,
        target_max: int = DEFAULT_TARGET_MAX,
        hysteresis: int = DEFAULT_HYSTERESIS,
        ambient_temperature: int = DEFAULT_AMBIENT,
        sensors: dict[int, TemperatureSensor] | None = None,
        enabled: bool = True,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize heating and set every zone to the ambient temperature.

        Args:
            name: Identifier.
            garden: Garden whose zones are heated.
            target_min: Lower edge of the comfort range.
            target_max: Upper edge of the comfort range.
            hysteresis: Degrees above target_min at which heating stops.
            ambient_temperature: Initial zone temperature.
            sensors: Per-zone sensors to share.
            enabled: Whether update() regulates.
            event_bus: Bus for mode change events.
        """
        super().__init__(
            name,
            garden,
            hysteresis=hysteresis,
            ambient_temperature=ambient_temperature,
            sensors=sensors,
            enabled=enabled,
            event_bus=event_bus,
        )
        self.target_min = DEFAULT_TARGET_MIN
        self.target_max = DEFAULT_TARGET_MAX
        self.set_target_range(target_min, target_max)
        self.set_ambient_temperature(ambient_temperature)

    def set_target_range(self, target_min: int, target_max: int) -> None:
        """Change the comfort range.

        Raises:
            ValueError: If target_min >= target_max.
        """
        if target_min >= target_max:
            msg = f"target_min ({target_min}) must be below target_max ({target_max})"
            raise ValueError(msg)
        self.target_min = target_min
        self.target_max = target_max
        logger.info("Heating target range set to %d-%d C", target_min, target_max)

    def _configure_band(self) -> None:
        self._switch.set_band(self.target_min, self.target_min + self.hysteresis)

    def _band_valid(self, average: int) -> bool:
        return average <= self.target_max

    def _outside_target(self, average: int) -> bool:
        return average < self.target_min

    def _error(self, average: int) -> float:
        return self.target_min - average


@register_component("system", "cooling")
class CoolingSystem(ThermalLoop):
    """Cooling loop keyed off the most heat-sensitive living plant.

    The threshold is the highest max_temperature among living plants; with
    no living plants cooling stays off. Cools while the average is above
    the threshold; the level is held until the average is back down at
    threshold - hysteresis.
    Zone temperatures never drop below 0.
    """

    direction = -1
    kind = "cooling"
    _threshold = 0

    def cooling_threshold(self) -> int:
        """Highest max_temperature among living plants (0 if none)."""
        return max(
            (plant.max_temperature for plant in self._garden.living_plants()),
            default=0,
        )

    def _configure_band(self) -> None:
        threshold = self.cooling_threshold()
        self._threshold = threshold
        self._switch.set_band(threshold - self.hysteresis, threshold)

    def _band_valid(self, average: int) -> bool:
        del average  # Unused
        return self._threshold > 0

    def _outside_target(self, average: int) -> bool:
        return average > self._threshold

    def _error(self, average: int) -> float:
        return average - self._threshold

    def _shift(self, temperature: int, delta: int) -> int:
        return max(0, temperature - delta)


def create_temperature_sensors(garden: Garden) -> dict[int, TemperatureSensor]:
    """One temperature sensor per zone, keyed by zone id."""
    return {
        zone_id: TemperatureSensor(f"TEMP-{zone_id}", zone)
        for zone_id, zone in garden.zones.items()
    }


def apply_temperature_effects(garden: Garden) -> None:
    """Apply each living plant's zone temperature to it."""
    for plant in garden.living_plants():
        plant.apply_temperature_effect(garden.zone_of(plant).temperature)


@register_component("system", "thermal")
class ThermalRegulator(ControlSystem):
    """Bidirectional thermal regulator with one mode axis.

    Heating decides first; while heating is active cooling is held off.
    Plants feel their zone temperature once per tick.
    """

    def __init__(
        self,
        name: str,
        garden: Garden,
        *,
        target_min: int = DEFAULT_TARGET_MIN,
        target_max: int = DEFAULT_TARGET_MAX,
        hysteresis: int = DEFAULT_HYSTERESIS,
        ambient_temperature: int = DEFAULT_AMBIENT,
        enabled: bool = True,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize regulator.

        Args:
            name: Identifier.
            garden: Garden whose zones are regulated.
            target_min: Lower edge of the comfort range.
            target_max: Upper edge of the comfort range for heating.
            hysteresis: Band width shared by both directions.
            ambient_temperature: Initial zone temperature.
            enabled: Whether update() regulates.
            event_bus: Bus for mode change events.
        """
        super().__init__(name, garden, enabled=enabled, event_bus=event_bus)
        sensors = create_temperature_sensors(garden)
        self.heating = HeatingSystem(
            f"{name}-heating",
            garden,
            target_min=target_min,
            target_max=target_max,
            hysteresis=hysteresis,
            ambient_temperature=ambient_temperature,
            sensors=sensors,
            event_bus=self._event_bus,
        )
        self.cooling = CoolingSystem(
            f"{name}-cooling",
            garden,
            hysteresis=hysteresis,
            ambient_temperature=ambient_temperature,
            sensors=sensors,
            event_bus=self._event_bus,
        )
        self.mode = ThermalMode.OFF

    @property
    def sensors(self) -> dict[int, TemperatureSensor]:
        return self.heating.sensors

    @property
    def energy_consumption(self) -> int:
        return self.heating.energy_consumption + self.cooling.energy_consumption

    @property
    def current_temperature(self) -> int:
        return self.heating.current_temperature

    @property
    def heating_active(self) -> bool:
        return self.heating.is_active

    @property
    def cooling_active(self) -> bool:
        return self.cooling.is_active

    def update(self) -> None:
        """Run one regulation step and apply plant temperature effects."""
        if not self.enabled:
            return

        heat_level = self.heating.regulate()
        if heat_level is not PowerLevel.OFF:
            self.cooling.hold_off()
            self.mode = ThermalMode.heating(heat_level)
        else:
            self.mode = ThermalMode.cooling(self.cooling.regulate())
        apply_temperature_effects(self._garden)

    def set_ambient_temperature(self, temperature: int) -> None:
        """Set every zone temperature directly."""
        self.heating.set_ambient_temperature(temperature)
        self.cooling.current_temperature = temperature

    def set_target_range(self, target_min: int, target_max: int) -> None:
        self.heating.set_target_range(target_min, target_max)

    def reset(self) -> None:
        self.heating.reset()
        self.cooling.reset()
        self.mode = ThermalMode.OFF
