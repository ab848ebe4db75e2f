"""Base classes for garden simulation components.

This module defines the abstract building blocks that the control
subsystems are assembled from:
- Component: Named, switchable participant in the simulation loop
- Sensor: Zone-mounted measurement device with a fault status
- Actuator: On/off device driven by a control system
- Controller: Control algorithm mapping a process value to an output
- ControlSystem: Garden-wide control loop owning sensors and actuators
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from smartgarden_sim.core.events import EventBus, get_event_bus

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from numpy.random import Generator

    from smartgarden_sim.model.garden import Garden
    from smartgarden_sim.model.zone import Zone


class Component(ABC):
    """Base class for all simulation components.

    Attributes:
        name: Identifier for this component.
        enabled: Whether this component takes part in the simulation.
    """

    def __init__(self, name: str, *, enabled: bool = True) -> None:
        """Initialize component.

        Args:
            name: Identifier for this component.
            enabled: Whether this component is active. Defaults to True.
        """
        self._name = name
        self._enabled = enabled

    @property
    def name(self) -> str:
        """Identifier for this component."""
        return self._name

    @property
    def enabled(self) -> bool:
        """Whether this component is active in the simulation."""
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        """Set component enabled state."""
        self._enabled = value

    @abstractmethod
    def update(self) -> None:
        """Advance this component by one simulation tick."""

    def reset(self) -> None:  # noqa: B027
        """Reset component to initial state.

        Override in subclasses that maintain internal state.
        """


class SensorStatus(str, Enum):
    """Operational status of a sensor."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class Sensor(Component):
    """Base class for sensors mounted in a garden zone.

    A sensor in ERROR status yields no reading until it is recalibrated.
    Subclasses implement read() against their zone.

    Attributes:
        zone: The zone this sensor measures.
        status: Current operational status.
        last_reading: Most recent valid reading, or None.
    """

    error_reading: int = -1

    def __init__(
        self,
        name: str,
        zone: Zone,
        *,
        noise_std_dev: float = 0.0,
        enabled: bool = True,
        rng: Generator | None = None,
        seed: int | None = None,
    ) -> None:
        """Initialize sensor.

        Args:
            name: Sensor identifier, e.g. "MOISTURE-3".
            zone: Zone the sensor is installed in.
            noise_std_dev: Standard deviation of Gaussian measurement noise.
            enabled: Whether this sensor is active.
            rng: NumPy random generator for reproducible noise.
            seed: Seed for a new generator when rng is None.
        """
        super().__init__(name, enabled=enabled)
        self._zone = zone
        self._noise_std_dev = noise_std_dev
        self._status = SensorStatus.ACTIVE if enabled else SensorStatus.INACTIVE
        self._last_reading: int | None = None

        if rng is not None:
            self._rng = rng
        elif seed is not None:
            self._rng = np.random.default_rng(seed)
        else:
            self._rng = np.random.default_rng()
            if noise_std_dev > 0:
                logger.debug(
                    "Sensor '%s' using non-deterministic RNG (no seed provided)",
                    name,
                )

    @property
    def sensor_id(self) -> str:
        """Sensor identifier."""
        return self._name

    @property
    def zone(self) -> Zone:
        """Zone this sensor measures."""
        return self._zone

    @property
    def status(self) -> SensorStatus:
        """Current operational status."""
        return self._status

    @property
    def last_reading(self) -> int | None:
        """Most recent valid reading, or None before the first one."""
        return self._last_reading

    @property
    def is_faulted(self) -> bool:
        """Whether the sensor is in ERROR status."""
        return self._status is SensorStatus.ERROR

    def _add_noise(self, value: float) -> int:
        if self._noise_std_dev > 0:
            value += self._rng.normal(0, self._noise_std_dev)
        return round(value)

    @abstractmethod
    def read(self) -> int:
        """Take a raw measurement from the zone."""

    def measure(self) -> int | None:
        """Take a reading, honouring the sensor status.

        A read() that raises puts the sensor into ERROR status.

        Returns:
            The reading, or None if the sensor is disabled or faulted.
        """
        if not self.enabled or self._status is not SensorStatus.ACTIVE:
            return None
        try:
            value = self.read()
        except Exception:
            logger.exception("Sensor %s failed to read zone %d", self.name, self._zone.zone_id)
            self._status = SensorStatus.ERROR
            return None
        self._last_reading = value
        return value

    def update(self) -> None:
        """Refresh last_reading."""
        self.measure()

    def inject_fault(self) -> None:
        """Put the sensor into ERROR status."""
        logger.warning("Sensor %s reporting error", self.name)
        self._status = SensorStatus.ERROR
        self._last_reading = self.error_reading

    def calibrate(self) -> None:
        """Clear any fault and return the sensor to ACTIVE."""
        logger.info("Calibrating sensor %s", self.name)
        self._status = SensorStatus.ACTIVE if self.enabled else SensorStatus.INACTIVE

    def report_status(self) -> str:
        """Human-readable status line."""
        return (
            f"{self.name} in zone {self._zone.zone_id}: {self._status.name} "
            f"(last reading {self._last_reading})"
        )

    def reset(self) -> None:
        """Clear readings and faults."""
        self._last_reading = None
        self.calibrate()


class Actuator(Component):
    """Base class for on/off devices driven by a control system."""

    def __init__(self, name: str, *, enabled: bool = True) -> None:
        """Initialize actuator.

        Args:
            name: Actuator identifier.
            enabled: Whether this actuator can be activated.
        """
        super().__init__(name, enabled=enabled)
        self._active = False

    @property
    def is_active(self) -> bool:
        """Whether the actuator is currently running."""
        return self._active

    def activate(self) -> bool:
        """Switch the actuator on.

        Returns:
            True if the actuator is now running.
        """
        if self.enabled:
            self._active = True
        return self._active

    def deactivate(self) -> None:
        """Switch the actuator off."""
        self._active = False

    def update(self) -> None:
        """Actuators only act when their control system drives them."""

    def reset(self) -> None:
        """Switch off."""
        self._active = False


class Controller(Component):
    """Base class for control algorithms.

    Controllers map a process value (e.g. an average zone temperature) to
    an output. They hold no reference to the garden; the owning control
    system feeds them values and applies their output.

    Attributes:
        setpoint: Target value for the controlled variable.
    """

    def __init__(
        self,
        name: str,
        *,
        setpoint: float = 0.0,
        enabled: bool = True,
    ) -> None:
        """Initialize controller.

        Args:
            name: Identifier for this controller.
            setpoint: Initial target value.
            enabled: Whether this controller is active.
        """
        super().__init__(name, enabled=enabled)
        self._setpoint = setpoint
        self._output: float = 0.0
        self._process_value: float | None = None

    @property
    def setpoint(self) -> float:
        """Target value for the controlled variable."""
        return self._setpoint

    @setpoint.setter
    def setpoint(self, value: float) -> None:
        """Set new setpoint value."""
        self._setpoint = value

    @property
    def output(self) -> float:
        """Current controller output."""
        return self._output

    def feed(self, process_value: float) -> float:
        """Record a process value and compute the output for it."""
        self._process_value = process_value
        if not self.enabled:
            return self._output
        self._output = self.compute(process_value)
        return self._output

    @abstractmethod
    def compute(self, process_value: float) -> float:
        """Compute control output for a process value.

        Args:
            process_value: Current measured value of controlled variable.

        Returns:
            Control output value.
        """

    def update(self) -> None:
        """Recompute the output for the last fed process value."""
        if self._process_value is not None:
            self.feed(self._process_value)

    def reset(self) -> None:
        """Reset controller internal state."""
        self._output = 0.0
        self._process_value = None


class ControlSystem(Component):
    """Base class for the garden's automated control loops.

    A control system reads garden/zone/plant state, drives its actuators,
    and keeps a consumable resource counter.
    """

    def __init__(
        self,
        name: str,
        garden: Garden,
        *,
        enabled: bool = True,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize control system.

        Args:
            name: Identifier for this system.
            garden: The garden under control.
            enabled: Whether the loop runs on update().
            event_bus: Bus for published events (global bus if None).
        """
        super().__init__(name, enabled=enabled)
        self._garden = garden
        self._event_bus = event_bus if event_bus is not None else get_event_bus()

    @property
    def garden(self) -> Garden:
        """The garden under control."""
        return self._garden

    @property
    def event_bus(self) -> EventBus:
        """Bus used for published events."""
        return self._event_bus
