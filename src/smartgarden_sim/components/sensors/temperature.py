"""Temperature sensor implementation."""

from __future__ import annotations

from smartgarden_sim.core.base import Sensor
from smartgarden_sim.core.registry import register_component


@register_component("sensor", "temperature")
class TemperatureSensor(Sensor):
    """Zone air temperature sensor in degrees Celsius.

    An ERROR status reports -999, which thermal control excludes from
    its zone average.
    """

    error_reading = -999

    def read(self) -> int:
        """Read zone temperature."""
        return self._add_noise(self.zone.temperature)
