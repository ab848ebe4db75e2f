"""Soil moisture sensor implementation."""

from __future__ import annotations

from smartgarden_sim.core.base import Sensor
from smartgarden_sim.core.registry import register_component


@register_component("sensor", "moisture")
class MoistureSensor(Sensor):
    """Soil moisture probe reporting its zone's moisture level.

    Readings are clamped to the 0-100 percent scale after noise is added.
    An ERROR status reports -1.
    """

    error_reading = -1

    def read(self) -> int:
        """Read zone moisture in percent."""
        return max(0, min(100, self._add_noise(self.zone.moisture_level)))
