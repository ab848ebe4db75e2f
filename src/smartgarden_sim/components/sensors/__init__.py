"""Sensor components for the garden simulation.

Sensors are mounted one per zone and read the zone's state, optionally
adding measurement noise.
"""

from smartgarden_sim.components.sensors.moisture import MoistureSensor
from smartgarden_sim.components.sensors.temperature import TemperatureSensor

__all__ = [
    "MoistureSensor",
    "TemperatureSensor",
]
