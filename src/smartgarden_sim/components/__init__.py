"""Garden simulation components.

Concrete sensors and actuators installed in garden zones.
"""

from smartgarden_sim.components.actuators import Sprinkler
from smartgarden_sim.components.sensors import MoistureSensor, TemperatureSensor

__all__ = [
    # Sensors
    "MoistureSensor",
    "TemperatureSensor",
    # Actuators
    "Sprinkler",
]
