"""Actuator components for the garden simulation."""

from smartgarden_sim.components.actuators.sprinkler import Sprinkler

__all__ = [
    "Sprinkler",
]
