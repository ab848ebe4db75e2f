"""Core module for the garden simulation.

This module provides the foundations shared by every subsystem:
- Base classes for components (sensors, actuators, controllers, systems)
- Value types and read-model snapshots
- Configuration loading and validation
- Component registry
- Event bus and log journal
"""

from smartgarden_sim.core.base import (
    Actuator,
    Component,
    Controller,
    ControlSystem,
    Sensor,
    SensorStatus,
)
from smartgarden_sim.core.errors import GardenError, InvalidCommandError
from smartgarden_sim.core.events import Event, EventBus, EventType
from smartgarden_sim.core.registry import get_registry, register_component
from smartgarden_sim.core.state import (
    GardenSnapshot,
    GrowthStage,
    PlantCategory,
    Position,
    Weather,
)

__all__ = [
    # Components
    "Component",
    "Sensor",
    "SensorStatus",
    "Actuator",
    "Controller",
    "ControlSystem",
    # State
    "Position",
    "Weather",
    "GrowthStage",
    "PlantCategory",
    "GardenSnapshot",
    # Errors
    "GardenError",
    "InvalidCommandError",
    # Registry
    "register_component",
    "get_registry",
    # Events
    "Event",
    "EventBus",
    "EventType",
]
