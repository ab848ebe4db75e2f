"""Control algorithms and the garden's automated control systems.

This module provides:
- Hysteresis: Deadband on/off control
- Staged: Multi-stage output selection
- WateringSystem: Zone irrigation with a finite water supply
- HeatingSystem / CoolingSystem / ThermalRegulator: Zone temperature control
- PestControlSystem: Pest detection and deferred pesticide treatment
"""

from smartgarden_sim.controllers.hysteresis import HysteresisController
from smartgarden_sim.controllers.pest_control import PestControlSystem, ThreatLevel
from smartgarden_sim.controllers.pests import BeneficialInsect, HarmfulPest, Pest
from smartgarden_sim.controllers.staged import Stage, StagedController
from smartgarden_sim.controllers.thermal import (
    CoolingSystem,
    HeatingSystem,
    PowerLevel,
    ThermalMode,
    ThermalRegulator,
)
from smartgarden_sim.controllers.watering import WateringSystem

__all__ = [
    # Algorithms
    "HysteresisController",
    "Stage",
    "StagedController",
    # Systems
    "WateringSystem",
    "HeatingSystem",
    "CoolingSystem",
    "ThermalRegulator",
    "PowerLevel",
    "ThermalMode",
    "PestControlSystem",
    "ThreatLevel",
    # Pests
    "Pest",
    "HarmfulPest",
    "BeneficialInsect",
]
