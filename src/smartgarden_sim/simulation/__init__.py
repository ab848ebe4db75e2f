"""Simulation engine, weather and scenario modules."""

from smartgarden_sim.simulation.engine import (
    SimulationConfig,
    SimulationEngine,
    SimulationStats,
    SimulationStatus,
)
from smartgarden_sim.simulation.scenarios import (
    DEFAULT_PLANTINGS,
    ScenarioResult,
    create_cold_snap_scenario,
    create_drought_scenario,
    create_garden,
    create_mixed_garden_scenario,
    create_single_plant_scenario,
    run_scenario,
)
from smartgarden_sim.simulation.weather import (
    ForcedWeatherStrategy,
    MarkovWeatherStrategy,
    RotationWeatherStrategy,
    WeatherStrategy,
    WeatherSystem,
)

__all__ = [
    # Engine
    "SimulationConfig",
    "SimulationEngine",
    "SimulationStats",
    "SimulationStatus",
    # Weather
    "ForcedWeatherStrategy",
    "MarkovWeatherStrategy",
    "RotationWeatherStrategy",
    "WeatherStrategy",
    "WeatherSystem",
    # Scenarios
    "DEFAULT_PLANTINGS",
    "ScenarioResult",
    "create_cold_snap_scenario",
    "create_drought_scenario",
    "create_garden",
    "create_mixed_garden_scenario",
    "create_single_plant_scenario",
    "run_scenario",
]
