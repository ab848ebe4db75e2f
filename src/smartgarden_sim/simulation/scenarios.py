"""Pre-built simulation scenarios for testing and demonstration.

Scenarios provide complete garden setups that can be quickly loaded and
run for exercising various simulation aspects.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from smartgarden_sim.controllers.watering import WateringSystem
from smartgarden_sim.core.events import EventBus
from smartgarden_sim.core.state import Position, Weather
from smartgarden_sim.model.catalog import PlantType
from smartgarden_sim.model.garden import Garden
from smartgarden_sim.model.plant import Plant
from smartgarden_sim.simulation.engine import SimulationConfig, SimulationEngine
from smartgarden_sim.simulation.weather import (
    ForcedWeatherStrategy,
    RotationWeatherStrategy,
    WeatherSystem,
)

# Plantings of initialize_garden() when no list is configured
DEFAULT_PLANTINGS: tuple[tuple[PlantType, Position], ...] = (
    (PlantType.STRAWBERRY, Position(1, 1)),
    (PlantType.CARROT, Position(2, 2)),
    (PlantType.TOMATO, Position(3, 3)),
    (PlantType.SUNFLOWER, Position(4, 4)),
)


@dataclass
class ScenarioResult:
    """Result from running a scenario.

    Attributes:
        scenario_name: Name of the scenario.
        ticks_completed: Number of ticks completed.
        days_completed: Number of day rollovers.
        living_plants: Living plants at the end.
        dead_plants: Dead plants at the end.
        water_used: Irrigation water distributed.
        pesticide_used: Treatments applied.
    """

    scenario_name: str
    ticks_completed: int
    days_completed: int
    living_plants: int
    dead_plants: int
    water_used: int
    pesticide_used: int


def create_garden(
    rows: int = 9,
    columns: int = 9,
    plantings: Iterable[tuple[PlantType, Position]] = DEFAULT_PLANTINGS,
) -> Garden:
    """Create a garden and plant it.

    Args:
        rows: Grid rows.
        columns: Grid columns.
        plantings: (plant type, position) pairs to plant.

    Returns:
        Planted Garden.
    """
    garden = Garden(rows, columns)
    for plant_type, position in plantings:
        garden.add_plant(Plant(plant_type, position))
    return garden


def create_single_plant_scenario(
    plant_type: PlantType = PlantType.TOMATO,
    *,
    seed: int | None = None,
    config: SimulationConfig | None = None,
) -> SimulationEngine:
    """One plant on a 1x1 grid with default subsystems.

    Args:
        plant_type: The plant to grow at (0, 0).
        seed: Seed for the engine's random generator.
        config: Engine configuration (headless defaults if None).

    Returns:
        Configured SimulationEngine ready to run.
    """
    garden = create_garden(1, 1, [(plant_type, Position(0, 0))])
    return SimulationEngine(
        garden,
        config=config or SimulationConfig(tick_interval=0.0),
        seed=seed,
    )


def create_mixed_garden_scenario(
    *,
    seed: int | None = None,
    config: SimulationConfig | None = None,
) -> SimulationEngine:
    """A 9x9 garden with one plant of every catalog type.

    Each plant sits at the centre of its own zone.

    Args:
        seed: Seed for the engine's random generator.
        config: Engine configuration (headless defaults if None).

    Returns:
        Configured SimulationEngine ready to run.
    """
    plantings = [
        (plant_type, Position((index // 3) * 3 + 1, (index % 3) * 3 + 1))
        for index, plant_type in enumerate(PlantType)
    ]
    garden = create_garden(9, 9, plantings)
    return SimulationEngine(
        garden,
        config=config or SimulationConfig(tick_interval=0.0),
        seed=seed,
    )


def create_drought_scenario(
    *,
    water_supply: int = 100,
    seed: int | None = None,
    config: SimulationConfig | None = None,
) -> SimulationEngine:
    """The default garden with a nearly empty water tank and no rain.

    Args:
        water_supply: Initial irrigation supply in litres.
        seed: Seed for the engine's random generator.
        config: Engine configuration (headless defaults if None).

    Returns:
        Configured SimulationEngine ready to run.
    """
    garden = create_garden()
    bus = EventBus()
    rng = np.random.default_rng(seed)
    weather = WeatherSystem(
        "weather",
        garden,
        strategy=ForcedWeatherStrategy(Weather.SUNNY, duration=120),
        rng=rng,
        event_bus=bus,
    )
    watering = WateringSystem(
        "watering",
        garden,
        weather=weather,
        initial_supply=water_supply,
        event_bus=bus,
    )
    return SimulationEngine(
        garden,
        config=config or SimulationConfig(tick_interval=0.0),
        weather=weather,
        watering=watering,
        rng=rng,
        event_bus=bus,
    )


def create_cold_snap_scenario(
    *,
    seed: int | None = None,
    config: SimulationConfig | None = None,
) -> SimulationEngine:
    """The default garden under a snow/rain rotation that keeps it cold.

    Exercises the heating side of the thermal regulator.

    Args:
        seed: Seed for the engine's random generator.
        config: Engine configuration (headless defaults if None).

    Returns:
        Configured SimulationEngine ready to run.
    """
    garden = create_garden()
    bus = EventBus()
    rng = np.random.default_rng(seed)
    weather = WeatherSystem(
        "weather",
        garden,
        strategy=RotationWeatherStrategy((Weather.SNOWY, Weather.RAINY), duration=90),
        initial_weather=Weather.SNOWY,
        rng=rng,
        event_bus=bus,
    )
    engine = SimulationEngine(
        garden,
        config=config or SimulationConfig(tick_interval=0.0),
        weather=weather,
        rng=rng,
        event_bus=bus,
    )
    engine.set_ambient_temperature(5)
    return engine


def run_scenario(name: str, engine: SimulationEngine, ticks: int) -> ScenarioResult:
    """Run a scenario headless and summarize it.

    Args:
        name: Scenario name for the result.
        engine: Engine returned by a create_* function.
        ticks: Number of ticks to run.

    Returns:
        Summary of the run.
    """
    stats = engine.run(ticks)
    garden_stats = engine.garden.statistics()
    return ScenarioResult(
        scenario_name=name,
        ticks_completed=stats.ticks_completed,
        days_completed=stats.days_completed,
        living_plants=garden_stats["living_plants"],
        dead_plants=garden_stats["dead_plants"],
        water_used=engine.watering.total_water_used,
        pesticide_used=engine.pest_control.pesticide_used,
    )
