"""Factory functions for creating simulations from configuration.

This module provides the bridge between YAML/JSON configuration files and
actual simulation assembly. The main entry point is
`create_engine_from_config()` which builds the garden, creates every
subsystem through the component registry and seeds the configured
plantings, returning an engine ready to run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast

import numpy as np

from smartgarden_sim.components.actuators.sprinkler import Sprinkler
from smartgarden_sim.components.sensors.moisture import MoistureSensor
from smartgarden_sim.components.sensors.temperature import TemperatureSensor
from smartgarden_sim.controllers.hysteresis import HysteresisController
from smartgarden_sim.controllers.pest_control import PestControlSystem
from smartgarden_sim.controllers.staged import StagedController
from smartgarden_sim.controllers.thermal import (
    CoolingSystem,
    HeatingSystem,
    ThermalRegulator,
    create_temperature_sensors,
)
from smartgarden_sim.controllers.watering import WateringSystem
from smartgarden_sim.core.events import EventBus
from smartgarden_sim.core.registry import ComponentRegistry, get_registry
from smartgarden_sim.model.garden import Garden
from smartgarden_sim.simulation.engine import SimulationConfig as EngineConfig
from smartgarden_sim.simulation.engine import SimulationEngine, ThermalSystem
from smartgarden_sim.simulation.weather import (
    ForcedWeatherStrategy,
    MarkovWeatherStrategy,
    RotationWeatherStrategy,
    WeatherStrategy,
    WeatherSystem,
)

if TYPE_CHECKING:
    from numpy.random import Generator

    from smartgarden_sim.core.config import (
        SimulationConfig,
        ThermalConfig,
        WeatherConfig,
    )

# Classes re-registered after a registry reset
_COMPONENT_CLASSES = [
    MoistureSensor,
    TemperatureSensor,
    Sprinkler,
    HysteresisController,
    StagedController,
    WateringSystem,
    HeatingSystem,
    CoolingSystem,
    ThermalRegulator,
    PestControlSystem,
    WeatherSystem,
]


def ensure_components_registered() -> None:
    """Ensure all component classes are registered in the registry.

    This is useful after reset_registry() to re-register components.
    Call this in test setup methods after reset_registry().
    """
    registry = get_registry()
    for component_class in _COMPONENT_CLASSES:
        category, component_type = component_class.registry_key
        registry.register(category, component_type, component_class)


def create_engine_from_config(
    config: SimulationConfig,
    *,
    event_bus: EventBus | None = None,
) -> SimulationEngine:
    """Create a fully configured SimulationEngine from a SimulationConfig.

    This is the main factory function that bridges configuration files
    to runnable simulations. It:
    1. Creates the garden grid
    2. Creates weather, watering, thermal and pest control systems via
       the registry, sharing one seeded random generator and event bus
    3. Creates the engine and binds pest control to simulated time
    4. Plants the configured seeds

    Args:
        config: Validated SimulationConfig object (from load_config or direct).
        event_bus: Bus for all events (a new private bus if None).

    Returns:
        SimulationEngine ready to run.

    Raises:
        KeyError: If a subsystem type is not found in registry.
        ValueError: If configuration is invalid.
    """
    ensure_components_registered()
    registry = get_registry()
    bus = event_bus if event_bus is not None else EventBus()
    rng = np.random.default_rng(config.seed)

    # 1. Garden
    garden = Garden(config.garden.rows, config.garden.columns)

    # 2. Subsystems
    weather = _create_weather(registry, config, garden, rng, bus)
    wc = config.watering
    watering = cast(
        WateringSystem,
        registry.create(
            "system",
            "watering",
            "watering",
            garden=garden,
            weather=weather,
            initial_supply=wc.initial_supply,
            low_supply_threshold=wc.low_supply_threshold,
            cycle_amount=wc.cycle_amount,
            flow_rate=wc.flow_rate,
            moisture_threshold=wc.moisture_threshold,
            enabled=wc.enabled,
            event_bus=bus,
        ),
    )
    thermal = _create_thermal_systems(registry, config.thermal, garden, bus)
    pc = config.pest_control
    pest_control = cast(
        PestControlSystem,
        registry.create(
            "system",
            "pest_control",
            "pest_control",
            garden=garden,
            initial_stock=pc.initial_stock,
            spawn_probability=pc.spawn_probability,
            treatment_threshold=pc.treatment_threshold,
            treatment_delay=pc.treatment_delay,
            auto_spawn=pc.auto_spawn and not config.api_mode,
            rng=rng,
            enabled=pc.enabled,
            event_bus=bus,
        ),
    )

    # 3. Engine
    engine_config = EngineConfig(
        tick_interval=config.tick_interval,
        speed=config.speed,
        start_time=config.start_time
        or datetime.now(UTC).replace(hour=6, minute=0, second=0, microsecond=0),
        duration_ticks=config.duration_ticks,
        temperature_coupling=config.weather.temperature_coupling,
    )
    engine = SimulationEngine(
        garden,
        config=engine_config,
        weather=weather,
        watering=watering,
        thermal=thermal,
        pest_control=pest_control,
        rng=rng,
        event_bus=bus,
    )
    pest_control.set_clock(engine.simulated_seconds)

    # 4. Plantings
    for planting in config.plantings:
        engine.plant_seed(planting.plant_type, planting.position)

    return engine


def create_weather_strategy(wc: WeatherConfig) -> WeatherStrategy:
    """Create the weather transition strategy named in the config.

    Args:
        wc: Weather configuration.

    Returns:
        Configured WeatherStrategy instance.
    """
    if wc.strategy == "forced":
        return ForcedWeatherStrategy(wc.forced_weather, duration=wc.strategy_duration)
    if wc.strategy == "rotation":
        return RotationWeatherStrategy(wc.rotation, duration=wc.strategy_duration)
    return MarkovWeatherStrategy(min_duration=wc.min_duration, max_duration=wc.max_duration)


def _create_weather(
    registry: ComponentRegistry,
    config: SimulationConfig,
    garden: Garden,
    rng: Generator,
    bus: EventBus,
) -> WeatherSystem:
    """Create the weather system from config.

    Args:
        registry: The component registry.
        config: The simulation configuration.
        garden: Garden the weather acts on.
        rng: Shared random generator.
        bus: Shared event bus.

    Returns:
        Configured WeatherSystem.
    """
    wc = config.weather
    return cast(
        WeatherSystem,
        registry.create(
            "system",
            "weather",
            "weather",
            garden=garden,
            strategy=create_weather_strategy(wc),
            initial_weather=wc.initial,
            initial_duration=wc.initial_duration,
            automatic=wc.automatic and not config.api_mode,
            rng=rng,
            event_bus=bus,
        ),
    )


def _create_thermal_systems(
    registry: ComponentRegistry,
    tc: ThermalConfig,
    garden: Garden,
    bus: EventBus,
) -> list[ThermalSystem]:
    """Create the thermal systems selected by the config mode.

    Args:
        registry: The component registry.
        tc: Thermal configuration.
        garden: Garden whose zones are regulated.
        bus: Shared event bus.

    Returns:
        Thermal systems in update order (empty when disabled).
    """
    if not tc.enabled:
        return []

    if tc.mode == "unified":
        return [
            cast(
                ThermalRegulator,
                registry.create(
                    "system",
                    "thermal",
                    "thermal",
                    garden=garden,
                    target_min=tc.target_min,
                    target_max=tc.target_max,
                    hysteresis=tc.hysteresis,
                    ambient_temperature=tc.ambient_temperature,
                    event_bus=bus,
                ),
            )
        ]

    sensors = create_temperature_sensors(garden)
    systems: list[ThermalSystem] = []
    if tc.mode in ("heating", "independent"):
        systems.append(
            cast(
                HeatingSystem,
                registry.create(
                    "system",
                    "heating",
                    "heating",
                    garden=garden,
                    target_min=tc.target_min,
                    target_max=tc.target_max,
                    hysteresis=tc.hysteresis,
                    ambient_temperature=tc.ambient_temperature,
                    sensors=sensors,
                    event_bus=bus,
                ),
            )
        )
    if tc.mode in ("cooling", "independent"):
        systems.append(
            cast(
                CoolingSystem,
                registry.create(
                    "system",
                    "cooling",
                    "cooling",
                    garden=garden,
                    hysteresis=tc.hysteresis,
                    ambient_temperature=tc.ambient_temperature,
                    sensors=sensors,
                    event_bus=bus,
                ),
            )
        )
    return systems
