"""Shared pytest fixtures for smartgarden_sim tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import UTC, datetime

import numpy as np
import pytest

from smartgarden_sim.core.events import EventBus, reset_event_bus
from smartgarden_sim.core.journal import ROOT_LOGGER_NAME
from smartgarden_sim.core.registry import reset_registry
from smartgarden_sim.core.state import Position
from smartgarden_sim.model.catalog import PlantType
from smartgarden_sim.model.garden import Garden
from smartgarden_sim.model.plant import Plant
from smartgarden_sim.simulation.engine import SimulationConfig
from smartgarden_sim.simulation.factory import ensure_components_registered

# =============================================================================
# Autouse fixtures for test isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_global_state() -> Iterator[None]:
    """Reset global singletons around each test for isolation.

    This fixture runs automatically for each test to ensure:
    - Event bus is cleared of handlers and history
    - Component registry holds exactly the package's component classes
    - Handlers and levels set on the package logger do not leak
    """
    reset_event_bus()
    reset_registry()
    ensure_components_registered()
    yield
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


# =============================================================================
# Random number generator and clock fixtures
# =============================================================================


@pytest.fixture
def rng() -> np.random.Generator:
    """Provide a seeded random generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def deterministic_seed() -> int:
    """Provide a fixed seed for reproducible simulations."""
    return 42


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock that only moves when told to."""
    return FakeClock()


@pytest.fixture
def start_time() -> datetime:
    """Fixed simulated start time."""
    return datetime(2025, 5, 1, 6, 0, tzinfo=UTC)


# =============================================================================
# Garden fixtures
# =============================================================================


@pytest.fixture
def bus() -> EventBus:
    """Private event bus."""
    return EventBus()


@pytest.fixture
def garden() -> Garden:
    """Empty 9x9 garden."""
    return Garden(9, 9)


@pytest.fixture
def planted_garden() -> Garden:
    """9x9 garden with the default four plants."""
    garden = Garden(9, 9)
    garden.add_plant(Plant(PlantType.STRAWBERRY, Position(1, 1)))
    garden.add_plant(Plant(PlantType.CARROT, Position(2, 2)))
    garden.add_plant(Plant(PlantType.TOMATO, Position(3, 3)))
    garden.add_plant(Plant(PlantType.SUNFLOWER, Position(4, 4)))
    return garden


@pytest.fixture
def tomato() -> Plant:
    """A fresh tomato seed at (0, 0)."""
    return Plant(PlantType.TOMATO, Position(0, 0))


@pytest.fixture
def fast_config(start_time: datetime) -> SimulationConfig:
    """Engine configuration without wall-clock pacing."""
    return SimulationConfig(tick_interval=0.0, start_time=start_time)
