"""Stochastic weather process for the garden simulation.

The weather is a countdown-driven Markov chain over five states. When the
countdown of the current weather runs out, a strategy picks the next
weather and its duration:

- MarkovWeatherStrategy: the default transition table, durations uniform
  in [30, 120] minutes
- ForcedWeatherStrategy: always the same weather (e.g. rain every minute)
  for exercising the irrigation and drainage paths
- RotationWeatherStrategy: cycles through a fixed sequence

Weather effects (plant health/water, zone moisture) are applied every tick
while it rains and every tenth minute of the countdown otherwise.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np

from smartgarden_sim.core.base import Component
from smartgarden_sim.core.events import EventBus, EventType, get_event_bus
from smartgarden_sim.core.registry import register_component
from smartgarden_sim.core.state import Weather

if TYPE_CHECKING:
    from numpy.random import Generator

    from smartgarden_sim.model.garden import Garden

logger = logging.getLogger(__name__)

DEFAULT_DURATION = 60
MIN_DURATION = 30
MAX_DURATION = 120
# Countdown modulus for non-rain effect application
EFFECT_INTERVAL = 10
RAIN_MOISTURE_GAIN = 5
SUN_EVAPORATION = 2

# Current weather -> ordered (next weather, probability)
TRANSITION_TABLE: dict[Weather, tuple[tuple[Weather, float], ...]] = {
    Weather.SUNNY: (
        (Weather.SUNNY, 0.60),
        (Weather.CLOUDY, 0.20),
        (Weather.WINDY, 0.15),
        (Weather.RAINY, 0.05),
    ),
    Weather.CLOUDY: (
        (Weather.CLOUDY, 0.40),
        (Weather.RAINY, 0.20),
        (Weather.SUNNY, 0.25),
        (Weather.WINDY, 0.15),
    ),
    Weather.RAINY: (
        (Weather.RAINY, 0.50),
        (Weather.CLOUDY, 0.30),
        (Weather.SUNNY, 0.20),
    ),
    Weather.WINDY: (
        (Weather.SUNNY, 0.50),
        (Weather.CLOUDY, 0.30),
        (Weather.WINDY, 0.20),
    ),
    Weather.SNOWY: (
        (Weather.CLOUDY, 0.60),
        (Weather.SNOWY, 0.30),
        (Weather.SUNNY, 0.10),
    ),
}

# Ambient temperature a weather change brings with it
WEATHER_TEMPERATURES: dict[Weather, int] = {
    Weather.SUNNY: 20,
    Weather.RAINY: 10,
    Weather.SNOWY: 5,
}


class WeatherStrategy(ABC):
    """Picks the next weather when the current one runs out."""

    name: str = "base"

    @abstractmethod
    def next_weather(self, current: Weather, rng: Generator) -> tuple[Weather, int]:
        """Choose the next weather and its duration in minutes.

        Args:
            current: Weather that just ended.
            rng: Random generator to draw from.

        Returns:
            (next weather, duration) pair.
        """


class MarkovWeatherStrategy(WeatherStrategy):
    """Default strategy rolling one uniform draw against a transition table."""

    name = "markov"

    def __init__(
        self,
        table: dict[Weather, tuple[tuple[Weather, float], ...]] | None = None,
        *,
        min_duration: int = MIN_DURATION,
        max_duration: int = MAX_DURATION,
    ) -> None:
        """Initialize strategy.

        Args:
            table: Transition table (defaults to TRANSITION_TABLE).
            min_duration: Shortest weather duration in minutes.
            max_duration: Longest weather duration in minutes.

        Raises:
            ValueError: If a row's probabilities do not sum to 1 or the
                duration range is empty.
        """
        self._table = table or TRANSITION_TABLE
        for source, row in self._table.items():
            total = sum(p for _, p in row)
            if not np.isclose(total, 1.0):
                msg = f"Transition probabilities from {source.name} sum to {total}, expected 1.0"
                raise ValueError(msg)
        if not 0 < min_duration <= max_duration:
            msg = f"Invalid duration range [{min_duration}, {max_duration}]"
            raise ValueError(msg)
        self._min_duration = min_duration
        self._max_duration = max_duration

    @property
    def table(self) -> dict[Weather, tuple[tuple[Weather, float], ...]]:
        return self._table

    def next_weather(self, current: Weather, rng: Generator) -> tuple[Weather, int]:
        roll = rng.random()
        row = self._table[current]
        cumulative = 0.0
        chosen = row[-1][0]
        for weather, probability in row:
            cumulative += probability
            if roll < cumulative:
                chosen = weather
                break
        duration = int(rng.integers(self._min_duration, self._max_duration, endpoint=True))
        return chosen, duration


class ForcedWeatherStrategy(WeatherStrategy):
    """Always returns the same weather."""

    name = "forced"

    def __init__(self, weather: Weather = Weather.RAINY, *, duration: int = 1) -> None:
        if duration <= 0:
            msg = f"duration must be positive, got {duration}"
            raise ValueError(msg)
        self._weather = weather
        self._duration = duration

    def next_weather(self, current: Weather, rng: Generator) -> tuple[Weather, int]:
        del current, rng  # Unused
        return self._weather, self._duration


class RotationWeatherStrategy(WeatherStrategy):
    """Cycles through a fixed weather sequence."""

    name = "rotation"

    def __init__(
        self,
        cycle: Sequence[Weather] = (Weather.SUNNY, Weather.RAINY, Weather.SNOWY),
        *,
        duration: int = 1,
    ) -> None:
        if not cycle:
            msg = "Rotation cycle must not be empty"
            raise ValueError(msg)
        if duration <= 0:
            msg = f"duration must be positive, got {duration}"
            raise ValueError(msg)
        self._cycle = tuple(cycle)
        self._duration = duration

    def next_weather(self, current: Weather, rng: Generator) -> tuple[Weather, int]:
        del rng  # Unused
        if current in self._cycle:
            index = (self._cycle.index(current) + 1) % len(self._cycle)
        else:
            index = 0
        return self._cycle[index], self._duration


WEATHER_STRATEGIES: dict[str, type[WeatherStrategy]] = {
    MarkovWeatherStrategy.name: MarkovWeatherStrategy,
    ForcedWeatherStrategy.name: ForcedWeatherStrategy,
    RotationWeatherStrategy.name: RotationWeatherStrategy,
}


@register_component("system", "weather")
class WeatherSystem(Component):
    """Weather state machine perturbing plants and zone moisture.

    Every change of weather is published as a WEATHER_CHANGED event with
    ``previous`` and ``current`` in its data, emitted only on an actual
    change.

    Attributes:
        current_weather: The weather right now.
        remaining: Minutes left in the current weather.
        automatic: Whether the countdown triggers random transitions.
            When False the weather only changes through set_weather().
    """

    def __init__(
        self,
        name: str,
        garden: Garden,
        *,
        strategy: WeatherStrategy | None = None,
        initial_weather: Weather = Weather.SUNNY,
        initial_duration: int = DEFAULT_DURATION,
        automatic: bool = True,
        rng: Generator | None = None,
        seed: int | None = None,
        enabled: bool = True,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize weather system.

        Args:
            name: Identifier.
            garden: Garden the weather acts on.
            strategy: Transition strategy (Markov by default).
            initial_weather: Starting weather.
            initial_duration: Starting countdown in minutes.
            automatic: Enable random transitions.
            rng: Random generator for draws.
            seed: Seed for a new generator when rng is None.
            enabled: Whether update() does anything.
            event_bus: Bus for WEATHER_CHANGED events.
        """
        super().__init__(name, enabled=enabled)
        self._garden = garden
        self._strategy = strategy or MarkovWeatherStrategy()
        self._current = Weather(initial_weather)
        self._remaining = initial_duration
        self.automatic = automatic
        self._rng = rng if rng is not None else np.random.default_rng(seed)
        self._forecast_rng = self._rng.spawn(1)[0]
        self._event_bus = event_bus if event_bus is not None else get_event_bus()
        self._changes = 0

    @property
    def current_weather(self) -> Weather:
        return self._current

    @property
    def remaining(self) -> int:
        """Minutes left in the current weather."""
        return self._remaining

    @property
    def strategy(self) -> WeatherStrategy:
        return self._strategy

    @strategy.setter
    def strategy(self, strategy: WeatherStrategy) -> None:
        logger.info("Weather strategy set to %s", strategy.name)
        self._strategy = strategy

    @property
    def is_raining(self) -> bool:
        return self._current is Weather.RAINY

    @property
    def change_count(self) -> int:
        """Number of weather changes so far."""
        return self._changes

    def update(self) -> None:
        """Advance the weather by one minute."""
        if not self.enabled:
            return

        self._remaining -= 1
        if self._remaining <= 0:
            if self.automatic:
                weather, duration = self._strategy.next_weather(self._current, self._rng)
                self._remaining = duration
                self._change_to(weather)
            else:
                # Hold the current weather for another period
                self._remaining = DEFAULT_DURATION

        if self.is_raining or self._remaining % EFFECT_INTERVAL == 0:
            self.apply_effects()

    def set_weather(self, weather: Weather) -> None:
        """Override the weather and restart the countdown at 60 minutes."""
        self._remaining = DEFAULT_DURATION
        self._change_to(Weather(weather))

    def forecast(self) -> Weather:
        """Draw a likely next weather without changing state."""
        weather, _ = self._strategy.next_weather(self._current, self._forecast_rng)
        return weather

    def apply_effects(self) -> None:
        """Apply the current weather to living plants and zone moisture."""
        for plant in self._garden.living_plants():
            plant.apply_weather_effect(self._current)

        if self._current is Weather.RAINY:
            for zone in self._garden.zones.values():
                zone.update_moisture(RAIN_MOISTURE_GAIN)
        elif self._current is Weather.SUNNY:
            for zone in self._garden.zones.values():
                zone.evaporate(SUN_EVAPORATION)

    def _change_to(self, weather: Weather) -> None:
        previous = self._current
        self._current = weather
        if weather is previous:
            return
        self._changes += 1
        logger.info(
            "Weather changed from %s to %s for %d minutes",
            previous.name,
            weather.name,
            self._remaining,
        )
        self._event_bus.emit_simple(
            EventType.WEATHER_CHANGED,
            source=self.name,
            message=f"Weather changed to {weather.name}",
            previous=previous,
            current=weather,
            duration=self._remaining,
        )

    def reset(self) -> None:
        self._current = Weather.SUNNY
        self._remaining = DEFAULT_DURATION
        self._changes = 0
